import json
import os

import pytest

from lobbyhost.game_mode import (
    EMPTY_SERVER_REASON,
    LOG_PATHS,
    TERMINATION_REASON,
    GameMode,
    SdkError,
    ServerParameters,
    SessionProperties,
    parse_game_properties,
    parse_server_parameters,
)
from lobbyhost.messages import CreateGameSessionMessage
from lobbyhost.process import ProcessParameters


class FakeSdk:
    def __init__(self, fail_init=False, fail_ready=False):
        self.calls = []
        self.fail_init = fail_init
        self.fail_ready = fail_ready
        self.process = None

    def init_sdk(self, server_parameters):
        self.calls.append("init_sdk")
        if self.fail_init:
            raise SdkError("no service")

    def process_ready(self, process_parameters):
        self.calls.append("process_ready")
        self.process = process_parameters
        if self.fail_ready:
            raise SdkError("not ready")

    def activate_game_session(self):
        self.calls.append("activate_game_session")

    def process_ending(self):
        self.calls.append("process_ending")


class FakeS2S:
    def __init__(self, *args):
        self.args = args
        self.log_enabled = False
        self.auth_calls = 0
        self.requests = []
        self.run_count = 0

    def set_log_enabled(self, enabled):
        self.log_enabled = enabled

    def authenticate(self, callback=None):
        self.auth_calls += 1

    def request(self, json_string, callback=None):
        self.requests.append((json.loads(json_string), callback))

    def run_callbacks(self):
        self.run_count += 1


class Factory:
    def __init__(self):
        self.created = []

    def __call__(self, *args):
        client = FakeS2S(*args)
        self.created.append(client)
        return client


PROPS = {
    "APP_ID": "app",
    "LOBBY_ID": "lobby",
    "SERVER_NAME": "server",
    "SERVER_SECRET": "secret",
    "SERVER_HOST": "host",
    "SERVER_PORT": "port",
}


def make_mode(dedicated=True):
    sdk = FakeSdk()
    factory = Factory()
    reasons = []
    mode = GameMode(sdk, factory, dedicated, reasons.append)
    return mode, sdk, factory, reasons


def operations(client):
    return [payload["operation"] for payload, _ in client.requests]


def test_parse_server_parameters_reads_keys():
    params = parse_server_parameters(
        ["-AuthToken=token", "-hostid=h1", "-fleetid=f1", "-websocketurl=wss://localhost"]
    )
    assert params.auth_token == "token"
    assert params.host_id == "h1"
    assert params.fleet_id == "f1"
    assert params.web_socket_url == "wss://localhost"
    assert params.process_id == str(os.getpid())


def test_parse_server_parameters_missing_and_quoted():
    params = parse_server_parameters(['-hostid="a b"', "-other=x"])
    assert params.host_id == "a b"
    assert params.fleet_id == ""
    assert params.auth_token == ""


def test_parse_server_parameters_first_match_wins():
    params = parse_server_parameters(["-fleetid=first", "-fleetid=second"])
    assert params.fleet_id == "first"


def test_parse_game_properties_known_and_unused():
    result = parse_game_properties({**PROPS, "MAP": "arena"})
    assert result == SessionProperties(
        server_port="port",
        app_id="app",
        lobby_id="lobby",
        server_secret="secret",
        server_name="server",
        server_host="host",
        unused={"MAP": "arena"},
    )


def test_parse_game_properties_accepts_pairs():
    result = parse_game_properties([("LOBBY_ID", "l1"), ("APP_ID", "a1")])
    assert (result.lobby_id, result.app_id) == ("l1", "a1")
    assert result.unused == {}


def test_init_gamelift_registers_process():
    mode, sdk, _, _ = make_mode()
    process = mode.init_gamelift(["-hostid=h1"], 7777)
    assert sdk.calls == ["init_sdk", "process_ready"]
    assert sdk.process is process
    assert process.port == 7777
    assert tuple(process.log_parameters) == LOG_PATHS
    assert process.on_health_check_function() is True
    assert mode.server_parameters.host_id == "h1"


def test_init_gamelift_stops_when_init_fails():
    sdk = FakeSdk(fail_init=True)
    mode = GameMode(sdk, Factory(), True, lambda reason: None)
    assert mode.init_gamelift([], 7777) is None
    assert sdk.calls == ["init_sdk"]


def test_init_gamelift_returns_params_when_ready_fails():
    sdk = FakeSdk(fail_ready=True)
    mode = GameMode(sdk, Factory(), True, lambda reason: None)
    process = mode.init_gamelift([], 7000)
    assert isinstance(process, ProcessParameters)
    assert process.port == 7000


def test_start_game_session_connects_and_requests_lobby_data():
    mode, sdk, factory, _ = make_mode()
    mode.on_start_game_session("session-1", PROPS)
    assert mode.game_session_started is True
    assert mode.game_session_id == "session-1"
    assert sdk.calls == ["activate_game_session"]
    assert len(factory.created) == 1
    client = factory.created[0]
    assert client.args == ("app", "server", "secret", mode.s2s_url, True)
    assert client.log_enabled is True
    assert client.auth_calls == 1
    payload, callback = client.requests[0]
    assert payload == {"service": "lobby", "operation": "GET_LOBBY_DATA", "data": {"lobbyId": "lobby"}}
    callback("{}")
    assert operations(client) == ["GET_LOBBY_DATA", "SYS_ROOM_READY"]
    assert client.requests[1][0]["data"] == {"lobbyId": "lobby"}
    assert client.requests[1][1] is None


def test_activate_through_process_parameters():
    mode, sdk, factory, _ = make_mode()
    process = mode.init_gamelift([], 1)
    message = CreateGameSessionMessage(game_session_id="gs", game_properties={"LOBBY_ID": "l9"})
    process.on_activate_function(message)
    assert mode.game_session_id == "gs"
    assert mode.properties.lobby_id == "l9"
    assert factory.created[0].requests[0][0]["data"]["lobbyId"] == "l9"


def test_not_dedicated_skips_backend():
    mode, sdk, factory, _ = make_mode(dedicated=False)
    mode.on_start_game_session("s", PROPS)
    assert factory.created == []
    assert mode.braincloud_ready is False
    assert sdk.calls == ["activate_game_session"]


def test_init_braincloud_twice_reuses_client():
    mode, _, factory, _ = make_mode()
    mode.properties = parse_game_properties(PROPS)
    mode.init_braincloud()
    mode.init_braincloud()
    assert len(factory.created) == 1
    assert factory.created[0].auth_calls == 2


def test_terminate_stops_room_and_process():
    mode, sdk, factory, reasons = make_mode()
    process = mode.init_gamelift([], 1)
    mode.on_start_game_session("s", PROPS)
    process.on_terminate_function()
    client = factory.created[0]
    assert operations(client)[-1] == "SYS_ROOM_STOPPED"
    assert sdk.calls[-1] == "process_ending"
    assert reasons == [TERMINATION_REASON]
    assert mode.exit_reason == TERMINATION_REASON


def test_shutdowns_do_nothing_before_session():
    mode, sdk, factory, reasons = make_mode()
    mode.shut_down_gamelift()
    mode.shut_down_braincloud()
    assert sdk.calls == []
    assert factory.created == []


def test_check_disconnected_players_inactive_without_session():
    mode, _, _, reasons = make_mode()
    mode.check_disconnected_players()
    assert mode.timer_counter == 0
    assert reasons == []


def test_empty_server_times_out():
    mode, sdk, factory, reasons = make_mode()
    mode.on_start_game_session("s", PROPS)
    for _ in range(mode.seconds_to_shut_down_empty_server):
        mode.check_disconnected_players()
    assert reasons == []
    mode.check_disconnected_players()
    assert reasons == [EMPTY_SERVER_REASON]
    assert "process_ending" in sdk.calls
    assert operations(factory.created[0])[-1] == "SYS_ROOM_STOPPED"


def test_players_reset_timer():
    mode, _, _, reasons = make_mode()
    mode.on_start_game_session("s", PROPS)
    mode.check_disconnected_players()
    mode.check_disconnected_players()
    assert mode.timer_counter == 2
    mode.on_post_login()
    mode.check_disconnected_players()
    assert mode.timer_counter == 0
    assert reasons == []


def test_login_logout_counts():
    mode, _, _, _ = make_mode()
    mode.on_post_login()
    mode.on_post_login()
    mode.logout()
    assert mode.player_count == 1


def test_tick_runs_callbacks_only_when_ready():
    mode, _, factory, _ = make_mode()
    mode.tick()
    assert factory.created == []
    mode.on_start_game_session("s", PROPS)
    mode.tick()
    mode.tick()
    assert factory.created[0].run_count == 2


@pytest.mark.parametrize("argv", [[], ["-unrelated=1"]])
def test_server_parameters_default_empty(argv):
    params = parse_server_parameters(argv)
    assert params == ServerParameters(process_id=str(os.getpid()))