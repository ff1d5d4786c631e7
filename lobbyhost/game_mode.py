"""Game mode of a dedicated server hosting one lobby.

The game mode registers the server process with the fleet service, and when
a game session starts it reads the lobby settings from the session's game
properties, connects to the lobby backend and reports the room as ready. It
shuts the server down once it has been empty for a while.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union

from lobbyhost.process import LogParameters, ProcessParameters
from lobbyhost.s2s import S2SClient

__all__ = [
    "SdkError",
    "ServerParameters",
    "parse_server_parameters",
    "SessionProperties",
    "parse_game_properties",
    "GameMode",
    "LOG_PATHS",
    "S2S_URL",
    "TERMINATION_REASON",
    "EMPTY_SERVER_REASON",
]

logger = logging.getLogger(__name__)

LOG_PATHS = ("Saved/Logs/Server",)
"""Log files the fleet service collects for the server process."""

S2S_URL = os.environ.get("LOBBYHOST_S2S_URL", "")
"""Dispatcher address of the lobby backend's server-to-server interface."""

TERMINATION_REASON = "Termination was requested by GameLift. Shutting down server..."
EMPTY_SERVER_REASON = "All players disconnected. GameSession is complete. Shutting down server..."


class SdkError(Exception):
    """Raised by a fleet SDK when a call to the service fails."""


class FleetSdk(Protocol):
    """The calls the game mode makes on the fleet service."""

    def init_sdk(self, server_parameters: "ServerParameters") -> None: ...

    def process_ready(self, process_parameters: ProcessParameters) -> None: ...

    def activate_game_session(self) -> None: ...

    def process_ending(self) -> None: ...


class S2SConnection(Protocol):
    """The calls the game mode makes on the lobby backend client."""

    def set_log_enabled(self, enabled: bool) -> None: ...

    def authenticate(self, callback: Optional[Callable[[str], None]] = None) -> None: ...

    def request(self, json_string: str, callback: Optional[Callable[[str], None]] = None) -> None: ...

    def run_callbacks(self) -> None: ...


S2SFactory = Callable[[str, str, str, str, bool], S2SConnection]


@dataclass
class ServerParameters:
    """Connection settings the server process passes to the fleet SDK."""

    auth_token: str = field(default_factory=str)
    host_id: str = field(default_factory=str)
    fleet_id: str = field(default_factory=str)
    web_socket_url: str = field(default_factory=str)
    process_id: str = field(default_factory=str)


# Each field is read from "-<field name without underscores>=" on the command line.
_ARGUMENT_FIELDS = ("auth_token", "host_id", "fleet_id", "web_socket_url")


def _argument_key(name: str) -> str:
    return "-" + name.replace("_", "") + "="


def _argument_value(argv: Sequence[str], key: str) -> Optional[str]:
    """Return the value following ``key`` in the first argument holding it."""
    for arg in argv:
        position = arg.lower().find(key)
        if position < 0:
            continue
        value = arg[position + len(key):]
        if value.startswith('"'):
            end = value.find('"', 1)
            return value[1:] if end < 0 else value[1:end]
        for separator in (",", ")"):
            cut = value.find(separator)
            if cut >= 0:
                value = value[:cut]
        return value.split()[0] if value.split() else ""
    return None


def parse_server_parameters(argv: Optional[Sequence[str]] = None) -> ServerParameters:
    """Read the fleet connection settings from command-line arguments.

    Keys are matched without regard to case; missing ones stay empty. The
    process id is that of the running process.
    """
    if argv is None:
        argv = sys.argv[1:]
    values = {}
    for name in _ARGUMENT_FIELDS:
        value = _argument_value(argv, _argument_key(name))
        if value is not None:
            values[name] = value
    return ServerParameters(process_id=str(os.getpid()), **values)


@dataclass
class SessionProperties:
    """Lobby settings carried in a game session's game properties."""

    server_port: str = field(default_factory=str)
    app_id: str = field(default_factory=str)
    lobby_id: str = field(default_factory=str)
    server_secret: str = field(default_factory=str)
    server_name: str = field(default_factory=str)
    server_host: str = field(default_factory=str)
    unused: dict[str, str] = field(default_factory=dict)


# Each recognised property key, lower-cased, names its SessionProperties field.
_PROPERTY_KEYS = frozenset(
    {"SERVER_PORT", "APP_ID", "LOBBY_ID", "SERVER_SECRET", "SERVER_NAME", "SERVER_HOST"}
)

Properties = Union[Mapping[str, str], Iterable[tuple[str, str]]]


def parse_game_properties(properties: Properties) -> SessionProperties:
    """Pick the lobby settings out of game properties; others go to ``unused``."""
    pairs = properties.items() if isinstance(properties, Mapping) else properties
    result = SessionProperties()
    for key, value in pairs:
        if key in _PROPERTY_KEYS:
            setattr(result, key.lower(), value)
        else:
            logger.warning("Unused GameProperty - %s:%s", key, value)
            result.unused[key] = value
    return result


def _lobby_request(operation: str, lobby_id: str) -> str:
    return json.dumps(
        {"service": "lobby", "operation": operation, "data": {"lobbyId": lobby_id}},
        separators=(",", ":"),
    )


def _default_s2s_factory(
    app_id: str, server_name: str, server_secret: str, url: str, auto_auth: bool
) -> S2SConnection:
    return S2SClient(app_id, server_name, server_secret, url, auto_auth)


class GameMode:
    """Drives a dedicated server through one game session."""

    def __init__(
        self,
        sdk: FleetSdk,
        s2s_factory: Optional[S2SFactory] = None,
        dedicated_server: bool = True,
        exit_handler: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.sdk = sdk
        self.s2s_factory = s2s_factory if s2s_factory is not None else _default_s2s_factory
        self.dedicated_server = dedicated_server
        self.exit_handler = exit_handler
        self.s2s_url = S2S_URL

        self.server_parameters: Optional[ServerParameters] = None
        self.process_parameters: Optional[ProcessParameters] = None

        self.game_session_started = False
        self.game_session_id = ""
        self.properties = SessionProperties()

        self.s2s: Optional[S2SConnection] = None
        self.braincloud_ready = False

        self.player_count = 0
        self.seconds_to_shut_down_empty_server = 10
        self.timer_counter = 0
        self.exit_reason: Optional[str] = None

    def init_gamelift(self, argv: Optional[Sequence[str]] = None, port: int = -1) -> Optional[ProcessParameters]:
        """Initialise the fleet SDK and report the process as ready.

        Returns the registered process parameters, or None when the SDK
        could not be initialised.
        """
        logger.info("InitGameLift()")
        params = parse_server_parameters(argv)
        self.server_parameters = params
        logger.info("Host Id: %s", params.host_id)
        logger.info("Fleet Id: %s", params.fleet_id)
        logger.info("Process Id: %s", params.process_id)
        logger.info("Web Socket Url: %s", params.web_socket_url)

        try:
            self.sdk.init_sdk(params)
        except SdkError as exc:
            logger.error("InitSDK failed: %s", exc)
            return None
        logger.info("InitSDK succeeded")

        logger.info("World Port: %d", port)
        process = ProcessParameters(
            on_start_game_session=self._on_game_session,
            on_health_check=self.on_health_check,
            on_terminate=self.on_terminate,
            port=port,
            log_parameters=LogParameters(LOG_PATHS),
        )
        self.process_parameters = process

        try:
            self.sdk.process_ready(process)
        except SdkError as exc:
            logger.error("Process Ready Failed: %s", exc)
        else:
            logger.info("Process Ready Succeeded")
        return process

    def _on_game_session(self, game_session: Any) -> None:
        if isinstance(game_session, Mapping):
            session_id = game_session.get("GameSessionId", "")
            properties = game_session.get("GameProperties", {})
        else:
            session_id = getattr(game_session, "game_session_id", "")
            properties = getattr(game_session, "game_properties", {})
        self.on_start_game_session(session_id, properties)

    def on_start_game_session(self, game_session_id: str, properties: Properties) -> None:
        """Read the lobby settings, connect to the backend and activate the session."""
        self.game_session_id = game_session_id
        logger.info("GameSession Initializing: %s...", game_session_id)
        self.properties = parse_game_properties(properties)
        logger.info(
            "appId - %s, lobbyId - %s, serverName - %s, serverHost - %s, serverPort - %s",
            self.properties.app_id,
            self.properties.lobby_id,
            self.properties.server_name,
            self.properties.server_host,
            self.properties.server_port,
        )
        self.init_braincloud()
        self.sdk.activate_game_session()
        self.game_session_started = True

    def on_terminate(self) -> None:
        """Handle a termination notice from the fleet service."""
        logger.info("Game Server Process is terminating...")
        self.shut_down_braincloud()
        self.shut_down_gamelift()
        self._shut_down_server(TERMINATION_REASON)

    def on_health_check(self) -> bool:
        """Report the process as healthy."""
        logger.info("Performing Health Check...")
        return True

    def init_braincloud(self) -> None:
        """Connect to the lobby backend and announce the room once lobby data arrives."""
        logger.info("InitBrainCloud()")
        if not self.dedicated_server:
            return

        if not self.braincloud_ready:
            self.s2s = self.s2s_factory(
                self.properties.app_id,
                self.properties.server_name,
                self.properties.server_secret,
                self.s2s_url,
                True,
            )
            self.s2s.set_log_enabled(True)
        self.braincloud_ready = True

        assert self.s2s is not None
        s2s = self.s2s
        s2s.authenticate()
        lobby_id = self.properties.lobby_id

        def on_lobby_data(result: str) -> None:
            logger.info("GET_LOBBY_DATA - %s", result)
            s2s.request(_lobby_request("SYS_ROOM_READY", lobby_id), None)

        s2s.request(_lobby_request("GET_LOBBY_DATA", lobby_id), on_lobby_data)

    def shut_down_gamelift(self) -> None:
        """Tell the fleet service the process is ending, if a session ran."""
        if not self.game_session_started:
            return
        self.sdk.process_ending()

    def shut_down_braincloud(self) -> None:
        """Tell the lobby backend the room has stopped, if connected."""
        if not self.braincloud_ready or self.s2s is None:
            return
        self.s2s.request(_lobby_request("SYS_ROOM_STOPPED", self.properties.lobby_id), None)

    def _shut_down_server(self, reason: str) -> None:
        logger.info("%s", reason)
        self.exit_reason = reason
        if self.exit_handler is not None:
            self.exit_handler(reason)

    def check_disconnected_players(self) -> None:
        """Count empty seconds; call once a second. Shuts down when empty too long."""
        if not self.game_session_started:
            return
        if self.player_count <= 0:
            if self.timer_counter >= self.seconds_to_shut_down_empty_server:
                self._empty_server_timeout()
            logger.info(
                "No players connected, shutting down game session in: %d",
                self.seconds_to_shut_down_empty_server - self.timer_counter,
            )
            self.timer_counter += 1
        else:
            self.timer_counter = 0

    def _empty_server_timeout(self) -> None:
        self.shut_down_braincloud()
        self.shut_down_gamelift()
        self._shut_down_server(EMPTY_SERVER_REASON)

    def tick(self) -> None:
        """Run the lobby backend's callbacks; call once per server frame."""
        if not self.braincloud_ready:
            return
        if self.s2s is not None:
            self.s2s.run_callbacks()

    def on_post_login(self) -> None:
        """Count a player who joined."""
        self.player_count += 1

    def logout(self) -> None:
        """Count a player who left."""
        self.player_count -= 1