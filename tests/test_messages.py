import json

import pytest

from lobbyhost.messages import (
    CreateGameSessionMessage,
    TerminateProcessMessage,
    UpdateGameSessionMessage,
    WebSocketPlayer,
    deserialize_player,
    parse_message,
    player_from_dict,
)


def _player():
    return WebSocketPlayer(
        player_id="player-1",
        team="red",
        player_attributes={"skill": {"N": 10}},
        latency_in_ms={"us-east-1": 40, "eu-west-1": 90},
    )


def test_player_dict_uses_wire_keys():
    data = _player().to_dict()
    assert set(data) == {"PlayerId", "Team", "PlayerAttributes", "LatencyInMs"}
    assert data["PlayerId"] == "player-1"


def test_player_round_trip_through_json():
    player = _player()
    assert deserialize_player(player.serialize()) == player


def test_player_round_trip_through_dict():
    player = _player()
    assert player_from_dict(player.to_dict()) == player


def test_player_missing_fields_are_empty():
    player = player_from_dict({})
    assert player == WebSocketPlayer()
    assert player.latency_in_ms == {}


def test_deserialize_player_rejects_invalid_json():
    with pytest.raises(ValueError):
        deserialize_player("{not json")


def test_deserialize_player_rejects_non_object():
    with pytest.raises(ValueError):
        deserialize_player("[1, 2]")


def test_player_rejects_non_integer_latency():
    with pytest.raises(ValueError):
        player_from_dict({"LatencyInMs": {"us-east-1": "fast"}})


def test_create_game_session_defaults():
    message = CreateGameSessionMessage()
    assert message.port == -1
    assert message.maximum_player_session_count == -1
    assert message.to_dict()["Action"] == "CreateGameSession"


def test_create_game_session_round_trip():
    message = CreateGameSessionMessage(
        game_session_id="gs-1",
        game_session_name="lobby",
        ip_address="127.0.0.1",
        dns_name="localhost",
        maximum_player_session_count=8,
        port=7777,
        game_properties={"LOBBY_ID": "lobby-1", "APP_ID": "app-1"},
    )
    parsed = parse_message(json.dumps(message.to_dict()))
    assert isinstance(parsed, CreateGameSessionMessage)
    assert parsed == message


def test_create_game_session_rejects_non_string_property():
    with pytest.raises(ValueError):
        parse_message({"Action": "CreateGameSession", "GameProperties": {"A": 1}})


def test_terminate_process_round_trip_and_default():
    assert TerminateProcessMessage().termination_time == -1
    message = TerminateProcessMessage(termination_time=1700000000)
    parsed = parse_message(message.to_dict())
    assert parsed == message
    assert message.to_dict()["Action"] == "TerminateProcess"


def test_terminate_process_missing_time_gives_default():
    parsed = parse_message({"Action": "TerminateProcess"})
    assert parsed == TerminateProcessMessage()


def test_update_game_session_round_trip():
    message = UpdateGameSessionMessage(
        game_session={"GameSessionId": "gs-1"},
        update_reason="MATCHMAKING_DATA_UPDATED",
        backfill_ticket_id="ticket-1",
    )
    data = message.to_dict()
    assert data["Action"] == "UpdateGameSession"
    assert parse_message(json.dumps(data).encode()) == message


def test_parse_message_unknown_action():
    with pytest.raises(ValueError):
        parse_message({"Action": "Nope"})


def test_parse_message_missing_action():
    with pytest.raises(ValueError):
        parse_message({"TerminationTime": 5})


def test_parse_message_rejects_wrong_field_type():
    with pytest.raises(ValueError):
        parse_message({"Action": "TerminateProcess", "TerminationTime": "soon"})


def test_parse_message_rejects_bad_json():
    with pytest.raises(ValueError):
        parse_message("not json")