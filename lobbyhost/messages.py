"""Players and the control messages the fleet service sends to a server process."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

__all__ = [
    "WebSocketPlayer",
    "player_from_dict",
    "deserialize_player",
    "CreateGameSessionMessage",
    "TerminateProcessMessage",
    "UpdateGameSessionMessage",
    "parse_message",
]

_ACTION = "Action"

_PLAYER_ID = "PlayerId"
_PLAYER_ATTRIBUTES = "PlayerAttributes"
_LATENCY_IN_MS = "LatencyInMs"
_TEAM = "Team"

_GAME_SESSION_ID = "GameSessionId"
_GAME_SESSION_NAME = "GameSessionName"
_GAME_SESSION_DATA = "GameSessionData"
_MATCHMAKER_DATA = "MatchmakerData"
_DNS_NAME = "DnsName"
_IP_ADDRESS = "IpAddress"
_MAXIMUM_PLAYER_SESSION_COUNT = "MaximumPlayerSessionCount"
_PORT = "Port"
_GAME_PROPERTIES = "GameProperties"

_TERMINATION_TIME = "TerminationTime"

_GAME_SESSION = "GameSession"
_UPDATE_REASON = "UpdateReason"
_BACKFILL_TICKET_ID = "BackfillTicketId"


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _get_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _get_int(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return value


def _get_object(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if value is None:
        return {}
    return dict(_require_mapping(value, key))


def _load(data: Union[str, bytes, bytearray, Mapping[str, Any]], what: str) -> Mapping[str, Any]:
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{what} is not valid JSON: {exc.msg}") from exc
    return _require_mapping(data, what)


@dataclass
class WebSocketPlayer:
    """A player as exchanged with the fleet service during backfill."""

    player_id: str = ""
    team: str = ""
    player_attributes: dict[str, Any] = field(default_factory=dict)
    latency_in_ms: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the player as a JSON-ready dictionary."""
        return {
            _PLAYER_ID: self.player_id,
            _TEAM: self.team,
            _PLAYER_ATTRIBUTES: dict(self.player_attributes),
            _LATENCY_IN_MS: dict(self.latency_in_ms),
        }

    def serialize(self) -> str:
        """Return the player as a JSON document."""
        return json.dumps(self.to_dict())


def player_from_dict(data: Mapping[str, Any]) -> WebSocketPlayer:
    """Build a player from a decoded JSON object."""
    data = _require_mapping(data, "player")
    latencies = _get_object(data, _LATENCY_IN_MS)
    for region, latency in latencies.items():
        if isinstance(latency, bool) or not isinstance(latency, int):
            raise ValueError(f"latency for {region!r} must be an integer")
    return WebSocketPlayer(
        player_id=_get_str(data, _PLAYER_ID),
        team=_get_str(data, _TEAM),
        player_attributes=_get_object(data, _PLAYER_ATTRIBUTES),
        latency_in_ms=latencies,
    )


def deserialize_player(json_string: Union[str, bytes, bytearray]) -> WebSocketPlayer:
    """Parse a player from a JSON document; raises ValueError on bad input."""
    return player_from_dict(_load(json_string, "player"))


@dataclass
class CreateGameSessionMessage:
    """Asks the server process to start a new game session."""

    ACTION: ClassVar[str] = "CreateGameSession"

    game_session_id: str = ""
    game_session_name: str = ""
    game_session_data: str = ""
    matchmaker_data: str = ""
    ip_address: str = ""
    dns_name: str = ""
    maximum_player_session_count: int = -1
    port: int = -1
    game_properties: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the message as a JSON-ready dictionary."""
        return {
            _ACTION: self.ACTION,
            _GAME_SESSION_ID: self.game_session_id,
            _GAME_SESSION_NAME: self.game_session_name,
            _GAME_SESSION_DATA: self.game_session_data,
            _MATCHMAKER_DATA: self.matchmaker_data,
            _IP_ADDRESS: self.ip_address,
            _DNS_NAME: self.dns_name,
            _MAXIMUM_PLAYER_SESSION_COUNT: self.maximum_player_session_count,
            _PORT: self.port,
            _GAME_PROPERTIES: dict(self.game_properties),
        }

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "CreateGameSessionMessage":
        properties = _get_object(data, _GAME_PROPERTIES)
        for key, value in properties.items():
            if not isinstance(value, str):
                raise ValueError(f"game property {key!r} must be a string")
        return cls(
            game_session_id=_get_str(data, _GAME_SESSION_ID),
            game_session_name=_get_str(data, _GAME_SESSION_NAME),
            game_session_data=_get_str(data, _GAME_SESSION_DATA),
            matchmaker_data=_get_str(data, _MATCHMAKER_DATA),
            ip_address=_get_str(data, _IP_ADDRESS),
            dns_name=_get_str(data, _DNS_NAME),
            maximum_player_session_count=_get_int(data, _MAXIMUM_PLAYER_SESSION_COUNT, -1),
            port=_get_int(data, _PORT, -1),
            game_properties=properties,
        )


@dataclass
class TerminateProcessMessage:
    """Tells the server process it will be shut down."""

    ACTION: ClassVar[str] = "TerminateProcess"

    termination_time: int = -1

    def to_dict(self) -> dict[str, Any]:
        """Return the message as a JSON-ready dictionary."""
        return {_ACTION: self.ACTION, _TERMINATION_TIME: self.termination_time}

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "TerminateProcessMessage":
        return cls(termination_time=_get_int(data, _TERMINATION_TIME, -1))


@dataclass
class UpdateGameSessionMessage:
    """Carries an updated game session, for example after a backfill."""

    ACTION: ClassVar[str] = "UpdateGameSession"

    game_session: dict[str, Any] = field(default_factory=dict)
    update_reason: str = ""
    backfill_ticket_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the message as a JSON-ready dictionary."""
        return {
            _ACTION: self.ACTION,
            _GAME_SESSION: dict(self.game_session),
            _UPDATE_REASON: self.update_reason,
            _BACKFILL_TICKET_ID: self.backfill_ticket_id,
        }

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "UpdateGameSessionMessage":
        return cls(
            game_session=_get_object(data, _GAME_SESSION),
            update_reason=_get_str(data, _UPDATE_REASON),
            backfill_ticket_id=_get_str(data, _BACKFILL_TICKET_ID),
        )


Message = Union[CreateGameSessionMessage, TerminateProcessMessage, UpdateGameSessionMessage]

_MESSAGE_TYPES = {
    message_type.ACTION: message_type
    for message_type in (CreateGameSessionMessage, TerminateProcessMessage, UpdateGameSessionMessage)
}


def parse_message(data: Union[str, bytes, bytearray, Mapping[str, Any]]) -> Message:
    """Decode a message by its action; raises ValueError for unknown or bad input."""
    payload = _load(data, "message")
    action = payload.get(_ACTION)
    if not isinstance(action, str):
        raise ValueError("message has no action")
    try:
        message_type = _MESSAGE_TYPES[action]
    except KeyError:
        raise ValueError(f"unknown message action {action!r}") from None
    return message_type._from_dict(payload)