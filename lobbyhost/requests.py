"""Request to stop a running match backfill."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

__all__ = ["StopMatchBackfillRequest"]

_TICKET_ID = "TicketId"
_GAME_SESSION_ARN = "GameSessionArn"
_MATCHMAKING_CONFIGURATION_ARN = "MatchmakingConfigurationArn"


@dataclass
class StopMatchBackfillRequest:
    """Identifies the backfill ticket to stop and where it belongs."""

    ticket_id: str = ""
    game_session_arn: str = ""
    matchmaking_configuration_arn: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the request as a JSON-ready dictionary."""
        return {
            _TICKET_ID: self.ticket_id,
            _GAME_SESSION_ARN: self.game_session_arn,
            _MATCHMAKING_CONFIGURATION_ARN: self.matchmaking_configuration_arn,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StopMatchBackfillRequest":
        """Build a request from a dictionary; missing fields are empty."""
        if not isinstance(data, Mapping):
            raise TypeError("request data must be a mapping")

        def field(key: str) -> str:
            value = data.get(key, "")
            if not isinstance(value, str):
                raise TypeError(f"{key} must be a string")
            return value

        return cls(
            ticket_id=field(_TICKET_ID),
            game_session_arn=field(_GAME_SESSION_ARN),
            matchmaking_configuration_arn=field(_MATCHMAKING_CONFIGURATION_ARN),
        )