"""Process parameters handed to the fleet service and the backfill data model."""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = [
    "LogParameters",
    "ProcessParameters",
    "AttributeType",
    "AttributeValue",
    "Player",
    "StartMatchBackfillRequest",
]


@dataclass(frozen=True)
class LogParameters:
    """Paths of the log files the service should collect for a process."""

    log_paths: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        paths = tuple(self.log_paths)
        if not all(isinstance(path, str) for path in paths):
            raise TypeError("log paths must be strings")
        object.__setattr__(self, "log_paths", paths)

    def __len__(self) -> int:
        return len(self.log_paths)

    def __iter__(self):
        return iter(self.log_paths)

    def log_path(self, index: int) -> Optional[str]:
        """Return the path at ``index``, or None when there is no such path."""
        if 0 <= index < len(self.log_paths):
            return self.log_paths[index]
        return None


@dataclass
class ProcessParameters:
    """Callbacks, port and log locations a server process registers."""

    on_start_game_session: Optional[Callable[[Any], None]] = None
    on_update_game_session: Optional[Callable[[Any], None]] = None
    on_health_check: Optional[Callable[[], bool]] = None
    on_terminate: Optional[Callable[[], None]] = None
    port: int = -1
    log_parameters: LogParameters = field(default_factory=LogParameters)

    def __post_init__(self) -> None:
        if not isinstance(self.log_parameters, LogParameters):
            self.log_parameters = LogParameters(tuple(self._as_paths(self.log_parameters)))

    @staticmethod
    def _as_paths(paths: Iterable[str]) -> Iterable[str]:
        if isinstance(paths, str):
            return (paths,)
        return paths

    def on_terminate_function(self) -> None:
        """Run the terminate callback if one is set."""
        if self.on_terminate is not None:
            self.on_terminate()

    def on_health_check_function(self) -> bool:
        """Run the health check; without a callback the process is unhealthy."""
        if self.on_health_check is not None:
            return bool(self.on_health_check())
        return False

    def on_activate_function(self, game_session: Any) -> None:
        """Hand a new game session to the start callback if one is set."""
        if self.on_start_game_session is not None:
            self.on_start_game_session(game_session)

    def on_update_function(self, update_game_session: Any) -> None:
        """Hand a game session update to the update callback if one is set."""
        if self.on_update_game_session is not None:
            self.on_update_game_session(update_game_session)


class AttributeType(enum.Enum):
    """Kind of value a player attribute holds."""

    NONE = 0
    STRING = 1
    DOUBLE = 2
    STRING_LIST = 3
    STRING_DOUBLE_MAP = 4


@dataclass
class AttributeValue:
    """A player attribute used in matchmaking."""

    string: str = ""
    number: float = 0.0
    string_list: list[str] = field(default_factory=list)
    string_double_map: dict[str, float] = field(default_factory=dict)
    type: AttributeType = AttributeType.NONE


@dataclass
class Player:
    """A player taking part in a match backfill."""

    player_id: str = ""
    team: str = ""
    player_attributes: dict[str, AttributeValue] = field(default_factory=dict)
    latency_in_ms: dict[str, int] = field(default_factory=dict)


@dataclass
class StartMatchBackfillRequest:
    """Request to find more players for a running game session."""

    ticket_id: str
    game_session_arn: str
    matchmaking_configuration_arn: str
    players: list[Player] = field(default_factory=list)