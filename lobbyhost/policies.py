"""Player session creation policies and player session statuses."""

from __future__ import annotations

import enum

__all__ = [
    "PlayerSessionCreationPolicy",
    "PlayerSessionStatus",
    "policy_for_name",
    "name_for_policy",
    "status_for_name",
    "name_for_status",
]


class PlayerSessionCreationPolicy(enum.Enum):
    """Whether a game session accepts new player sessions."""

    NOT_SET = "NOT_SET"
    ACCEPT_ALL = "ACCEPT_ALL"
    DENY_ALL = "DENY_ALL"


class PlayerSessionStatus(enum.Enum):
    """Lifecycle state of a player session."""

    NOT_SET = "NOT_SET"
    RESERVED = "RESERVED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    TIMEDOUT = "TIMEDOUT"


def _lookup(enum_type, name: str):
    """Return the member named ``name``, or NOT_SET for anything unknown."""
    try:
        member = enum_type(name)
    except ValueError:
        return enum_type.NOT_SET
    return member


def policy_for_name(name: str) -> PlayerSessionCreationPolicy:
    """Map a wire name to a policy; unknown names give NOT_SET."""
    return _lookup(PlayerSessionCreationPolicy, name)


def name_for_policy(policy: PlayerSessionCreationPolicy) -> str:
    """Return the wire name of a policy."""
    if isinstance(policy, PlayerSessionCreationPolicy):
        return policy.value
    return PlayerSessionCreationPolicy.NOT_SET.value


def status_for_name(name: str) -> PlayerSessionStatus:
    """Map a wire name to a status; unknown names give NOT_SET."""
    return _lookup(PlayerSessionStatus, name)


def name_for_status(status: PlayerSessionStatus) -> str:
    """Return the wire name of a status."""
    if isinstance(status, PlayerSessionStatus):
        return status.value
    return PlayerSessionStatus.NOT_SET.value