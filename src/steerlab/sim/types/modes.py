from __future__ import annotations

from enum import Enum


class SingleBehavior(str, Enum):
    SEEK = "Seek"
    FLEE = "Flee"
    PURSUE = "Pursue"
    EVADE = "Evade"
    ARRIVE = "Arrive"
    WANDER = "Wander"

    @classmethod
    def parse(cls, value: "str | int | SingleBehavior") -> "SingleBehavior":
        """Accept a member, its name or value (any case), or the 1-6 selector key."""
        if isinstance(value, cls):
            return value
        members = list(cls)
        if isinstance(value, int) and not isinstance(value, bool):
            if 1 <= value <= len(members):
                return members[value - 1]
            raise ValueError(f"Unknown single-agent behavior: {value}")
        if not isinstance(value, str):
            raise ValueError(f"Unknown single-agent behavior: {value!r}")
        text = value.strip()
        if text.isdigit():
            return cls.parse(int(text))
        for member in members:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown single-agent behavior: {value}")


class CombineMode(str, Enum):
    PRIORITY = "priority"
    WEIGHTED = "weighted"

    @classmethod
    def parse(cls, value: "str | CombineMode") -> "CombineMode":
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown combine mode: {value!r}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown combine mode: {value}") from None
