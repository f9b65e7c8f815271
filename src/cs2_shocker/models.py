from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Union

from .gamestate import MapPhase, RoundPhase


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class PlayerState:
    health: int
    armor: int
    kills: int
    deaths: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class MatchState:
    map_phase: MapPhase = MapPhase.UNKNOWN
    round_phase: RoundPhase = RoundPhase.UNKNOWN
    steam_id: str = ""
    player: PlayerState | None = None

    def reset(self) -> "MatchState":
        # steam_id belongs to the provider report and survives a new match
        return replace(
            self,
            map_phase=MapPhase.UNKNOWN,
            round_phase=RoundPhase.UNKNOWN,
            player=None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "map_phase": self.map_phase.value,
            "round_phase": self.round_phase.value,
            "steam_id": self.steam_id,
            "player": self.player.to_dict() if self.player is not None else None,
        }


@dataclass(frozen=True)
class MatchStarted:
    kind = "match_started"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind}


@dataclass(frozen=True)
class RoundStarted:
    kind = "round_started"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind}


@dataclass(frozen=True)
class DamageSurvived:
    delta: int
    kind = "damage_survived"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "delta": int(self.delta)}


@dataclass(frozen=True)
class Death:
    health_at_death: int
    kind = "death"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "health_at_death": int(self.health_at_death)}


Transition = Union[MatchStarted, RoundStarted, DamageSurvived, Death]


class Op(IntEnum):
    """Operation codes understood by the PiShock apioperate endpoint."""

    SHOCK = 0
    VIBRATE = 1
    BEEP = 2


@dataclass(frozen=True)
class ActuationCommand:
    op: Op
    duration: int
    intensity: int | None = None

    @staticmethod
    def beep(duration: int) -> "ActuationCommand":
        return ActuationCommand(op=Op.BEEP, duration=int(duration))

    @staticmethod
    def vibrate(intensity: int, duration: int) -> "ActuationCommand":
        return ActuationCommand(op=Op.VIBRATE, duration=int(duration), intensity=int(intensity))

    @staticmethod
    def shock(intensity: int, duration: int) -> "ActuationCommand":
        return ActuationCommand(op=Op.SHOCK, duration=int(duration), intensity=int(intensity))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"op": self.op.name.lower(), "duration": int(self.duration)}
        if self.intensity is not None:
            payload["intensity"] = int(self.intensity)
        return payload
