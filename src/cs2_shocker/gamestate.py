"""Decoding of CS2 game state integration payloads.

Every sub-report is optional. Decoding never raises: malformed sub-reports decode
as absent so the tracker sees a reduced snapshot instead of an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class MapPhase(str, Enum):
    WARMUP = "warmup"
    INTERMISSION = "intermission"
    GAMEOVER = "gameover"
    LIVE = "live"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: object) -> "MapPhase":
        token = str(raw).strip().lower()
        for phase in cls:
            if phase.value == token:
                return phase
        return cls.UNKNOWN


class RoundPhase(str, Enum):
    FREEZETIME = "freezetime"
    LIVE = "live"
    OVER = "over"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: object) -> "RoundPhase":
        token = str(raw).strip().lower()
        for phase in cls:
            if phase.value == token:
                return phase
        return cls.UNKNOWN


def _as_dict(raw: object) -> dict[str, Any] | None:
    return raw if isinstance(raw, dict) else None


def _to_int(raw: Any, default: int | None = 0) -> int | None:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class ProviderReport:
    steamid: str
    name: str = ""
    appid: int = 0
    version: int = 0
    timestamp: int = 0

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "ProviderReport":
        # a missing or empty steamid is kept and clears the tracked identity
        return ProviderReport(
            steamid=str(payload.get("steamid", "")).strip(),
            name=str(payload.get("name", "")),
            appid=_to_int(payload.get("appid")) or 0,
            version=_to_int(payload.get("version")) or 0,
            timestamp=_to_int(payload.get("timestamp")) or 0,
        )


@dataclass(frozen=True)
class MapReport:
    phase: MapPhase | None
    mode: str = ""
    name: str = ""

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "MapReport":
        return MapReport(
            phase=MapPhase.parse(payload["phase"]) if "phase" in payload else None,
            mode=str(payload.get("mode", "")),
            name=str(payload.get("name", "")),
        )


@dataclass(frozen=True)
class RoundReport:
    phase: RoundPhase | None

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "RoundReport":
        return RoundReport(phase=RoundPhase.parse(payload["phase"]) if "phase" in payload else None)


@dataclass(frozen=True)
class PlayerReport:
    steamid: str
    health: int
    armor: int
    kills: int
    deaths: int
    name: str = ""
    helmet: bool = False
    flashed: int = 0
    smoked: int = 0
    burning: int = 0
    money: int = 0
    round_kills: int = 0
    round_killhs: int = 0
    equip_value: int = 0
    assists: int = 0
    mvps: int = 0
    score: int = 0

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "PlayerReport | None":
        steamid = str(payload.get("steamid", "")).strip()
        state = _as_dict(payload.get("state"))
        stats = _as_dict(payload.get("match_stats"))
        if not steamid or state is None or stats is None:
            return None
        health = _to_int(state.get("health"), None)
        deaths = _to_int(stats.get("deaths"), None)
        if health is None or deaths is None:
            return None
        return PlayerReport(
            steamid=steamid,
            health=min(100, max(0, health)),
            armor=max(0, _to_int(state.get("armor")) or 0),
            kills=max(0, _to_int(stats.get("kills")) or 0),
            deaths=max(0, deaths),
            name=str(payload.get("name", "")),
            helmet=bool(state.get("helmet", False)),
            flashed=_to_int(state.get("flashed")) or 0,
            smoked=_to_int(state.get("smoked")) or 0,
            burning=_to_int(state.get("burning")) or 0,
            money=_to_int(state.get("money")) or 0,
            round_kills=_to_int(state.get("round_kills")) or 0,
            round_killhs=_to_int(state.get("round_killhs")) or 0,
            equip_value=_to_int(state.get("equip_value")) or 0,
            assists=_to_int(stats.get("assists")) or 0,
            mvps=_to_int(stats.get("mvps")) or 0,
            score=_to_int(stats.get("score")) or 0,
        )


@dataclass(frozen=True)
class Snapshot:
    provider: ProviderReport | None = None
    map: MapReport | None = None
    round: RoundReport | None = None
    player: PlayerReport | None = None

    @staticmethod
    def from_dict(payload: object) -> "Snapshot":
        data = _as_dict(payload)
        if data is None:
            return Snapshot()

        provider = _as_dict(data.get("provider"))
        map_raw = _as_dict(data.get("map"))
        round_raw = _as_dict(data.get("round"))
        player = _as_dict(data.get("player"))
        return Snapshot(
            provider=ProviderReport.from_dict(provider) if provider is not None else None,
            map=MapReport.from_dict(map_raw) if map_raw is not None else None,
            round=RoundReport.from_dict(round_raw) if round_raw is not None else None,
            player=PlayerReport.from_dict(player) if player is not None else None,
        )

    @property
    def map_phase(self) -> MapPhase | None:
        return self.map.phase if self.map is not None else None

    @property
    def round_phase(self) -> RoundPhase | None:
        return self.round.phase if self.round is not None else None
