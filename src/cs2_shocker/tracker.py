from __future__ import annotations

from dataclasses import replace
import threading

from .gamestate import MapPhase, RoundPhase, Snapshot
from .models import DamageSurvived, Death, MatchStarted, MatchState, PlayerState, RoundStarted, Transition


def detect_transitions(state: MatchState, snapshot: Snapshot) -> tuple[list[Transition], MatchState]:
    """
    Merge one partial snapshot into ``state``.

    Rules run in a fixed order and every comparison reads the value as it stood
    before the rule that overwrites it:
    - provider identity is applied first so the player gate sees the freshest id
    - warmup -> live on the map emits MatchStarted and resets the state
    - freezetime -> live on the round emits RoundStarted
    - player rules only run while the map is live and the report is for the tracked id
    - the first matching player report initialises PlayerState without emitting anything
    - damage and death are evaluated independently, then the stats are synced
    """
    transitions: list[Transition] = []

    if snapshot.provider is not None:
        state = replace(state, steam_id=snapshot.provider.steamid)

    map_phase = snapshot.map_phase
    if map_phase is not None:
        if state.map_phase == MapPhase.WARMUP and map_phase == MapPhase.LIVE:
            transitions.append(MatchStarted())
            state = state.reset()
        state = replace(state, map_phase=map_phase)

    round_phase = snapshot.round_phase
    if round_phase is not None:
        if state.round_phase == RoundPhase.FREEZETIME and round_phase == RoundPhase.LIVE:
            transitions.append(RoundStarted())
        state = replace(state, round_phase=round_phase)

    if state.map_phase != MapPhase.LIVE:
        return transitions, state

    report = snapshot.player
    if report is None or report.steamid != state.steam_id:
        return transitions, state

    synced = PlayerState(
        health=report.health,
        armor=report.armor,
        kills=report.kills,
        deaths=report.deaths,
    )
    old = state.player
    if old is None:
        return transitions, replace(state, player=synced)

    if old.health > report.health and report.health > 0:
        transitions.append(DamageSurvived(delta=old.health - report.health))
    if report.deaths > old.deaths:
        transitions.append(Death(health_at_death=old.health))

    return transitions, replace(state, player=synced)


class MatchTracker:
    """Owns the single MatchState; snapshots are merged one at a time."""

    def __init__(self, state: MatchState | None = None) -> None:
        self._lock = threading.Lock()
        self._state = state or MatchState()
        self._snapshots_applied = 0

    def apply_snapshot(self, snapshot: Snapshot) -> list[Transition]:
        with self._lock:
            transitions, self._state = detect_transitions(self._state, snapshot)
            self._snapshots_applied += 1
            return transitions

    def state(self) -> MatchState:
        with self._lock:
            return self._state

    def snapshots_applied(self) -> int:
        with self._lock:
            return self._snapshots_applied
