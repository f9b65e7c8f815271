from __future__ import annotations

import random

from .config import ShockConfig
from .models import ActuationCommand, DamageSurvived, Death, MatchStarted, RoundStarted, Transition

MATCH_START_BEEP_SECONDS = 2
ROUND_START_BEEP_SECONDS = 1

_system_rng = random.SystemRandom()


def shock_for_death(death: Death, cfg: ShockConfig, *, rng: random.Random | None = None) -> ActuationCommand:
    if cfg.mode == "last_hit_percentage":
        health = min(100, max(0, int(death.health_at_death)))
        return ActuationCommand.shock(
            intensity=(health * int(cfg.max_intensity)) // 100,
            duration=(health * int(cfg.max_duration)) // 100,
        )

    draw = rng or _system_rng
    intensity = draw.randint(int(cfg.min_intensity), int(cfg.max_intensity))
    duration = draw.randint(int(cfg.min_duration), int(cfg.max_duration))
    return ActuationCommand.shock(intensity=intensity, duration=duration)


def decide(
    transition: Transition,
    cfg: ShockConfig,
    *,
    rng: random.Random | None = None,
) -> ActuationCommand | None:
    if isinstance(transition, MatchStarted):
        return ActuationCommand.beep(MATCH_START_BEEP_SECONDS) if cfg.beep_on_match_start else None
    if isinstance(transition, RoundStarted):
        return ActuationCommand.beep(ROUND_START_BEEP_SECONDS) if cfg.beep_on_round_start else None
    if isinstance(transition, DamageSurvived):
        # detected but not actuated
        return None
    if isinstance(transition, Death):
        return shock_for_death(transition, cfg, rng=rng)
    return None
