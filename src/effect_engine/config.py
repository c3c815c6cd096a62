from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

from effect_engine.constants import (
    BASE_SWING_COST,
    DECAY_RESTORE_XP,
    DRIFT_DECREASE,
    DRIFT_INCREASE,
    MAX_LEVEL,
    MAX_XP_MULTIPLIER,
    MIN_SWING_REFUND,
    MIN_XP_MULTIPLIER,
    MOODLE_EPSILON,
    SKILL_BODY,
    SKILL_FITNESS,
    SKILL_STRENGTH,
    STAT_ENDURANCE,
    STAT_FATIGUE,
    STAT_HUNGER,
    STAT_THIRST,
    STIFFNESS_EPSILON,
    STIFFNESS_STATS,
    WEIGHT_COST_MULTIPLIER,
    XP_PER_LEVEL,
)


@dataclass(frozen=True, slots=True)
class ReductionBinding:
    """Links a reduction effect to the stats whose external drift it dampens.

    ``direction`` is the way the stat moves while the subject is under strain
    (hunger rises, endurance falls). Only drift in that direction is reduced.
    """

    effect: str
    stats: tuple[str, ...]
    direction: str = DRIFT_INCREASE
    epsilon: float = MOODLE_EPSILON

    def __post_init__(self) -> None:
        if self.direction not in (DRIFT_INCREASE, DRIFT_DECREASE):
            raise ValueError(f"Unknown drift direction '{self.direction}'")


@dataclass(frozen=True, slots=True)
class XpGrantBinding:
    """Flat XP granted per tick, scaled by a multiplier effect."""

    effect: str
    skill: str
    multiplier_effect: str | None = None


def _default_reductions() -> tuple[ReductionBinding, ...]:
    return (
        ReductionBinding("hunger_reduction", (STAT_HUNGER,)),
        ReductionBinding("thirst_reduction", (STAT_THIRST,)),
        ReductionBinding("fatigue_reduction", (STAT_FATIGUE,)),
        ReductionBinding("endurance_reduction", (STAT_ENDURANCE,), direction=DRIFT_DECREASE),
        ReductionBinding("stiffness_reduction", STIFFNESS_STATS, epsilon=STIFFNESS_EPSILON),
    )


def _default_xp_grants() -> tuple[XpGrantBinding, ...]:
    return (
        XpGrantBinding("fitness_xp", SKILL_FITNESS, "fitness_xp_multiplier"),
        XpGrantBinding("strength_xp", SKILL_STRENGTH, "strength_xp_multiplier"),
    )


@dataclass
class EffectConfig:
    """Tunable parameters for the effect engine."""

    reductions: tuple[ReductionBinding, ...] = field(default_factory=_default_reductions)
    xp_grants: tuple[XpGrantBinding, ...] = field(default_factory=_default_xp_grants)
    stiffness_stats: tuple[str, ...] = STIFFNESS_STATS
    # Progression levels whose change implicitly marks an entity for update.
    watched_levels: tuple[str, ...] = (SKILL_BODY,)
    # Decay protection: protected skills may not fall below the anchor level.
    decay_anchor_skill: str = SKILL_BODY
    decay_protected_skills: tuple[str, ...] = (SKILL_FITNESS, SKILL_STRENGTH)
    decay_restore_xp: float = DECAY_RESTORE_XP
    # Hooks
    body_xp_skill: str = SKILL_BODY
    min_xp_multiplier: float = MIN_XP_MULTIPLIER
    max_xp_multiplier: float = MAX_XP_MULTIPLIER
    base_swing_cost: float = BASE_SWING_COST
    weight_cost_multiplier: float = WEIGHT_COST_MULTIPLIER
    min_swing_refund: float = MIN_SWING_REFUND
    # Progression
    xp_per_level: float = XP_PER_LEVEL
    max_level: int = MAX_LEVEL

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EffectConfig":
        """Build a config from plain data, e.g. a parsed JSON document.

        Binding lists are given as lists of mappings; tuple-valued fields
        accept any sequence. Unknown keys raise ``ValueError``.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        overrides: dict[str, Any] = {}
        for key, value in data.items():
            if key == "reductions":
                overrides[key] = tuple(
                    ReductionBinding(
                        effect=str(item["effect"]),
                        stats=tuple(item["stats"]),
                        direction=str(item.get("direction", DRIFT_INCREASE)),
                        epsilon=float(item.get("epsilon", MOODLE_EPSILON)),
                    )
                    for item in value
                )
            elif key == "xp_grants":
                overrides[key] = tuple(
                    XpGrantBinding(
                        effect=str(item["effect"]),
                        skill=str(item["skill"]),
                        multiplier_effect=item.get("multiplier_effect"),
                    )
                    for item in value
                )
            elif isinstance(value, (list, tuple)):
                overrides[key] = tuple(value)
            else:
                overrides[key] = value
        return replace(cls(), **overrides)
