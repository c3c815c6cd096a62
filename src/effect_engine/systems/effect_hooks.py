from __future__ import annotations

import logging
from typing import Dict

from esper import World

from effect_engine.components.progression import Progression
from effect_engine.components.stats import Stats
from effect_engine.config import EffectConfig
from effect_engine.constants import STAT_ENDURANCE
from effect_engine.events.bus import EVENT_WEAPON_SWING, EVENT_XP_GAINED, EventBus
from effect_engine.systems.effect_system import EffectSystem
from effect_engine.utils.components import entity_is_alive, safe_component

logger = logging.getLogger(__name__)

PERCEPTION_EFFECTS = (
    "zombie_attraction_reduction",
    "zombie_sight_reduction",
    "zombie_hearing_reduction",
)


class EffectHooks:
    """Event-driven effects that do not fit the per-tick applicator.

    Swing refunds react to ``EVENT_WEAPON_SWING`` and the body XP multiplier
    reacts to ``EVENT_XP_GAINED``. Both read the live totals from the
    effect system.
    """

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        effect_system: EffectSystem,
        config: EffectConfig | None = None,
        *,
        endurance_stat: str = STAT_ENDURANCE,
    ) -> None:
        self.world = world
        self.event_bus = event_bus
        self.effect_system = effect_system
        self.config = config or effect_system.config
        self.endurance_stat = endurance_stat
        setattr(world, "effect_hooks", self)
        self.event_bus.subscribe(EVENT_WEAPON_SWING, self._on_weapon_swing)
        self.event_bus.subscribe(EVENT_XP_GAINED, self._on_xp_gained)

    def swing_refund(self, entity: int, weapon_weight: float) -> float:
        """Return the endurance refunded for one swing (0.0 when below the noise floor)."""
        reduction = self.effect_system.get_effect(entity, "attack_endurance_reduction", 0.0)
        if reduction <= 0:
            return 0.0
        cost = self.config.base_swing_cost + max(0.0, float(weapon_weight)) * self.config.weight_cost_multiplier
        refund = cost * reduction
        if refund <= self.config.min_swing_refund:
            return 0.0
        return refund

    def apply_swing_refund(self, entity: int, weapon_weight: float) -> float:
        if not entity_is_alive(self.world, entity):
            return 0.0
        stats = safe_component(self.world, entity, Stats)
        if stats is None:
            return 0.0
        current = stats.get(self.endurance_stat)
        if current is None:
            return 0.0
        refund = self.swing_refund(entity, weapon_weight)
        if not refund:
            return 0.0
        stored = stats.set(self.endurance_stat, current + refund)
        logger.debug("Entity %s swing refund %.4f endurance", entity, stored - current)
        return stored - current

    def apply_body_xp_bonus(self, entity: int, skill: str, amount: float) -> float:
        """Scale body XP by ``body_xp_multiplier``; returns the bonus applied."""
        if skill != self.config.body_xp_skill or not amount:
            return 0.0
        multiplier = self.effect_system.get_effect(entity, "body_xp_multiplier", 1.0)
        multiplier = min(self.config.max_xp_multiplier, max(self.config.min_xp_multiplier, multiplier))
        bonus = amount * (multiplier - 1.0)
        if not bonus:
            return 0.0
        progression_system = getattr(self.world, "progression_system", None)
        if progression_system is not None:
            # Non-notifying write: the bonus must not come back through EVENT_XP_GAINED.
            return progression_system.award_xp(entity, skill, bonus, notify=False)
        progression = safe_component(self.world, entity, Progression)
        if progression is None:
            return 0.0
        before = progression.xp.get(skill, 0.0)
        return progression.add_xp(skill, bonus) - before

    def perception_modifiers(self, entity: int) -> Dict[str, float]:
        modifiers = {
            name.removeprefix("zombie_").removesuffix("_reduction"): self.effect_system.get_effect(entity, name, 0.0)
            for name in PERCEPTION_EFFECTS
        }
        modifiers["max"] = max(modifiers.values())
        return modifiers

    def _on_weapon_swing(self, sender, **payload) -> None:
        entity = payload.get("entity")
        if entity is None:
            return
        self.apply_swing_refund(int(entity), payload.get("weapon_weight") or 0.0)

    def _on_xp_gained(self, sender, **payload) -> None:
        entity = payload.get("entity")
        skill = payload.get("skill")
        if entity is None or not skill:
            return
        self.apply_body_xp_bonus(int(entity), str(skill), float(payload.get("amount") or 0.0))
