from __future__ import annotations

import logging

from esper import World

from effect_engine.components.progression import Progression
from effect_engine.config import EffectConfig
from effect_engine.events.bus import EVENT_LEVEL_CHANGED, EVENT_XP_AWARD, EVENT_XP_GAINED, EventBus
from effect_engine.utils.components import safe_component

logger = logging.getLogger(__name__)


class ProgressionSystem:
    """Books experience into ``Progression`` components and derives levels.

    ``award_xp`` has two write paths. The notifying path emits
    ``EVENT_XP_GAINED`` so listeners (the body XP multiplier hook) can react.
    Listeners that themselves award XP use ``notify=False`` so their bonus is
    not fed back into the same notification.
    """

    def __init__(self, world: World, event_bus: EventBus, config: EffectConfig | None = None) -> None:
        self.world = world
        self.event_bus = event_bus
        self.config = config or EffectConfig()
        setattr(world, "progression_system", self)
        self.event_bus.subscribe(EVENT_XP_AWARD, self._on_xp_award)

    def award_xp(self, entity: int, skill: str, amount: float, *, notify: bool = True) -> float:
        """Add ``amount`` XP to ``skill`` and return the XP actually applied."""
        progression = safe_component(self.world, entity, Progression)
        if progression is None or not amount:
            return 0.0
        before = progression.xp.get(skill, 0.0)
        after = progression.add_xp(skill, float(amount))
        applied = after - before
        self._sync_level(entity, progression, skill)
        if notify and applied:
            self.event_bus.emit(EVENT_XP_GAINED, entity=entity, skill=skill, amount=applied)
        return applied

    def level_for_xp(self, xp: float) -> int:
        if self.config.xp_per_level <= 0:
            return 0
        return min(self.config.max_level, int(xp // self.config.xp_per_level))

    def _on_xp_award(self, sender, **payload) -> None:
        entity = payload.get("entity")
        skill = payload.get("skill")
        if entity is None or not skill:
            return
        try:
            amount = float(payload.get("amount", 0.0))
        except (TypeError, ValueError):
            logger.warning("Ignoring XP award with non-numeric amount %r", payload.get("amount"))
            return
        self.award_xp(int(entity), str(skill), amount)

    def _sync_level(self, entity: int, progression: Progression, skill: str) -> None:
        previous = progression.level(skill)
        level = self.level_for_xp(progression.xp.get(skill, 0.0))
        if level == previous:
            return
        progression.levels[skill] = level
        self.event_bus.emit(
            EVENT_LEVEL_CHANGED,
            entity=entity,
            skill=skill,
            previous=previous,
            level=level,
        )
