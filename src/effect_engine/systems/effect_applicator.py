from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict

from esper import World

from effect_engine.components.health import Health
from effect_engine.components.progression import Progression
from effect_engine.components.stats import Stats
from effect_engine.config import EffectConfig, ReductionBinding
from effect_engine.constants import DRIFT_INCREASE
from effect_engine.effects.registry import EffectRegistry
from effect_engine.events.bus import EVENT_DECAY_PROTECTION_TRIGGERED, EventBus
from effect_engine.utils.components import entity_is_alive, safe_component

logger = logging.getLogger(__name__)

XpSink = Callable[[int, str, float], float]


@dataclass(slots=True)
class StatTracking:
    """Last observed values used to isolate one tick's external drift.

    Attributes:
        last_observed: Post-mutation value per tracked stat key.
        last_levels: Last observed level per decay-protected skill.
    """

    last_observed: Dict[str, float] = field(default_factory=dict)
    last_levels: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class SessionStats:
    """Diagnostics only; never read back by the application logic."""

    saved: Dict[str, float] = field(default_factory=lambda: defaultdict(float))
    produced: Dict[str, float] = field(default_factory=lambda: defaultdict(float))
    decay_protection_triggers: int = 0
    applications: int = 0

    def copy(self) -> "SessionStats":
        return SessionStats(
            saved=defaultdict(float, self.saved),
            produced=defaultdict(float, self.produced),
            decay_protection_triggers=self.decay_protection_triggers,
            applications=self.applications,
        )


class EffectApplicator:
    """Applies combined effect totals to an entity's live stats.

    Reductions are delta based: each tick only the change the host made since
    the previous tick is dampened, and the snapshot is always taken after this
    applicator wrote the stat. Regeneration is a flat per-tick amount.
    """

    def __init__(
        self,
        world: World,
        registry: EffectRegistry,
        config: EffectConfig | None = None,
        *,
        event_bus: EventBus | None = None,
        award_xp: XpSink | None = None,
    ) -> None:
        self.world = world
        self.registry = registry
        self.config = config or EffectConfig()
        self.event_bus = event_bus
        self._award_xp = award_xp or self._add_xp_directly
        self._tracking: Dict[int, StatTracking] = {}
        self._sessions: Dict[int, SessionStats] = {}

    # Public API ---------------------------------------------------------
    def apply_all(self, entity: int) -> bool:
        """Apply reductions then regeneration. Returns ``False`` when the entity was skipped."""
        if not entity_is_alive(self.world, entity):
            return False
        if not self.apply_reductions(entity):
            return False
        self.apply_regeneration(entity)
        self._session(entity).applications += 1
        return True

    def apply_reductions(self, entity: int) -> bool:
        stats = safe_component(self.world, entity, Stats)
        if stats is None:
            logger.warning("Entity %s has no Stats component; skipping effect application", entity)
            return False
        tracking = self._tracking_for(entity)
        session = self._session(entity)
        for binding in self.config.reductions:
            reduction = self.registry.get(entity, binding.effect, 0.0)
            reduction = min(1.0, max(0.0, reduction))
            for key in binding.stats:
                self._reduce_stat(entity, stats, tracking, session, binding, key, reduction)
        return True

    def apply_regeneration(self, entity: int) -> None:
        tracking = self._tracking_for(entity)
        session = self._session(entity)
        self._apply_health_regen(entity, session)
        self._apply_stiffness_decay(entity, tracking, session)
        self._apply_xp_grants(entity, session)
        self._apply_decay_protection(entity, tracking, session)

    def get_session_stats(self, entity: int) -> SessionStats:
        session = self._sessions.get(entity)
        return session.copy() if session is not None else SessionStats()

    def reset_stats(self, entity: int) -> None:
        self._sessions.pop(entity, None)

    def snapshot(self, entity: int, key: str) -> float | None:
        tracking = self._tracking.get(entity)
        if tracking is None:
            return None
        return tracking.last_observed.get(key)

    def remove_entity(self, entity: int) -> None:
        self._tracking.pop(entity, None)
        self._sessions.pop(entity, None)

    def tracked_entities(self) -> tuple[int, ...]:
        return tuple(set(self._tracking) | set(self._sessions))

    # Reductions ---------------------------------------------------------
    def _reduce_stat(
        self,
        entity: int,
        stats: Stats,
        tracking: StatTracking,
        session: SessionStats,
        binding: ReductionBinding,
        key: str,
        reduction: float,
    ) -> None:
        current = stats.get(key)
        if current is None:
            return
        previous = tracking.last_observed.get(key)
        if previous is not None and reduction > 0:
            increasing = binding.direction == DRIFT_INCREASE
            change = current - previous if increasing else previous - current
            if change > binding.epsilon:
                reduced_amount = change * reduction
                kept = change - reduced_amount
                target = previous + kept if increasing else previous - kept
                current = stats.set(key, target)
                session.saved[binding.effect] += reduced_amount
                logger.debug(
                    "Entity %s %s: %.6f -> %.6f (saved %.6f, %.1f%%)",
                    entity,
                    key,
                    previous,
                    current,
                    reduced_amount,
                    reduction * 100,
                )
        tracking.last_observed[key] = current

    # Regeneration -------------------------------------------------------
    def _apply_health_regen(self, entity: int, session: SessionStats) -> None:
        amount = self.registry.get(entity, "health_regen", 0.0)
        if amount <= 0:
            return
        health = safe_component(self.world, entity, Health)
        if health is None or health.missing() <= 0:
            return
        session.produced["health_regen"] += health.heal(amount)

    def _apply_stiffness_decay(self, entity: int, tracking: StatTracking, session: SessionStats) -> None:
        amount = self.registry.get(entity, "stiffness_decay", 0.0)
        if amount <= 0:
            return
        stats = safe_component(self.world, entity, Stats)
        if stats is None:
            return
        for key in self.config.stiffness_stats:
            current = stats.get(key)
            if current is None or current <= 0:
                continue
            decay = min(current, amount)
            stored = stats.set(key, current - decay)
            session.produced["stiffness_decay"] += current - stored
            # Keep the snapshot post-mutation so our own decay is not read as drift.
            if key in tracking.last_observed:
                tracking.last_observed[key] = stored

    def _apply_xp_grants(self, entity: int, session: SessionStats) -> None:
        for binding in self.config.xp_grants:
            amount = self.registry.get(entity, binding.effect, 0.0)
            if amount <= 0:
                continue
            multiplier = 1.0
            if binding.multiplier_effect:
                multiplier = self.registry.get(entity, binding.multiplier_effect, 1.0)
            total = amount * multiplier
            if total <= 0:
                continue
            self._award_xp(entity, binding.skill, total)
            session.produced[binding.effect] += total

    def _apply_decay_protection(self, entity: int, tracking: StatTracking, session: SessionStats) -> None:
        progression = safe_component(self.world, entity, Progression)
        if progression is None:
            return
        protection = self.registry.get(entity, "decay_protection", 0.0)
        anchor_level = progression.level(self.config.decay_anchor_skill)
        for skill in self.config.decay_protected_skills:
            level = progression.level(skill)
            last_level = tracking.last_levels.get(skill)
            if protection > 0 and last_level is not None and level < last_level:
                protected_floor = min(anchor_level, last_level)
                if level < protected_floor:
                    restored = self.config.decay_restore_xp * protection
                    self._award_xp(entity, skill, restored)
                    session.produced["decay_protection"] += restored
                    session.decay_protection_triggers += 1
                    logger.debug(
                        "Entity %s %s decay protection restored %.1f XP (protection %.0f%%)",
                        entity,
                        skill,
                        restored,
                        protection * 100,
                    )
                    if self.event_bus is not None:
                        self.event_bus.emit(
                            EVENT_DECAY_PROTECTION_TRIGGERED,
                            entity=entity,
                            skill=skill,
                            restored_xp=restored,
                        )
            tracking.last_levels[skill] = level

    # Internal helpers ---------------------------------------------------
    def _tracking_for(self, entity: int) -> StatTracking:
        tracking = self._tracking.get(entity)
        if tracking is None:
            tracking = StatTracking()
            self._tracking[entity] = tracking
        return tracking

    def _session(self, entity: int) -> SessionStats:
        session = self._sessions.get(entity)
        if session is None:
            session = SessionStats()
            self._sessions[entity] = session
        return session

    def _add_xp_directly(self, entity: int, skill: str, amount: float) -> float:
        progression = safe_component(self.world, entity, Progression)
        if progression is None:
            return 0.0
        before = progression.xp.get(skill, 0.0)
        return progression.add_xp(skill, amount) - before
