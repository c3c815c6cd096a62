from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from esper import World

from effect_engine.components.effect_subject import EffectSubject
from effect_engine.components.progression import Progression
from effect_engine.config import EffectConfig
from effect_engine.effects.registry import EffectBreakdown, EffectRegistry
from effect_engine.events.bus import (
    EVENT_EFFECT_SOURCE_CHANGED,
    EVENT_EFFECTS_UPDATED,
    EVENT_ENTITY_REMOVED,
    EVENT_LEVEL_CHANGED,
    EVENT_TICK,
    EventBus,
)
from effect_engine.providers.base import EffectProvider, register_effects
from effect_engine.systems.effect_applicator import EffectApplicator
from effect_engine.utils.components import entity_is_alive, safe_component

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UpdateTracking:
    """Per-entity orchestration state."""

    needs_update: bool = True
    watched_levels: Dict[str, int] = field(default_factory=dict)


class EffectSystem:
    """Collects provider output into the registry and drives the applicator.

    Once per macro tick the host calls ``apply_effects_to_all_entities`` (or
    emits ``EVENT_TICK``). Each subject is recollected only when something
    marked it dirty, or when one of the watched progression levels moved.
    """

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        *,
        registry: EffectRegistry | None = None,
        applicator: EffectApplicator | None = None,
        config: EffectConfig | None = None,
        providers: Iterable[EffectProvider] = (),
    ) -> None:
        self.world = world
        self.event_bus = event_bus
        self.config = config or EffectConfig()
        self.registry = registry or EffectRegistry()
        if applicator is None:
            progression_system = getattr(world, "progression_system", None)
            applicator = EffectApplicator(
                world,
                self.registry,
                self.config,
                event_bus=event_bus,
                award_xp=progression_system.award_xp if progression_system is not None else None,
            )
        self.applicator = applicator
        self._providers: List[EffectProvider] = []
        self._tracking: Dict[int, UpdateTracking] = {}
        setattr(world, "effect_system", self)
        self.event_bus.subscribe(EVENT_TICK, self._on_tick)
        self.event_bus.subscribe(EVENT_EFFECT_SOURCE_CHANGED, self._on_source_changed)
        self.event_bus.subscribe(EVENT_LEVEL_CHANGED, self._on_source_changed)
        self.event_bus.subscribe(EVENT_ENTITY_REMOVED, self._on_entity_removed)
        for provider in providers:
            self.register_provider(provider)

    # Providers ----------------------------------------------------------
    def register_provider(self, provider: EffectProvider) -> bool:
        source_id = getattr(provider, "source_id", None)
        if not source_id or not callable(getattr(provider, "calculate_effects", None)):
            logger.error("Rejected invalid effect provider %r", provider)
            return False
        if any(existing.source_id == source_id for existing in self._providers):
            logger.warning("Provider '%s' already registered, skipping", source_id)
            return False
        # Copy on write so an in-flight iteration keeps its snapshot.
        self._providers = [*self._providers, provider]
        self._mark_all_dirty()
        logger.info("Registered effect provider '%s'", source_id)
        return True

    def unregister_provider(self, source_id: str) -> bool:
        remaining = [p for p in self._providers if p.source_id != source_id]
        if len(remaining) == len(self._providers):
            return False
        self._providers = remaining
        for entity in self.registry.entities():
            self.registry.unregister(entity, source_id)
        self._mark_all_dirty()
        logger.info("Unregistered effect provider '%s'", source_id)
        return True

    @property
    def providers(self) -> tuple[EffectProvider, ...]:
        return tuple(self._providers)

    # Update -------------------------------------------------------------
    def mark_dirty(self, entity: int) -> None:
        if entity is None:
            return
        self._tracking_for(entity).needs_update = True
        self.registry.mark_dirty(entity)

    def needs_update(self, entity: int) -> bool:
        tracking = self._tracking_for(entity)
        # Observe every watched level so the snapshot stays current even when
        # the entity is already flagged.
        changed = self._watched_levels_changed(entity, tracking)
        return tracking.needs_update or changed

    def update_entity(self, entity: int, force: bool = False) -> bool:
        """Recollect every provider's contributions for ``entity``.

        Returns ``True`` when a recollection happened.
        """
        if not entity_is_alive(self.world, entity):
            return False
        if not force and not self.needs_update(entity):
            return False
        tracking = self._tracking_for(entity)
        providers = self._providers
        logger.debug("Updating effects for entity %s (%d providers)", entity, len(providers))

        self.registry.clear(entity)
        for provider in providers:
            register_effects(provider, entity, self.registry)
        self.registry.recalculate(entity)
        tracking.needs_update = False

        self.event_bus.emit(
            EVENT_EFFECTS_UPDATED,
            entity=entity,
            totals=self.registry.get_all(entity),
        )
        return True

    def update_all_entities(self) -> None:
        for entity in self._subjects():
            self.update_entity(entity)

    # Application --------------------------------------------------------
    def apply_effects(self, entity: int) -> bool:
        if not entity_is_alive(self.world, entity):
            return False
        self.update_entity(entity)
        return self.applicator.apply_all(entity)

    def apply_effects_to_all_entities(self) -> int:
        """Apply effects to every subject; returns how many were applied."""
        applied = 0
        for entity in self._subjects():
            try:
                if self.apply_effects(entity):
                    applied += 1
            except Exception:
                logger.exception("Effect application failed for entity %s", entity)
        return applied

    # Teardown -----------------------------------------------------------
    def on_entity_removed(self, entity: int) -> None:
        """Forget everything keyed by ``entity``. The host must call this on removal."""
        self.registry.remove_entity(entity)
        self.applicator.remove_entity(entity)
        self._tracking.pop(entity, None)

    def reset(self, entity: int) -> None:
        self.registry.clear(entity)
        self.applicator.reset_stats(entity)
        self.mark_dirty(entity)
        logger.info("Reset effects for entity %s", entity)

    # Queries ------------------------------------------------------------
    def get_effect(self, entity: int, effect_name: str, default: float | None = None) -> float:
        return self.registry.get(entity, effect_name, default)

    def has_effect(self, entity: int, effect_name: str) -> bool:
        return self.registry.has_effect(entity, effect_name)

    def get_effect_breakdown(self, entity: int, effect_name: str) -> EffectBreakdown | None:
        return self.registry.get_details(entity, effect_name)

    def get_all_effects(self, entity: int) -> Dict[str, float]:
        return self.registry.get_all(entity)

    def tracked_entities(self) -> tuple[int, ...]:
        return tuple(self._tracking)

    def debug_report(self, entity: int) -> str:
        """Render registry contents, session stats and provider state for one entity."""
        lines = [f"=== Effects: entity {entity} ==="]
        totals = self.registry.get_all(entity)
        if not totals:
            lines.append("  (no active effects)")
        for name in totals:
            details = self.registry.get_details(entity, name)
            if details is None:
                continue
            lines.append(f"  {name}: {details.total:.4f} ({details.stacking_rule.value})")
            for source in details.sources:
                meta = ""
                if source.metadata:
                    meta = " [" + ", ".join(f"{k}={v}" for k, v in source.metadata.items()) + "]"
                lines.append(f"    - {source.source_id}: {source.value:.4f} (priority: {source.priority}){meta}")

        session = self.applicator.get_session_stats(entity)
        lines.append(f"=== Session: {session.applications} applications ===")
        for name, amount in sorted(session.saved.items()):
            lines.append(f"  {name} saved: {amount:.6f}")
        for name, amount in sorted(session.produced.items()):
            lines.append(f"  {name} produced: {amount:.4f}")
        if session.decay_protection_triggers:
            lines.append(f"  decay protection triggers: {session.decay_protection_triggers}")

        lines.append("=== Providers ===")
        for index, provider in enumerate(self._providers, start=1):
            try:
                active = bool(provider.should_apply(entity))
            except Exception:
                logger.exception("Provider '%s' should_apply failed", provider.source_id)
                active = False
            lines.append(f"  {index}. {provider.source_id} (active: {active}, priority: {provider.priority})")
        report = "\n".join(lines)
        logger.debug("%s", report)
        return report

    # Event handlers -----------------------------------------------------
    def _on_tick(self, sender, **kwargs) -> None:
        self.apply_effects_to_all_entities()

    def _on_source_changed(self, sender, **payload) -> None:
        entity = payload.get("entity")
        if entity is None or not self.world.entity_exists(int(entity)):
            return
        self.mark_dirty(int(entity))

    def _on_entity_removed(self, sender, **payload) -> None:
        entity = payload.get("entity")
        if entity is None:
            return
        self.on_entity_removed(int(entity))

    # Internal helpers ---------------------------------------------------
    def _subjects(self) -> list[int]:
        return sorted(entity for entity, _ in self.world.get_component(EffectSubject))

    def _tracking_for(self, entity: int) -> UpdateTracking:
        tracking = self._tracking.get(entity)
        if tracking is None:
            tracking = UpdateTracking()
            self._tracking[entity] = tracking
        return tracking

    def _mark_all_dirty(self) -> None:
        for entity in set(self._tracking) | set(self.registry.entities()):
            self.mark_dirty(entity)

    def _watched_levels_changed(self, entity: int, tracking: UpdateTracking) -> bool:
        if not self.config.watched_levels:
            return False
        progression = safe_component(self.world, entity, Progression)
        if progression is None:
            return False
        changed = False
        for skill in self.config.watched_levels:
            level = progression.level(skill)
            if tracking.watched_levels.get(skill) != level:
                tracking.watched_levels[skill] = level
                changed = True
        return changed
