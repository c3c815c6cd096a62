from __future__ import annotations

from typing import Iterable, Mapping, Tuple

from esper import World

from effect_engine.components.effect_subject import EffectSubject
from effect_engine.components.health import Health
from effect_engine.components.progression import Progression
from effect_engine.components.stats import Stats
from effect_engine.config import EffectConfig
from effect_engine.constants import (
    STAT_ENDURANCE,
    STAT_FATIGUE,
    STAT_HUNGER,
    STAT_THIRST,
    STIFFNESS_MAX,
    STIFFNESS_STATS,
)
from effect_engine.effects.catalog import EffectCatalog
from effect_engine.effects.factory import ensure_default_effects_registered
from effect_engine.effects.registry import EffectRegistry
from effect_engine.events.bus import EventBus
from effect_engine.providers.base import EffectProvider
from effect_engine.providers.buff_provider import BuffEffectProvider
from effect_engine.providers.plugins import discover_providers
from effect_engine.systems.buff_lifecycle_system import BuffLifecycleSystem
from effect_engine.systems.effect_hooks import EffectHooks
from effect_engine.systems.effect_system import EffectSystem
from effect_engine.systems.progression_system import ProgressionSystem


def default_stat_values() -> dict[str, float]:
    values = {
        STAT_HUNGER: 0.0,
        STAT_THIRST: 0.0,
        STAT_FATIGUE: 0.0,
        STAT_ENDURANCE: 1.0,
    }
    for key in STIFFNESS_STATS:
        values[key] = 0.0
    return values


def default_stat_bounds() -> dict[str, Tuple[float, float]]:
    return {key: (0.0, STIFFNESS_MAX) for key in STIFFNESS_STATS}


def create_world(
    event_bus: EventBus,
    *,
    config: EffectConfig | None = None,
    catalog: EffectCatalog | None = None,
    providers: Iterable[EffectProvider] = (),
    with_buffs: bool = True,
    discover_plugins: bool = False,
) -> World:
    """Build a world with the effect engine systems wired to ``event_bus``.

    The systems are reachable as ``world.effect_system``,
    ``world.progression_system``, ``world.effect_hooks`` and, when
    ``with_buffs`` is set, ``world.buff_lifecycle_system``. With
    ``discover_plugins`` the providers found by
    ``providers.plugins.discover_providers`` are registered after ``providers``.
    """
    world = World()
    config = config or EffectConfig()

    # Register core effect definitions if not already present.
    catalog = ensure_default_effects_registered(catalog)

    # Progression first so the applicator routes XP through it.
    ProgressionSystem(world, event_bus, config)
    effect_system = EffectSystem(
        world,
        event_bus,
        registry=EffectRegistry(catalog),
        config=config,
    )
    EffectHooks(world, event_bus, effect_system, config)
    if with_buffs:
        BuffLifecycleSystem(world, event_bus)
        effect_system.register_provider(BuffEffectProvider(world))
    for provider in providers:
        effect_system.register_provider(provider)
    if discover_plugins:
        for provider in discover_providers().values():
            effect_system.register_provider(provider)
    return world


def create_subject(
    world: World,
    *,
    label: str = "",
    stats: Mapping[str, float] | None = None,
    bounds: Mapping[str, Tuple[float, float]] | None = None,
    health: float = 100.0,
    max_hp: float = 100.0,
    levels: Mapping[str, int] | None = None,
    xp: Mapping[str, float] | None = None,
) -> int:
    """Create an entity the effect system will pick up on the next tick."""
    values = default_stat_values()
    values.update(stats or {})
    stat_bounds = default_stat_bounds()
    stat_bounds.update(bounds or {})
    return world.create_entity(
        EffectSubject(label=label),
        Stats(values=values, bounds=stat_bounds),
        Health(current=health, max_hp=max_hp),
        Progression(levels=dict(levels or {}), xp=dict(xp or {})),
    )
