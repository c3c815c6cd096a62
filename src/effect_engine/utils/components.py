from __future__ import annotations

from typing import Type, TypeVar

from esper import World

from effect_engine.components.health import Health

C = TypeVar("C")


def safe_component(world: World, entity: int, component_type: Type[C]) -> C | None:
    """Return the entity's component, or ``None`` when the entity or component is gone."""

    try:
        return world.component_for_entity(entity, component_type)
    except KeyError:
        return None


def entity_is_alive(world: World, entity: int) -> bool:
    """True while the entity exists and, if it tracks health, still has some."""

    if entity is None or not world.entity_exists(entity):
        return False
    health = safe_component(world, entity, Health)
    if health is None:
        return True
    return health.is_alive()
