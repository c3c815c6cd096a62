from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Tuple

from esper import World

from effect_engine.events.bus import EventBus
from effect_engine.providers.base import EffectSpec
from effect_engine.systems.effect_system import EffectSystem
from effect_engine.world import create_subject, create_world


@dataclass
class RecordingProvider:
    """Provider whose output can be swapped between ticks and whose calls are counted."""

    source_id: str
    effects: List[EffectSpec] = field(default_factory=list)
    priority: int = 0
    applies: bool = True
    fail: bool = False
    calls: int = 0

    def should_apply(self, entity: int) -> bool:
        return self.applies

    def calculate_effects(self, entity: int) -> Iterable[EffectSpec]:
        self.calls += 1
        if self.fail:
            raise RuntimeError(f"{self.source_id} exploded")
        return list(self.effects)


def build_engine(*, with_buffs: bool = False, **kwargs) -> Tuple[EventBus, World, EffectSystem]:
    """Create a bus and a world wired with the effect engine systems."""

    bus = EventBus()
    world = create_world(bus, with_buffs=with_buffs, **kwargs)
    return bus, world, world.effect_system


def spawn_subject(world: World, stats: Mapping[str, float] | None = None, **kwargs) -> int:
    return create_subject(world, stats=stats, **kwargs)
