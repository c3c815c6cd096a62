from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List

from esper import World

from effect_engine.components.buff import Buff, BuffList
from effect_engine.providers.base import EffectSpec

BUFF_SOURCE_ID = "buffs"


class BuffEffectProvider:
    """Exposes the timed buffs attached to an entity as one effect source.

    Modifiers from several buffs that touch the same effect are summed before
    registration; the registry only ever sees the aggregate under
    ``source_id``. The highest buff priority wins for the aggregate.
    """

    def __init__(self, world: World, *, source_id: str = BUFF_SOURCE_ID, priority: int = 0) -> None:
        self.world = world
        self.source_id = source_id
        self.priority = priority

    def should_apply(self, entity: int) -> bool:
        return bool(self._active_buffs(entity))

    def calculate_effects(self, entity: int) -> Iterable[EffectSpec]:
        totals: Dict[str, float] = defaultdict(float)
        priorities: Dict[str, int] = {}
        names: Dict[str, List[str]] = defaultdict(list)
        for buff in self._active_buffs(entity):
            for effect_name, amount in buff.modifiers.items():
                totals[effect_name] += float(amount)
                priorities[effect_name] = max(priorities.get(effect_name, buff.priority), buff.priority)
                names[effect_name].append(buff.name)
        return [
            EffectSpec(
                name=effect_name,
                value=total,
                priority=priorities[effect_name],
                metadata={"buffs": tuple(names[effect_name])},
            )
            for effect_name, total in sorted(totals.items())
        ]

    def _active_buffs(self, entity: int) -> list[Buff]:
        try:
            buff_list = self.world.component_for_entity(entity, BuffList)
        except KeyError:
            return []
        buffs: list[Buff] = []
        for buff_entity in list(buff_list.buff_entities):
            try:
                buffs.append(self.world.component_for_entity(buff_entity, Buff))
            except KeyError:
                continue
        return buffs
