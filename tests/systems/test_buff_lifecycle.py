import pytest

from effect_engine.components.buff import Buff, BuffDuration, BuffList
from effect_engine.events.bus import (
    EVENT_BUFF_APPLY,
    EVENT_BUFF_APPLIED,
    EVENT_BUFF_EXPIRED,
    EVENT_BUFF_REMOVE,
    EVENT_ENTITY_REMOVED,
    EVENT_TICK,
)
from effect_engine.providers.buff_provider import BUFF_SOURCE_ID, BuffEffectProvider
from tests.helpers import build_engine, spawn_subject


@pytest.fixture
def buff_world():
    bus, world, system = build_engine(with_buffs=True)
    owner = spawn_subject(world)
    return bus, world, system, owner


def _buff_entities(world, owner):
    return list(world.component_for_entity(owner, BuffList).buff_entities)


def test_applied_buff_becomes_an_effect_source(buff_world):
    bus, world, system, owner = buff_world
    applied = []
    bus.subscribe(EVENT_BUFF_APPLIED, lambda sender, **payload: applied.append(payload))

    bus.emit(EVENT_BUFF_APPLY, owner_entity=owner, name="well_fed", modifiers={"hunger_reduction": 0.2}, ticks=3)

    assert len(_buff_entities(world, owner)) == 1
    assert applied[0]["name"] == "well_fed"
    system.update_entity(owner)
    assert system.get_effect(owner, "hunger_reduction") == pytest.approx(0.2)
    breakdown = system.get_effect_breakdown(owner, "hunger_reduction")
    assert breakdown.sources[0].source_id == BUFF_SOURCE_ID
    assert breakdown.sources[0].metadata == {"buffs": ("well_fed",)}


def test_buffs_stack_unless_refreshed(buff_world):
    bus, world, system, owner = buff_world
    bus.emit(EVENT_BUFF_APPLY, owner_entity=owner, name="tea", modifiers={"thirst_reduction": 0.1}, ticks=2)
    bus.emit(EVENT_BUFF_APPLY, owner_entity=owner, name="tea", modifiers={"thirst_reduction": 0.2}, ticks=2)
    assert len(_buff_entities(world, owner)) == 2
    system.update_entity(owner)
    # Buff modifiers are summed before they reach the registry.
    assert system.get_effect(owner, "thirst_reduction") == pytest.approx(0.3)

    bus.emit(
        EVENT_BUFF_APPLY,
        owner_entity=owner,
        name="tea",
        modifiers={"thirst_reduction": 0.05},
        ticks=9,
        refresh=True,
    )
    entities = _buff_entities(world, owner)
    assert len(entities) == 2
    assert world.component_for_entity(entities[0], BuffDuration).remaining_ticks == 9
    system.update_entity(owner)
    assert system.get_effect(owner, "thirst_reduction") == pytest.approx(0.25)


def test_buff_expires_after_its_ticks(buff_world):
    bus, world, system, owner = buff_world
    expired = []
    bus.subscribe(EVENT_BUFF_EXPIRED, lambda sender, **payload: expired.append(payload))
    bus.emit(EVENT_BUFF_APPLY, owner_entity=owner, name="rested", modifiers={"fatigue_reduction": 0.3}, ticks=2)
    buff_entity = _buff_entities(world, owner)[0]

    bus.emit(EVENT_TICK, tick=0)
    assert world.component_for_entity(buff_entity, BuffDuration).remaining_ticks == 1
    bus.emit(EVENT_TICK, tick=1)

    assert _buff_entities(world, owner) == []
    assert not world.entity_exists(buff_entity)
    assert expired == [{"buff_entity": buff_entity, "owner_entity": owner, "name": "rested", "reason": "duration"}]
    system.update_entity(owner)
    assert not system.has_effect(owner, "fatigue_reduction")


def test_buff_without_duration_is_permanent(buff_world):
    bus, world, _system, owner = buff_world
    bus.emit(EVENT_BUFF_APPLY, owner_entity=owner, name="blessing", modifiers={"health_regen": 1.0})
    for tick in range(5):
        bus.emit(EVENT_TICK, tick=tick)
    assert len(_buff_entities(world, owner)) == 1


def test_remove_by_name(buff_world):
    bus, world, system, owner = buff_world
    bus.emit(EVENT_BUFF_APPLY, owner_entity=owner, name="a", modifiers={"health_regen": 1.0})
    bus.emit(EVENT_BUFF_APPLY, owner_entity=owner, name="b", modifiers={"health_regen": 2.0})
    system.update_entity(owner)

    bus.emit(EVENT_BUFF_REMOVE, owner_entity=owner, name="a")

    remaining = [world.component_for_entity(e, Buff).name for e in _buff_entities(world, owner)]
    assert remaining == ["b"]
    system.update_entity(owner)
    assert system.get_effect(owner, "health_regen") == 2.0


def test_owner_removal_drops_buffs(buff_world):
    bus, world, system, owner = buff_world
    bus.emit(EVENT_BUFF_APPLY, owner_entity=owner, name="a", modifiers={"health_regen": 1.0})
    buff_entity = _buff_entities(world, owner)[0]
    system.update_entity(owner)

    bus.emit(EVENT_ENTITY_REMOVED, entity=owner)
    world.delete_entity(owner, immediate=True)

    assert not world.entity_exists(buff_entity)
    assert owner not in system.registry
    assert owner not in system.tracked_entities()


def test_non_numeric_modifiers_are_ignored(buff_world):
    _bus, world, _system, owner = buff_world
    buff_entity = world.buff_lifecycle_system.apply_buff(owner, "odd", {"health_regen": "lots", "fitness_xp": 1})
    assert world.component_for_entity(buff_entity, Buff).modifiers == {"fitness_xp": 1.0}


def test_provider_uses_highest_buff_priority(buff_world):
    _bus, world, _system, owner = buff_world
    lifecycle = world.buff_lifecycle_system
    lifecycle.apply_buff(owner, "low", {"health_regen": 1.0}, priority=1)
    lifecycle.apply_buff(owner, "high", {"health_regen": 2.0}, priority=6)
    provider = BuffEffectProvider(world)

    specs = list(provider.calculate_effects(owner))

    assert provider.should_apply(owner)
    assert len(specs) == 1
    assert specs[0].value == 3.0
    assert specs[0].priority == 6
    assert specs[0].metadata == {"buffs": ("low", "high")}
