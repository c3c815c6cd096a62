import pytest
from esper import World

from effect_engine.components.progression import Progression
from effect_engine.config import EffectConfig
from effect_engine.events.bus import EVENT_LEVEL_CHANGED, EVENT_XP_AWARD, EVENT_XP_GAINED, EventBus
from effect_engine.systems.progression_system import ProgressionSystem


@pytest.fixture
def progression_world():
    bus = EventBus()
    world = World()
    system = ProgressionSystem(world, bus, EffectConfig(xp_per_level=100.0, max_level=3))
    entity = world.create_entity(Progression())
    events = {"gained": [], "levels": []}
    bus.subscribe(EVENT_XP_GAINED, lambda sender, **payload: events["gained"].append(payload))
    bus.subscribe(EVENT_LEVEL_CHANGED, lambda sender, **payload: events["levels"].append(payload))
    return bus, world, system, entity, events


def test_award_xp_levels_up(progression_world):
    _bus, world, system, entity, events = progression_world

    assert system.award_xp(entity, "fitness", 250.0) == 250.0

    progression = world.component_for_entity(entity, Progression)
    assert progression.level("fitness") == 2
    assert events["levels"] == [{"entity": entity, "skill": "fitness", "previous": 0, "level": 2}]
    assert events["gained"] == [{"entity": entity, "skill": "fitness", "amount": 250.0}]


def test_level_is_capped(progression_world):
    _bus, world, system, entity, _events = progression_world
    system.award_xp(entity, "strength", 10_000.0)
    assert world.component_for_entity(entity, Progression).level("strength") == 3


def test_silent_award_skips_xp_notification(progression_world):
    _bus, world, system, entity, events = progression_world

    system.award_xp(entity, "body", 120.0, notify=False)

    assert world.component_for_entity(entity, Progression).xp["body"] == 120.0
    assert events["gained"] == []
    assert len(events["levels"]) == 1


def test_negative_xp_floors_at_zero(progression_world):
    _bus, world, system, entity, events = progression_world
    system.award_xp(entity, "fitness", 150.0)

    applied = system.award_xp(entity, "fitness", -500.0)

    progression = world.component_for_entity(entity, Progression)
    assert applied == -150.0
    assert progression.xp["fitness"] == 0.0
    assert progression.level("fitness") == 0
    assert events["levels"][-1]["level"] == 0


def test_xp_award_event(progression_world):
    bus, world, _system, entity, _events = progression_world
    bus.emit(EVENT_XP_AWARD, entity=entity, skill="fitness", amount="40")
    bus.emit(EVENT_XP_AWARD, entity=entity, skill="fitness", amount="lots")
    assert world.component_for_entity(entity, Progression).xp["fitness"] == 40.0


def test_entities_without_progression_are_ignored(progression_world):
    _bus, world, system, _entity, events = progression_world
    other = world.create_entity()
    assert system.award_xp(other, "fitness", 10.0) == 0.0
    assert events["gained"] == []
