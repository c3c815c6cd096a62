import logging
import os
import sys

ROOT = os.path.dirname(__file__)
SRC = os.path.join(ROOT, 'src')
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from effect_engine.constants import STAT_HUNGER
from effect_engine.components.stats import Stats
from effect_engine.events.bus import EVENT_BUFF_APPLY, EVENT_TICK, EventBus
from effect_engine.providers.base import StaticEffectProvider, make_effects
from effect_engine.world import create_subject, create_world

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

bus = EventBus()
gear = StaticEffectProvider(
    source_id="gear",
    priority=10,
    effects=make_effects([("hunger_reduction", 0.6), ("health_regen", 0.5)]),
)
world = create_world(bus, providers=[gear])
subject = create_subject(world, label="tester", health=80.0)
bus.emit(EVENT_BUFF_APPLY, owner_entity=subject, name="well_fed", modifiers={"hunger_reduction": 0.15}, ticks=3)

stats = world.component_for_entity(subject, Stats)
for tick in range(5):
    # Stand-in for the host simulation: hunger rises by 0.01 every tick.
    stats.set(STAT_HUNGER, stats.get(STAT_HUNGER) + 0.01)
    bus.emit(EVENT_TICK, tick=tick)
    print(f"tick {tick}: hunger={stats.get(STAT_HUNGER):.4f}")

print(world.effect_system.debug_report(subject))
