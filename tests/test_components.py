from effect_engine.components.health import Health
from effect_engine.components.progression import Progression
from effect_engine.components.stats import Stats


def test_stats_clamp_to_bounds():
    stats = Stats(values={"hunger": 0.5, "stiffness.torso_upper": 5.0}, bounds={"stiffness.torso_upper": (0.0, 100.0)})
    assert stats.set("hunger", 1.4) == 1.0
    assert stats.set("hunger", -0.2) == 0.0
    assert stats.set("stiffness.torso_upper", 60.0) == 60.0
    assert stats.get("missing") is None
    assert not stats.has("missing")


def test_health_heal_stops_at_max():
    hp = Health(current=95.0, max_hp=100.0)
    assert hp.missing() == 5.0
    assert hp.heal(3.0) == 3.0
    assert hp.heal(10.0) == 2.0
    assert hp.current == 100.0
    assert hp.heal(1.0) == 0.0
    assert hp.heal(-4.0) == 0.0
    assert hp.current == 100.0


def test_health_over_max_is_left_alone():
    hp = Health(current=120.0, max_hp=100.0)
    assert hp.missing() == 0.0
    assert hp.heal(5.0) == 0.0
    assert hp.current == 120.0
    assert Health(current=0.0).is_alive() is False


def test_progression_defaults():
    progression = Progression()
    assert progression.level("body") == 0
    assert progression.add_xp("body", 5.0) == 5.0
    assert progression.add_xp("body", -10.0) == 0.0
