import logging

import pytest

from effect_engine.effects.registry import EffectRegistry
from effect_engine.providers.base import (
    CallableEffectProvider,
    EffectProvider,
    EffectSpec,
    StaticEffectProvider,
    make_effect,
    make_effects,
    register_effects,
)
from tests.helpers import RecordingProvider

ENTITY = 3


@pytest.fixture
def registry():
    return EffectRegistry()


def test_providers_satisfy_the_protocol():
    assert isinstance(RecordingProvider("rec"), EffectProvider)
    assert isinstance(StaticEffectProvider("gear", ()), EffectProvider)
    assert isinstance(CallableEffectProvider("fn", lambda entity: ()), EffectProvider)


def test_register_effects_replaces_previous_set(registry):
    provider = RecordingProvider(
        "gear",
        effects=make_effects([("hunger_reduction", 0.2), ("health_regen", 1.0)]),
    )
    assert register_effects(provider, ENTITY, registry) == 2
    provider.effects = make_effects([("health_regen", 2.0)])
    assert register_effects(provider, ENTITY, registry) == 1
    assert registry.get_all(ENTITY) == {"health_regen": 2.0}


def test_provider_that_does_not_apply_contributes_nothing(registry):
    provider = RecordingProvider("gear", effects=[make_effect("health_regen", 1.0)])
    register_effects(provider, ENTITY, registry)
    provider.applies = False
    assert register_effects(provider, ENTITY, registry) == 0
    assert provider.calls == 1
    assert not registry.has_effect(ENTITY, "health_regen")


def test_failing_provider_is_isolated(registry, caplog):
    provider = RecordingProvider("flaky", effects=[make_effect("health_regen", 1.0)])
    register_effects(provider, ENTITY, registry)
    provider.fail = True
    with caplog.at_level(logging.ERROR):
        assert register_effects(provider, ENTITY, registry) == 0
    assert "flaky" in caplog.text
    assert not registry.has_effect(ENTITY, "health_regen")


def test_invalid_effects_are_skipped(registry, caplog):
    provider = RecordingProvider(
        "mixed",
        effects=[
            make_effect("levitation", 1.0),
            make_effect("health_regen", float("nan")),
            make_effect("hunger_reduction", 0.3),
        ],
    )
    with caplog.at_level(logging.ERROR):
        assert register_effects(provider, ENTITY, registry) == 1
    assert registry.get_all(ENTITY) == {"hunger_reduction": pytest.approx(0.3)}
    assert "levitation" in caplog.text


def test_malformed_spec_is_skipped(registry):
    provider = RecordingProvider("odd", effects=[object(), make_effect("health_regen", 1.0)])
    assert register_effects(provider, ENTITY, registry) == 1


def test_bad_priority_and_metadata_are_skipped_per_effect(registry, caplog):
    provider = RecordingProvider(
        "gear",
        effects=[
            EffectSpec("fitness_xp", 1.0, priority="high"),
            EffectSpec("thirst_reduction", 0.2, metadata="ring"),
            make_effect("health_regen", 1.0),
        ],
    )
    with caplog.at_level(logging.ERROR):
        assert register_effects(provider, ENTITY, registry) == 1
    assert registry.get_all(ENTITY) == {"health_regen": 1.0}
    assert "priority" in caplog.text


def test_unexpected_registration_error_is_contained(registry, caplog):
    provider = RecordingProvider("gear", effects=[EffectSpec(["health_regen"], 1.0), make_effect("health_regen", 1.0)])
    with caplog.at_level(logging.ERROR):
        assert register_effects(provider, ENTITY, registry) == 1
    assert registry.get_all(ENTITY) == {"health_regen": 1.0}
    assert "could not be registered" in caplog.text


def test_provider_priority_is_the_fallback(registry):
    provider = RecordingProvider(
        "gear",
        priority=7,
        effects=[make_effect("hunger_reduction", 0.2), make_effect("thirst_reduction", 0.2, priority=1)],
    )
    register_effects(provider, ENTITY, registry)
    assert registry.get_details(ENTITY, "hunger_reduction").sources[0].priority == 7
    assert registry.get_details(ENTITY, "thirst_reduction").sources[0].priority == 1


def test_metadata_reaches_the_registry(registry):
    provider = RecordingProvider("gear", effects=[make_effect("health_regen", 1.0, {"item": "ring"})])
    register_effects(provider, ENTITY, registry)
    assert registry.get_details(ENTITY, "health_regen").sources[0].metadata == {"item": "ring"}


def test_make_effects_accepts_mappings_and_tuples():
    specs = make_effects(
        [
            {"name": "health_regen", "value": 1.0, "priority": 2},
            ("hunger_reduction", 0.4, {"from": "food"}),
        ]
    )
    assert specs == [
        EffectSpec("health_regen", 1.0, 2, {}),
        EffectSpec("hunger_reduction", 0.4, None, {"from": "food"}),
    ]


def test_static_provider_limits_entities(registry):
    provider = StaticEffectProvider("gear", make_effects([("health_regen", 1.0)]), entities=frozenset({ENTITY}))
    assert provider.should_apply(ENTITY)
    assert not provider.should_apply(ENTITY + 1)
    assert register_effects(provider, ENTITY + 1, registry) == 0


def test_callable_provider_validation():
    with pytest.raises(ValueError):
        CallableEffectProvider("", lambda entity: ())
    with pytest.raises(TypeError):
        CallableEffectProvider("fn", None)
    provider = CallableEffectProvider("fn", lambda entity: None, applies=lambda entity: entity > 0)
    assert list(provider.calculate_effects(1)) == []
    assert not provider.should_apply(0)


def test_callable_provider_is_notified_after_registration(registry):
    notified = []
    provider = CallableEffectProvider(
        "body",
        lambda entity: [make_effect("hunger_reduction", 0.1)],
        on_effects_changed=notified.append,
    )
    register_effects(provider, ENTITY, registry)
    assert notified == [ENTITY]
