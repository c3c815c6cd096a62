from __future__ import annotations

from effect_engine.effects.catalog import (
    CombinationMode,
    EffectCatalog,
    EffectDefinition,
    SemanticType,
    StackingRule,
    default_effect_catalog,
)

CATALOG_VERSION = 1


def _reduction(name: str, display_name: str, description: str, *, stacking: StackingRule = StackingRule.MULTIPLICATIVE) -> EffectDefinition:
    return EffectDefinition(
        name=name,
        semantic_type=SemanticType.REDUCTION,
        stacking_rule=stacking,
        default=0.0,
        combination_mode=CombinationMode.REDUCTION if stacking is StackingRule.MULTIPLICATIVE else CombinationMode.AUTO,
        display_name=display_name,
        description=description,
    )


def _regen(name: str, display_name: str, description: str) -> EffectDefinition:
    return EffectDefinition(
        name=name,
        semantic_type=SemanticType.REGEN,
        stacking_rule=StackingRule.ADDITIVE,
        default=0.0,
        display_name=display_name,
        description=description,
    )


def _multiplier(name: str, display_name: str, description: str) -> EffectDefinition:
    return EffectDefinition(
        name=name,
        semantic_type=SemanticType.MULTIPLIER,
        stacking_rule=StackingRule.MULTIPLICATIVE,
        default=1.0,
        combination_mode=CombinationMode.PRODUCT,
        display_name=display_name,
        description=description,
    )


def _toggle(name: str, display_name: str, description: str) -> EffectDefinition:
    return EffectDefinition(
        name=name,
        semantic_type=SemanticType.BOOLEAN,
        stacking_rule=StackingRule.MAXIMUM,
        default=0.0,
        display_name=display_name,
        description=description,
    )


def default_definitions() -> tuple[EffectDefinition, ...]:
    """Return the built-in catalog, in display order."""

    return (
        # Reductions of externally driven stat drift.
        _reduction("hunger_reduction", "Hunger Reduction", "Slows hunger gain."),
        _reduction("thirst_reduction", "Thirst Reduction", "Slows thirst gain."),
        _reduction("fatigue_reduction", "Fatigue Reduction", "Slows fatigue gain."),
        _reduction("endurance_reduction", "Endurance Reduction", "Slows endurance drain."),
        _reduction("stiffness_reduction", "Stiffness Reduction", "Slows muscle stiffness build-up."),
        _reduction(
            "attack_endurance_reduction",
            "Attack Endurance Reduction",
            "Refunds part of the endurance spent on each weapon swing.",
        ),
        # Flat per-tick regeneration.
        _regen("stiffness_decay", "Stiffness Decay", "Removes stiffness from every body part each tick."),
        _regen("health_regen", "Health Regeneration", "Restores health each tick."),
        _regen("fitness_xp", "Fitness Training", "Grants fitness experience each tick."),
        _regen("strength_xp", "Strength Training", "Grants strength experience each tick."),
        # Multipliers.
        _multiplier("fitness_xp_multiplier", "Fitness XP Multiplier", "Scales passive fitness experience."),
        _multiplier("strength_xp_multiplier", "Strength XP Multiplier", "Scales passive strength experience."),
        _multiplier("body_xp_multiplier", "Body XP Multiplier", "Scales body experience gained from any source."),
        _multiplier("metabolism_efficiency", "Metabolism Efficiency", "Scales how well food is converted."),
        _multiplier("healing_power_multiplier", "Healing Power", "Scales healing received from techniques."),
        # Decay protection keeps the strongest source only.
        _reduction(
            "decay_protection",
            "Decay Protection",
            "Restores experience when a protected skill decays below its floor.",
            stacking=StackingRule.MAXIMUM,
        ),
        # Perception.
        _reduction("zombie_attraction_reduction", "Attraction Reduction", "Makes the subject less attractive to the undead."),
        _reduction("zombie_sight_reduction", "Sight Reduction", "Makes the subject harder to spot."),
        _reduction("zombie_hearing_reduction", "Hearing Reduction", "Makes the subject harder to hear."),
        # Toggles.
        _toggle("weight_conversion", "Weight Conversion", "Enables converting surplus calories into weight."),
        _toggle("hp_regen_enabled", "Health Regeneration Enabled", "Enables passive health regeneration."),
    )


def ensure_default_effects_registered(catalog: EffectCatalog | None = None) -> EffectCatalog:
    """Register core effect definitions if they are not already present."""

    target = catalog if catalog is not None else default_effect_catalog
    for definition in default_definitions():
        if target.has(definition.name):
            continue
        target.register(definition)
    return target
