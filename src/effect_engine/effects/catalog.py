from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class SemanticType(str, Enum):
    REDUCTION = "reduction"    # fraction 0..1 of a stat change that is prevented
    REGEN = "regen"            # flat amount per tick
    MULTIPLIER = "multiplier"  # scales a base value, neutral at 1.0
    BOOLEAN = "boolean"        # feature toggle, 1.0 enabled / 0.0 disabled


class StackingRule(str, Enum):
    ADDITIVE = "additive"              # 0.40 + 0.25 = 0.65
    MULTIPLICATIVE = "multiplicative"  # 1 - (1-0.40) * (1-0.25) = 0.55, or 1.2 * 1.5 = 1.8
    MAXIMUM = "maximum"                # highest value wins
    REPLACE = "replace"                # highest priority wins, ties go to the latest


class CombinationMode(str, Enum):
    """How a multiplicative effect folds its contributions.

    ``AUTO`` inspects the first contribution: a value in ``[0, 1]`` is read as
    a reduction fraction, anything else as a multiplier. A genuine multiplier
    below 1.0 (a 0.85x debuff) is misread by ``AUTO``, so multiplier effects
    declare ``PRODUCT`` explicitly.
    """

    AUTO = "auto"
    REDUCTION = "reduction"
    PRODUCT = "product"


@dataclass(frozen=True, slots=True)
class EffectDefinition:
    """Static description of a recognised effect.

    Removing or renaming a definition breaks every stored contribution that
    references it; adding definitions is always safe.
    """

    name: str
    semantic_type: SemanticType
    stacking_rule: StackingRule
    default: float = 0.0
    combination_mode: CombinationMode = CombinationMode.AUTO
    display_name: str = ""
    description: str = ""


class EffectCatalog:
    """In-memory collection of effect definitions."""

    def __init__(self) -> None:
        self._definitions: dict[str, EffectDefinition] = {}

    def register(self, definition: EffectDefinition) -> None:
        if definition.name in self._definitions:
            raise ValueError(f"Effect '{definition.name}' already registered")
        self._definitions[definition.name] = definition

    def get(self, name: str) -> EffectDefinition:
        try:
            return self._definitions[name]
        except KeyError as exc:
            raise KeyError(f"Effect '{name}' is not registered") from exc

    def find(self, name: str) -> EffectDefinition | None:
        return self._definitions.get(name)

    def has(self, name: str) -> bool:
        return name in self._definitions

    def names(self) -> tuple[str, ...]:
        return tuple(self._definitions)

    def all(self) -> Iterable[EffectDefinition]:
        return tuple(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)


default_effect_catalog = EffectCatalog()


def register_effect(definition: EffectDefinition) -> None:
    default_effect_catalog.register(definition)
