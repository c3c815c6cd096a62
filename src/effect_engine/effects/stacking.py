"""Stacking rules that fold several contributions into one effect total."""
from __future__ import annotations

import math
from typing import Protocol, Sequence

from effect_engine.effects.catalog import CombinationMode, StackingRule


class _Ranked(Protocol):
    value: float
    priority: int
    sequence: int


def rank(contributions: Sequence[_Ranked]) -> list[_Ranked]:
    """Order contributions by priority, highest first, latest registration first on ties."""

    return sorted(contributions, key=lambda c: (-c.priority, -c.sequence))


def combine(
    contributions: Sequence[_Ranked],
    stacking_rule: StackingRule,
    combination_mode: CombinationMode = CombinationMode.AUTO,
) -> float:
    if not contributions:
        return 0.0
    if len(contributions) == 1:
        return contributions[0].value

    ordered = rank(contributions)
    values = [c.value for c in ordered]

    if stacking_rule is StackingRule.ADDITIVE:
        return math.fsum(values)
    if stacking_rule is StackingRule.MAXIMUM:
        return max(values)
    if stacking_rule is StackingRule.REPLACE:
        return values[0]
    if stacking_rule is StackingRule.MULTIPLICATIVE:
        if _treat_as_reduction(values[0], combination_mode):
            return combine_reductions(values)
        return math.prod(values)
    raise ValueError(f"Unsupported stacking rule '{stacking_rule}'")


def combine_reductions(values: Sequence[float]) -> float:
    """Diminishing-returns stacking: 0.65 and 0.15 give 1 - 0.35 * 0.85 = 0.7025."""

    remaining = 1.0
    for value in values:
        remaining *= 1.0 - value
    return 1.0 - remaining


def _treat_as_reduction(representative: float, mode: CombinationMode) -> bool:
    if mode is CombinationMode.REDUCTION:
        return True
    if mode is CombinationMode.PRODUCT:
        return False
    return 0.0 <= representative <= 1.0
