from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class Progression:
    """Skill levels and accumulated experience for an entity.

    Attributes:
        levels: Current level per skill slug.
        xp: Experience accumulated per skill slug.
    """

    levels: Dict[str, int] = field(default_factory=dict)
    xp: Dict[str, float] = field(default_factory=dict)

    def level(self, skill: str) -> int:
        return int(self.levels.get(skill, 0))

    def add_xp(self, skill: str, amount: float) -> float:
        """Add experience to ``skill`` without touching its level."""
        total = self.xp.get(skill, 0.0) + amount
        if total < 0:
            total = 0.0
        self.xp[skill] = total
        return total
