from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Health:
    """Hit points of an effect subject. A subject at zero is skipped by every system."""

    current: float
    max_hp: float = 100.0

    def is_alive(self) -> bool:
        return self.current > 0

    def missing(self) -> float:
        return max(0.0, self.max_hp - self.current)

    def heal(self, amount: float) -> float:
        """Raise ``current`` by ``amount`` without passing ``max_hp``; returns the gain."""

        if amount <= 0 or self.current >= self.max_hp:
            return 0.0
        before = self.current
        self.current = min(self.max_hp, before + amount)
        return self.current - before
