from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

DEFAULT_BOUNDS: Tuple[float, float] = (0.0, 1.0)


@dataclass(slots=True)
class Stats:
    """Mutable numeric stats owned by the host simulation.

    Attributes:
        values: Current value per stat key.
        bounds: Optional ``(low, high)`` range per stat key. Stats without an
            explicit range are clamped to ``DEFAULT_BOUNDS``.
    """

    values: Dict[str, float] = field(default_factory=dict)
    bounds: Dict[str, Tuple[float, float]] = field(default_factory=dict)

    def has(self, key: str) -> bool:
        return key in self.values

    def get(self, key: str) -> float | None:
        value = self.values.get(key)
        if value is None:
            return None
        return float(value)

    def set(self, key: str, value: float) -> float:
        """Store ``value`` clamped to the stat's range and return what was stored."""
        low, high = self.bounds_for(key)
        clamped = min(high, max(low, float(value)))
        self.values[key] = clamped
        return clamped

    def bounds_for(self, key: str) -> Tuple[float, float]:
        return self.bounds.get(key, DEFAULT_BOUNDS)
