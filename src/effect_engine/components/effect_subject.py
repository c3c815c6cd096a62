from dataclasses import dataclass


@dataclass(slots=True)
class EffectSubject:
    """Marks an entity whose effects are collected and applied every tick."""

    label: str = ""
