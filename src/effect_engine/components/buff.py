from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class Buff:
    """A temporary source of effect contributions attached to one owner entity.

    The buff entity will typically also carry a ``BuffDuration`` that the
    lifecycle system counts down each tick.
    """

    name: str
    owner_entity: int
    modifiers: dict[str, float] = field(default_factory=dict)
    priority: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class BuffDuration:
    """Tracks buff duration in macro ticks rather than seconds."""

    remaining_ticks: int


@dataclass(slots=True)
class BuffList:
    """Holds references to buff entities that currently influence an owner."""

    buff_entities: list[int] = field(default_factory=list)
