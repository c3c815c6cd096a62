from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Protocol, Sequence, runtime_checkable

from effect_engine.effects.errors import EffectError
from effect_engine.effects.registry import EffectRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EffectSpec:
    """One effect a provider wants to contribute."""

    name: str
    value: float
    priority: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@runtime_checkable
class EffectProvider(Protocol):
    """Interface implemented by every source of effect contributions.

    ``calculate_effects`` may read host state but must not touch the registry;
    ``register_effects`` owns the write side.
    """

    source_id: str
    priority: int

    def should_apply(self, entity: int) -> bool:
        ...

    def calculate_effects(self, entity: int) -> Iterable[EffectSpec]:
        ...


def _always(entity: int) -> bool:
    return True


def _noop(entity: int) -> None:
    return None


@dataclass(slots=True)
class CallableEffectProvider:
    """Provider assembled from plain callables."""

    source_id: str
    calculate: Callable[[int], Iterable[EffectSpec] | None]
    priority: int = 0
    applies: Callable[[int], bool] = _always
    on_effects_changed: Callable[[int], None] = _noop

    def __post_init__(self) -> None:
        if not self.source_id:
            raise ValueError("Provider source_id must be a non-empty string")
        if not callable(self.calculate):
            raise TypeError(f"Provider '{self.source_id}' calculate must be callable")

    def should_apply(self, entity: int) -> bool:
        return bool(self.applies(entity))

    def calculate_effects(self, entity: int) -> Iterable[EffectSpec]:
        return self.calculate(entity) or ()


@dataclass(slots=True)
class StaticEffectProvider:
    """Contributes the same effects to every entity it applies to.

    Suited to equipment or fixed loadouts: ``entities`` limits the provider to
    a known set of subjects, ``None`` applies it to everyone.
    """

    source_id: str
    effects: Sequence[EffectSpec]
    priority: int = 0
    entities: frozenset[int] | None = None

    def should_apply(self, entity: int) -> bool:
        return self.entities is None or entity in self.entities

    def calculate_effects(self, entity: int) -> Iterable[EffectSpec]:
        return tuple(self.effects)


def make_effect(
    name: str,
    value: float,
    metadata: Mapping[str, Any] | None = None,
    priority: int | None = None,
) -> EffectSpec:
    return EffectSpec(name=name, value=value, priority=priority, metadata=dict(metadata or {}))


def make_effects(entries: Iterable[Mapping[str, Any] | Sequence[Any]]) -> list[EffectSpec]:
    """Build specs from mappings (``name``/``value``/...) or ``(name, value, metadata, priority)`` tuples."""

    specs: list[EffectSpec] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            specs.append(
                make_effect(
                    entry["name"],
                    entry["value"],
                    entry.get("metadata"),
                    entry.get("priority"),
                )
            )
            continue
        name, value, *rest = entry
        metadata = rest[0] if len(rest) > 0 else None
        priority = rest[1] if len(rest) > 1 else None
        specs.append(make_effect(name, value, metadata, priority))
    return specs


def register_effects(provider: EffectProvider, entity: int, registry: EffectRegistry) -> int:
    """Replace ``provider``'s whole contribution set on ``entity``.

    Returns the number of contributions registered. A provider that raises
    contributes nothing for this tick; one invalid effect does not block the
    rest.
    """
    source_id = provider.source_id
    try:
        applies = provider.should_apply(entity)
        effects = list(provider.calculate_effects(entity) or ()) if applies else []
    except Exception:
        logger.exception("Provider '%s' failed for entity %s; contributing nothing", source_id, entity)
        registry.unregister(entity, source_id)
        return 0

    registry.unregister(entity, source_id)
    if not applies:
        return 0

    registered = 0
    for spec in effects:
        name = getattr(spec, "name", None)
        value = getattr(spec, "value", None)
        if not name or value is None:
            logger.warning("Provider '%s' returned a malformed effect %r", source_id, spec)
            continue
        priority = getattr(spec, "priority", None)
        if priority is None:
            priority = provider.priority
        metadata = getattr(spec, "metadata", None) or {}
        try:
            registry.register(entity, name, value, source_id, metadata, priority)
        except EffectError:
            # Already logged by the registry.
            continue
        except Exception:
            logger.exception("Provider '%s' effect %r could not be registered for entity %s", source_id, name, entity)
            continue
        registered += 1

    # Optional notification hook, not part of the protocol.
    on_changed = getattr(provider, "on_effects_changed", None)
    if callable(on_changed):
        try:
            on_changed(entity)
        except Exception:
            logger.exception("Provider '%s' on_effects_changed failed for entity %s", source_id, entity)
    return registered
