from __future__ import annotations

import copy
import itertools
import logging
import math
import numbers
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping

from effect_engine.effects import stacking
from effect_engine.effects.catalog import (
    CombinationMode,
    EffectCatalog,
    SemanticType,
    StackingRule,
    default_effect_catalog,
)
from effect_engine.effects.errors import InvalidValueError, UnknownEffectError
from effect_engine.effects.factory import ensure_default_effects_registered

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Contribution:
    """One source's input to one effect on one entity."""

    source_id: str
    value: float
    priority: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    sequence: int = 0


@dataclass(slots=True)
class EffectEntry:
    """All contributions to a single effect on a single entity.

    ``cached_total`` is only meaningful while the owning entity is clean.
    """

    stacking_rule: StackingRule
    semantic_type: SemanticType
    combination_mode: CombinationMode = CombinationMode.AUTO
    contributions: List[Contribution] = field(default_factory=list)
    cached_total: float = 0.0

    def find(self, source_id: str) -> Contribution | None:
        for contribution in self.contributions:
            if contribution.source_id == source_id:
                return contribution
        return None


@dataclass(slots=True)
class EntityEffects:
    """Effect storage for one entity."""

    effects: Dict[str, EffectEntry] = field(default_factory=dict)
    dirty: bool = True
    last_recalculated: float | None = None
    recalculations: int = 0


@dataclass(frozen=True, slots=True)
class SourceBreakdown:
    source_id: str
    value: float
    priority: int
    metadata: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class EffectBreakdown:
    """Read-only copy of an effect's total and the sources behind it."""

    name: str
    total: float
    stacking_rule: StackingRule
    semantic_type: SemanticType
    sources: tuple[SourceBreakdown, ...]


class EffectRegistry:
    """Per-entity store of effect contributions and their combined totals.

    Records are keyed by the caller's entity id and created lazily by writes.
    Reads never create records; the host must call ``remove_entity`` when an
    entity leaves the simulation.
    """

    def __init__(
        self,
        catalog: EffectCatalog | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.catalog = catalog if catalog is not None else ensure_default_effects_registered(default_effect_catalog)
        self._clock = clock
        self._entities: Dict[int, EntityEffects] = {}
        self._sequence = itertools.count(1)

    # Mutation -----------------------------------------------------------
    def register(
        self,
        entity: int,
        effect_name: str,
        value: Any,
        source_id: str,
        metadata: Mapping[str, Any] | None = None,
        priority: int | None = None,
    ) -> bool:
        """Upsert ``source_id``'s contribution to ``effect_name`` on ``entity``.

        Raises ``UnknownEffectError`` for names missing from the catalog and
        ``InvalidValueError`` for values that are not finite real numbers,
        non-integral priorities or metadata that is not a mapping. Nothing is
        stored when either is raised.
        """
        definition = self.catalog.find(effect_name)
        if definition is None:
            logger.error("Rejected unknown effect '%s' from source '%s'", effect_name, source_id)
            raise UnknownEffectError(effect_name, source_id)
        numeric = self._coerce_value(effect_name, value, source_id)
        rank = self._coerce_priority(effect_name, priority, source_id)
        extra = self._coerce_metadata(effect_name, metadata, source_id)

        record = self._ensure_entity(entity)
        entry = record.effects.get(effect_name)
        if entry is None:
            entry = EffectEntry(
                stacking_rule=definition.stacking_rule,
                semantic_type=definition.semantic_type,
                combination_mode=definition.combination_mode,
            )
            record.effects[effect_name] = entry

        contribution = entry.find(source_id)
        if contribution is None:
            entry.contributions.append(
                Contribution(
                    source_id=source_id,
                    value=numeric,
                    priority=rank if rank is not None else 0,
                    metadata=extra if extra is not None else {},
                    sequence=next(self._sequence),
                )
            )
        else:
            contribution.value = numeric
            if rank is not None:
                contribution.priority = rank
            if extra is not None:
                contribution.metadata = extra
            contribution.sequence = next(self._sequence)

        record.dirty = True
        return True

    def unregister(self, entity: int, source_id: str) -> None:
        """Remove every contribution from ``source_id`` on ``entity``."""
        record = self._entities.get(entity)
        if record is None:
            return
        for effect_name in list(record.effects):
            entry = record.effects[effect_name]
            entry.contributions = [c for c in entry.contributions if c.source_id != source_id]
            if not entry.contributions:
                del record.effects[effect_name]
        record.dirty = True

    def clear(self, entity: int) -> None:
        record = self._entities.get(entity)
        if record is None:
            return
        record.effects.clear()
        record.dirty = True

    def mark_dirty(self, entity: int) -> None:
        self._ensure_entity(entity).dirty = True

    def remove_entity(self, entity: int) -> bool:
        """Drop the whole record for an entity that left the simulation."""
        return self._entities.pop(entity, None) is not None

    def recalculate(self, entity: int) -> None:
        record = self._entities.get(entity)
        if record is None or not record.dirty:
            return
        for entry in record.effects.values():
            entry.cached_total = stacking.combine(
                entry.contributions,
                entry.stacking_rule,
                entry.combination_mode,
            )
        record.dirty = False
        record.last_recalculated = self._clock()
        record.recalculations += 1
        if record.effects:
            logger.debug("Entity %s: recalculated %d effects", entity, len(record.effects))

    # Queries ------------------------------------------------------------
    def get(self, entity: int, effect_name: str, default: float | None = None) -> float:
        record = self._clean_record(entity)
        if record is not None:
            entry = record.effects.get(effect_name)
            if entry is not None and entry.contributions:
                return entry.cached_total
        if default is not None:
            return float(default)
        definition = self.catalog.find(effect_name)
        if definition is None:
            return 0.0
        return float(definition.default)

    def get_details(self, entity: int, effect_name: str) -> EffectBreakdown | None:
        record = self._clean_record(entity)
        if record is None:
            return None
        entry = record.effects.get(effect_name)
        if entry is None:
            return None
        sources = tuple(
            SourceBreakdown(
                source_id=c.source_id,
                value=c.value,
                priority=c.priority,
                metadata=copy.deepcopy(c.metadata),
            )
            for c in stacking.rank(entry.contributions)
        )
        return EffectBreakdown(
            name=effect_name,
            total=entry.cached_total,
            stacking_rule=entry.stacking_rule,
            semantic_type=entry.semantic_type,
            sources=sources,
        )

    def get_all(self, entity: int) -> Dict[str, float]:
        record = self._clean_record(entity)
        if record is None:
            return {}
        return {name: entry.cached_total for name, entry in sorted(record.effects.items())}

    def has_effect(self, entity: int, effect_name: str) -> bool:
        record = self._entities.get(entity)
        if record is None:
            return False
        entry = record.effects.get(effect_name)
        return entry is not None and bool(entry.contributions)

    def is_dirty(self, entity: int) -> bool:
        record = self._entities.get(entity)
        return record is None or record.dirty

    def recalculation_count(self, entity: int) -> int:
        record = self._entities.get(entity)
        return record.recalculations if record is not None else 0

    def last_recalculated(self, entity: int) -> float | None:
        """Clock reading of the last recalculation, ``None`` if never recalculated."""
        record = self._entities.get(entity)
        return record.last_recalculated if record is not None else None

    def entities(self) -> tuple[int, ...]:
        return tuple(self._entities)

    def __contains__(self, entity: object) -> bool:
        return entity in self._entities

    def __iter__(self) -> Iterator[int]:
        return iter(tuple(self._entities))

    # Internal helpers ---------------------------------------------------
    def _ensure_entity(self, entity: int) -> EntityEffects:
        record = self._entities.get(entity)
        if record is None:
            record = EntityEffects()
            self._entities[entity] = record
        return record

    def _clean_record(self, entity: int) -> EntityEffects | None:
        record = self._entities.get(entity)
        if record is None:
            return None
        if record.dirty:
            self.recalculate(entity)
        return record

    @staticmethod
    def _coerce_value(effect_name: str, value: Any, source_id: str) -> float:
        if isinstance(value, bool):
            return 1.0 if value else 0.0
        if not isinstance(value, numbers.Real):
            logger.error(
                "Rejected effect '%s' from source '%s': value must be a number, got %s",
                effect_name,
                source_id,
                type(value).__name__,
            )
            raise InvalidValueError(effect_name, value)
        numeric = float(value)
        if not math.isfinite(numeric):
            logger.error("Rejected effect '%s' from source '%s': value is NaN or infinite", effect_name, source_id)
            raise InvalidValueError(effect_name, value)
        return numeric

    @staticmethod
    def _coerce_priority(effect_name: str, priority: Any, source_id: str) -> int | None:
        if priority is None:
            return None
        if isinstance(priority, numbers.Integral) and not isinstance(priority, bool):
            return int(priority)
        if isinstance(priority, numbers.Real) and float(priority).is_integer():
            return int(priority)
        logger.error("Rejected effect '%s' from source '%s': priority %r is not an integer", effect_name, source_id, priority)
        raise InvalidValueError(effect_name, priority, field="priority", expected="an integer")

    @staticmethod
    def _coerce_metadata(effect_name: str, metadata: Any, source_id: str) -> Dict[str, Any] | None:
        if metadata is None:
            return None
        if not isinstance(metadata, Mapping):
            logger.error("Rejected effect '%s' from source '%s': metadata is not a mapping", effect_name, source_id)
            raise InvalidValueError(effect_name, metadata, field="metadata", expected="a mapping")
        return dict(metadata)
