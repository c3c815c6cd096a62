from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, cast

from esper import World

from effect_engine.components.buff import Buff, BuffDuration, BuffList
from effect_engine.events.bus import (
    EVENT_BUFF_APPLIED,
    EVENT_BUFF_APPLY,
    EVENT_BUFF_EXPIRED,
    EVENT_BUFF_REMOVE,
    EVENT_EFFECT_SOURCE_CHANGED,
    EVENT_ENTITY_REMOVED,
    EVENT_TICK,
    EventBus,
)
from effect_engine.providers.buff_provider import BUFF_SOURCE_ID

logger = logging.getLogger(__name__)


class BuffLifecycleSystem:
    """Handles creation, refreshing, and expiration of buff entities."""

    def __init__(self, world: World, event_bus: EventBus, *, source_id: str = BUFF_SOURCE_ID):
        self.world = world
        self.event_bus = event_bus
        self.source_id = source_id
        setattr(world, "buff_lifecycle_system", self)
        self.event_bus.subscribe(EVENT_BUFF_APPLY, self.on_buff_apply)
        self.event_bus.subscribe(EVENT_BUFF_REMOVE, self.on_buff_remove)
        self.event_bus.subscribe(EVENT_TICK, self.on_tick)
        self.event_bus.subscribe(EVENT_ENTITY_REMOVED, self.on_entity_removed)

    def on_buff_apply(self, sender, **kwargs) -> None:
        name = kwargs.get("name")
        owner_entity = kwargs.get("owner_entity")
        if not name or owner_entity is None:
            return
        self.apply_buff(
            owner_entity,
            name,
            kwargs.get("modifiers") or {},
            ticks=kwargs.get("ticks"),
            priority=kwargs.get("priority", 0),
            refresh=bool(kwargs.get("refresh", False)),
            metadata=kwargs.get("metadata"),
        )

    def apply_buff(
        self,
        owner_entity: int,
        name: str,
        modifiers: Mapping[str, float],
        *,
        ticks: Any = None,
        priority: Any = 0,
        refresh: bool = False,
        metadata: Mapping[str, Any] | None = None,
    ) -> int:
        """Attach a buff to ``owner_entity`` and return the buff entity.

        With ``refresh`` an existing buff of the same name is updated in place
        instead of stacking a second instance.
        """
        clean_modifiers = self._coerce_modifiers(modifiers)
        try:
            priority_value = int(priority)
        except (TypeError, ValueError):
            priority_value = 0
        buff_list = self._ensure_buff_list(owner_entity)
        if refresh:
            duplicates = self._find_buffs(buff_list, name)
            if duplicates:
                buff_entity = duplicates[0]
                self._refresh_buff(buff_entity, clean_modifiers, ticks, priority_value, metadata)
                self._notify_source_changed(owner_entity)
                return buff_entity
        components: list[Any] = [
            Buff(
                name=name,
                owner_entity=owner_entity,
                modifiers=clean_modifiers,
                priority=priority_value,
                metadata=dict(metadata or {}),
            )
        ]
        remaining = self._coerce_ticks(ticks)
        if remaining is not None:
            components.append(BuffDuration(remaining_ticks=remaining))
        buff_entity = self.world.create_entity(*components)
        buff_list.buff_entities.append(buff_entity)
        logger.debug("Applied buff '%s' to entity %s as %s", name, owner_entity, buff_entity)
        self.event_bus.emit(
            EVENT_BUFF_APPLIED,
            buff_entity=buff_entity,
            owner_entity=owner_entity,
            name=name,
        )
        self._notify_source_changed(owner_entity)
        return buff_entity

    def on_buff_remove(self, sender, **kwargs) -> None:
        buff_entity = kwargs.get("buff_entity")
        reason = kwargs.get("reason", "removed")
        if buff_entity is not None:
            self.expire_buff(buff_entity, reason=reason)
            return
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        name = kwargs.get("name")
        buff_list = self._get_buff_list(owner_entity)
        if buff_list is None:
            return
        for candidate in list(buff_list.buff_entities):
            try:
                buff = self.world.component_for_entity(candidate, Buff)
            except KeyError:
                buff_list.buff_entities.remove(candidate)
                continue
            if name is not None and buff.name != name:
                continue
            self.expire_buff(candidate, reason=reason)

    def on_tick(self, sender, **kwargs) -> None:
        expired: List[int] = []
        for buff_entity, components in list(self.world.get_components(Buff, BuffDuration)):
            duration = cast(BuffDuration, components[1])
            duration.remaining_ticks -= 1
            if duration.remaining_ticks <= 0:
                expired.append(buff_entity)
        for buff_entity in expired:
            self.expire_buff(buff_entity, reason="duration")

    def on_entity_removed(self, sender, **kwargs) -> None:
        owner_entity = kwargs.get("entity")
        if owner_entity is None:
            return
        buff_list = self._get_buff_list(owner_entity)
        if buff_list is None:
            return
        for buff_entity in list(buff_list.buff_entities):
            self.expire_buff(buff_entity, reason="owner_removed", notify=False)

    def expire_buff(self, buff_entity: int, reason: str = "removed", *, notify: bool = True) -> bool:
        try:
            buff = self.world.component_for_entity(buff_entity, Buff)
        except KeyError:
            return False
        owner_entity = buff.owner_entity
        buff_list = self._get_buff_list(owner_entity)
        if buff_list and buff_entity in buff_list.buff_entities:
            buff_list.buff_entities.remove(buff_entity)
        self.world.delete_entity(buff_entity, immediate=True)
        logger.debug("Buff '%s' on entity %s expired (%s)", buff.name, owner_entity, reason)
        self.event_bus.emit(
            EVENT_BUFF_EXPIRED,
            buff_entity=buff_entity,
            owner_entity=owner_entity,
            name=buff.name,
            reason=reason,
        )
        if notify:
            self._notify_source_changed(owner_entity)
        return True

    def active_buffs(self, owner_entity: int) -> list[Buff]:
        buff_list = self._get_buff_list(owner_entity)
        if buff_list is None:
            return []
        buffs: list[Buff] = []
        for buff_entity in buff_list.buff_entities:
            try:
                buffs.append(self.world.component_for_entity(buff_entity, Buff))
            except KeyError:
                continue
        return buffs

    def _refresh_buff(
        self,
        buff_entity: int,
        modifiers: Dict[str, float],
        ticks: Any,
        priority: int,
        metadata: Mapping[str, Any] | None,
    ) -> None:
        buff = self.world.component_for_entity(buff_entity, Buff)
        buff.modifiers = modifiers
        buff.priority = priority
        if metadata is not None:
            buff.metadata.clear()
            buff.metadata.update(metadata)
        remaining = self._coerce_ticks(ticks)
        if remaining is None:
            if self.world.has_component(buff_entity, BuffDuration):
                self.world.remove_component(buff_entity, BuffDuration)
            return
        try:
            duration = self.world.component_for_entity(buff_entity, BuffDuration)
        except KeyError:
            self.world.add_component(buff_entity, BuffDuration(remaining_ticks=remaining))
        else:
            duration.remaining_ticks = remaining

    def _notify_source_changed(self, owner_entity: int) -> None:
        self.event_bus.emit(EVENT_EFFECT_SOURCE_CHANGED, entity=owner_entity, source_id=self.source_id)

    def _ensure_buff_list(self, owner_entity: int) -> BuffList:
        try:
            return self.world.component_for_entity(owner_entity, BuffList)
        except KeyError:
            buff_list = BuffList()
            self.world.add_component(owner_entity, buff_list)
            return buff_list

    def _get_buff_list(self, owner_entity: int) -> BuffList | None:
        try:
            return self.world.component_for_entity(owner_entity, BuffList)
        except KeyError:
            return None

    def _find_buffs(self, buff_list: BuffList, name: str) -> List[int]:
        matches: List[int] = []
        for buff_entity in buff_list.buff_entities:
            try:
                buff = self.world.component_for_entity(buff_entity, Buff)
            except KeyError:
                continue
            if buff.name == name:
                matches.append(buff_entity)
        return matches

    @staticmethod
    def _coerce_ticks(ticks: Any) -> int | None:
        if ticks is None:
            return None
        try:
            return max(0, int(ticks))
        except (TypeError, ValueError):
            return 0

    @staticmethod
    def _coerce_modifiers(modifiers: Mapping[str, Any]) -> Dict[str, float]:
        clean: Dict[str, float] = {}
        for effect_name, amount in dict(modifiers).items():
            try:
                clean[str(effect_name)] = float(amount)
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric buff modifier %s=%r", effect_name, amount)
        return clean
