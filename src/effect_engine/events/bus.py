from blinker import Signal
from typing import Dict

class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # Use weak=False to retain strong reference to bound methods so systems not kept in a variable still receive events.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, /, **payload):
        # Positional-only so payloads may carry their own ``name`` key (buff events do).
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# SYSTEM & TIMING
# ============================================================================
EVENT_TICK = "tick"                                # payload: tick=int|None (one macro tick, minute granularity)


# ============================================================================
# ENTITY LIFECYCLE
# ============================================================================
EVENT_ENTITY_REMOVED = "entity_removed"            # payload: entity=int


# ============================================================================
# EFFECTS
# ============================================================================
EVENT_EFFECT_SOURCE_CHANGED = "effect_source_changed"  # payload: entity=int, source_id=str|None
EVENT_EFFECTS_UPDATED = "effects_updated"              # payload: entity=int, totals=dict[str,float]
EVENT_DECAY_PROTECTION_TRIGGERED = "decay_protection_triggered"  # payload: entity=int, skill=str, restored_xp=float


# ============================================================================
# BUFFS
# ============================================================================
EVENT_BUFF_APPLY = "buff_apply"        # payload: owner_entity=int, name=str, modifiers=dict, ticks=int|None, priority=int, refresh=bool
EVENT_BUFF_APPLIED = "buff_applied"    # payload: buff_entity=int, owner_entity=int, name=str
EVENT_BUFF_REMOVE = "buff_remove"      # payload: buff_entity=int|None, owner_entity=int|None, name=str|None
EVENT_BUFF_EXPIRED = "buff_expired"    # payload: buff_entity=int, owner_entity=int, name=str, reason=str


# ============================================================================
# PROGRESSION
# ============================================================================
EVENT_XP_AWARD = "xp_award"            # payload: entity=int, skill=str, amount=float
EVENT_XP_GAINED = "xp_gained"          # payload: entity=int, skill=str, amount=float
EVENT_LEVEL_CHANGED = "level_changed"  # payload: entity=int, skill=str, previous=int, level=int


# ============================================================================
# COMBAT
# ============================================================================
EVENT_WEAPON_SWING = "weapon_swing"    # payload: entity=int, weapon_weight=float
