from __future__ import annotations

from effect_engine.providers.base import (
    CallableEffectProvider,
    EffectProvider,
    EffectSpec,
    StaticEffectProvider,
    make_effect,
    make_effects,
    register_effects,
)
from effect_engine.providers.buff_provider import BUFF_SOURCE_ID, BuffEffectProvider

__all__ = [
    "BUFF_SOURCE_ID",
    "BuffEffectProvider",
    "CallableEffectProvider",
    "EffectProvider",
    "EffectSpec",
    "StaticEffectProvider",
    "make_effect",
    "make_effects",
    "register_effects",
]
