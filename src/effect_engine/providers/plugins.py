"""Discovery of effect providers shipped by other distributions.

Packages advertise providers under the ``effect_engine.providers`` entry-point
group. An entry point may resolve to a provider, a zero-argument factory, or a
mapping or iterable of either. ``create_world(..., discover_plugins=True)``
registers whatever ``discover_providers`` returns.
"""

from __future__ import annotations

import logging
from importlib import metadata
from typing import Any, Dict, Iterable, Iterator, Mapping

from effect_engine.providers.base import EffectProvider

logger = logging.getLogger(__name__)

PLUGIN_GROUP = "effect_engine.providers"

_manual: Dict[str, EffectProvider] = {}
# None until the entry points have been scanned.
_discovered: Dict[str, EffectProvider] | None = None


def _looks_like_provider(obj: Any) -> bool:
    return bool(getattr(obj, "source_id", None)) and callable(getattr(obj, "calculate_effects", None))


def register_provider_plugin(provider: EffectProvider) -> None:
    """Make ``provider`` part of every later discovery."""

    if not _looks_like_provider(provider):
        raise TypeError(f"{provider!r} is not an effect provider")
    _manual[provider.source_id] = provider


def register_provider_plugins(providers: Iterable[EffectProvider]) -> None:
    for provider in providers:
        register_provider_plugin(provider)


def _expand(obj: Any, origin: str) -> Iterator[EffectProvider]:
    if obj is None:
        return
    if _looks_like_provider(obj):
        yield obj
        return
    if isinstance(obj, Mapping):
        obj = obj.values()
    elif callable(obj):
        try:
            produced = obj()
        except Exception:
            logger.exception("Provider plugin '%s' factory raised", origin)
            return
        yield from _expand(produced, origin)
        return
    if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
        for item in obj:
            yield from _expand(item, origin)
        return
    logger.warning("Provider plugin '%s' resolved to %r, which is not a provider", origin, obj)


def _scan_entry_points() -> Dict[str, EffectProvider]:
    try:
        candidates = metadata.entry_points().select(group=PLUGIN_GROUP)
    except Exception:
        logger.exception("Unable to read entry points for group '%s'", PLUGIN_GROUP)
        return {}

    found: Dict[str, EffectProvider] = {}
    for entry_point in candidates:
        try:
            loaded = entry_point.load()
        except Exception:
            logger.exception("Failed to load provider plugin '%s'", entry_point.name)
            continue
        for provider in _expand(loaded, entry_point.name):
            if provider.source_id in found:
                logger.warning(
                    "Provider plugin '%s' redefines source '%s'",
                    entry_point.name,
                    provider.source_id,
                )
            found[provider.source_id] = provider
    logger.info("Discovered %d provider plugin(s) in group '%s'", len(found), PLUGIN_GROUP)
    return found


def discover_providers(overrides: Mapping[str, EffectProvider] | None = None) -> Dict[str, EffectProvider]:
    """Entry-point providers, then manually registered ones, then ``overrides``.

    Later layers win on a shared source id. Entry points are scanned once
    until ``reset_plugins`` is called.
    """

    global _discovered
    if _discovered is None:
        _discovered = _scan_entry_points()
    combined = {**_discovered, **_manual}
    if overrides:
        combined.update(overrides)
    return combined


def reset_plugins() -> None:
    """Forget registered and discovered plugins."""

    global _discovered
    _manual.clear()
    _discovered = None


__all__ = [
    "PLUGIN_GROUP",
    "discover_providers",
    "register_provider_plugin",
    "register_provider_plugins",
    "reset_plugins",
]
