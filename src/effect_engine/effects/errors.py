from __future__ import annotations


class EffectError(Exception):
    """Base class for effect engine failures."""


class UnknownEffectError(EffectError, KeyError):
    """Raised when an effect name is not present in the catalog."""

    def __init__(self, name: str, source_id: str | None = None) -> None:
        self.name = name
        self.source_id = source_id
        detail = f" from source '{source_id}'" if source_id else ""
        super().__init__(f"Unknown effect '{name}'{detail}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class InvalidValueError(EffectError, ValueError):
    """Raised when a contribution value, priority or metadata is malformed."""

    def __init__(self, name: str, value: object, field: str = "value", expected: str = "a finite number") -> None:
        self.name = name
        self.value = value
        self.field = field
        super().__init__(f"Effect '{name}' {field} must be {expected}, got {value!r}")

