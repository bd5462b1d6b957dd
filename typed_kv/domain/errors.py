"""Errors raised by the typed accessor."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from .native_type import NativeType


class TypedKVError(Exception):
    """Base exception for all accessor errors."""


class KeyNotFoundError(TypedKVError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"The key '{key}' does not exist")


class TypeMismatchError(TypedKVError):
    def __init__(
        self,
        key: str,
        actual: NativeType,
        expected: Iterable[NativeType],
    ) -> None:
        self.key = key
        self.actual = actual
        self.expected = tuple(expected)
        expected_labels = "' or '".join(t.label for t in self.expected)
        super().__init__(
            f"The key '{key}' holds a '{actual.label}', expected '{expected_labels}'"
        )


class InvalidFormatError(TypedKVError):
    def __init__(self, key: str, value: str, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"The value of key '{key}' is invalid: {reason} (got {value!r})")


class PersistenceError(TypedKVError):
    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Could not save the value of key '{key}': {reason}")


class ValueLostError(PersistenceError):
    """The previous value was deleted but the replacement was not written."""

    def __init__(self, key: str, reason: str, previous_type: Optional[NativeType] = None) -> None:
        self.previous_type = previous_type
        super().__init__(key, f"{reason}; the previous value was already deleted")


class InvalidArgumentError(TypedKVError, ValueError):
    def __init__(self, description: str, value: Any = None) -> None:
        self.description = description
        self.value = value
        super().__init__(description)
