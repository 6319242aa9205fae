"""Variant values shared between scripts, with reference counting."""

from __future__ import annotations

import enum
import threading
from typing import Any

STRING_SUBTYPE = 1
OBJECT_SUBTYPE = 3

_LONG_MIN = -(2**31)
_LONG_MAX = 2**31 - 1


class VariantType(enum.Enum):
    """The kind of value a Variant holds."""

    NONE = 0
    CHAR = 1
    SHORT = 2
    LONG = 3
    LONGLONG = 4
    FLOAT = 5
    DOUBLE = 6
    OBJECT = 7


def _infer(value: Any) -> tuple[VariantType, int]:
    if value is None:
        return VariantType.NONE, 0
    if isinstance(value, str):
        return VariantType.OBJECT, STRING_SUBTYPE
    if isinstance(value, int):
        if _LONG_MIN <= value <= _LONG_MAX:
            return VariantType.LONG, 0
        return VariantType.LONGLONG, 0
    if isinstance(value, float):
        return VariantType.DOUBLE, 0
    return VariantType.OBJECT, OBJECT_SUBTYPE


class Variant:
    """A value that may be shared by several holders.

    A new Variant has one holder.  Each extra holder calls ``retain``;
    every holder calls ``release`` when done.  When the last holder lets
    go, an object value that can itself be released or closed is.
    """

    def __init__(
        self,
        value: Any = None,
        value_type: VariantType | None = None,
        subtype: int | None = None,
    ) -> None:
        inferred_type, inferred_subtype = _infer(value)
        self.value = value
        self.value_type = inferred_type if value_type is None else value_type
        self.subtype = inferred_subtype if subtype is None else subtype
        self.instance_count = 1
        self._lock = threading.Lock()

    def retain(self) -> Variant:
        """Add a holder and return the variant."""
        with self._lock:
            self.instance_count += 1
        return self

    def release(self) -> bool:
        """Drop a holder; True when that was the last one and the value is freed."""
        with self._lock:
            self.instance_count -= 1
            if self.instance_count > 0:
                return False
        if self.value_type is VariantType.OBJECT:
            value = self.value
            releaser = getattr(value, "release", None)
            if callable(releaser):
                releaser()
            else:
                closer = getattr(value, "close", None)
                if callable(closer):
                    closer()
        return True

    def __repr__(self) -> str:
        return (
            f"Variant({self.value!r}, {self.value_type.name}, "
            f"subtype={self.subtype}, holders={self.instance_count})"
        )


def fill_string(size: int, char: str | int) -> str:
    """A string of ``size`` copies of a character, given as text or a code."""
    if size < 0:
        raise ValueError("size must not be negative")
    if isinstance(char, int):
        char = chr(char)
    if len(char) != 1:
        raise ValueError("exactly one character is needed")
    return char * size