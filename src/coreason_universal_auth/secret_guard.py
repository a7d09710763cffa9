# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_universal_auth

"""
SecretGuard: a redacting wrapper for sensitive values.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, SecretBytes, SecretStr

T = TypeVar("T")

REDACTION_MARKER = "**********"


def zero_value(value: Any) -> Any:
    """
    Overwrites a value with its zero equivalent.

    Mutable containers are cleared in place (``bytearray`` buffers are filled with NUL
    bytes first), pydantic models are zeroed field by field, and the zero value of the
    same type is returned so callers can rebind immutable values.

    Note: CPython ``str`` objects are immutable; the best that can be done for them is
    dropping every reference held by the guarded structure.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return 0
    if isinstance(value, float):
        return 0.0
    if isinstance(value, str):
        return ""
    if isinstance(value, bytearray):
        value[:] = b"\x00" * len(value)
        return value
    if isinstance(value, bytes):
        return b""
    if isinstance(value, SecretStr):
        return SecretStr("")
    if isinstance(value, SecretBytes):
        return SecretBytes(b"")
    if isinstance(value, list):
        for item in value:
            zero_value(item)
        value.clear()
        return value
    if isinstance(value, dict):
        for item in value.values():
            zero_value(item)
        value.clear()
        return value
    if isinstance(value, set):
        value.clear()
        return value
    if isinstance(value, BaseModel):
        for name in type(value).model_fields:
            current = value.__dict__.get(name)
            if current is None:
                continue
            # object.__setattr__ bypasses the frozen model guard
            object.__setattr__(value, name, zero_value(current))
        return value
    zeroize = getattr(value, "zeroize", None)
    if callable(zeroize):
        zeroize()
    return value


class SecretGuard(Generic[T]):
    """
    Holds a sensitive value so that it never leaks through formatting or logging.

    The contents are only reachable through :meth:`expose_secret`, which must be called
    by name at every read site. On :meth:`zeroize`, or when a ``with`` block over the
    guard exits, every field of the guarded value is overwritten with its zero value.
    Garbage collection only releases the reference: a value obtained from
    :meth:`expose_secret` stays intact for as long as the caller holds it.
    """

    __slots__ = ("_value", "_zeroized")

    def __init__(self, value: T) -> None:
        self._value = value
        self._zeroized = False

    def expose_secret(self) -> T:
        """
        Returns the guarded value.

        Returns:
            T: The guarded value (zeroed if :meth:`zeroize` has been called).
        """
        return self._value

    def zeroize(self) -> None:
        """Overwrites the guarded value with its zero value. Idempotent."""
        if self._zeroized:
            return
        self._value = zero_value(self._value)
        self._zeroized = True

    @property
    def is_zeroized(self) -> bool:
        return self._zeroized

    def __repr__(self) -> str:
        return f"SecretGuard('{REDACTION_MARKER}')"

    def __str__(self) -> str:
        return self.__repr__()

    def __eq__(self, other: object) -> bool:
        # Identity only, so comparisons cannot be used to probe the contents
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def __reduce__(self) -> Any:
        raise TypeError("SecretGuard cannot be pickled.")

    def __enter__(self) -> "SecretGuard[T]":
        return self

    def __exit__(self, *exc: object) -> None:
        self.zeroize()
