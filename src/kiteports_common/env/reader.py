"""Typed environment variable readers.

Each reader returns ``default`` when the variable is unset or blank. Values
that are set but cannot be parsed also fall back to ``default`` unless
``strict=True`` is passed, in which case ``ValueError`` is raised.
"""

from __future__ import annotations

import os

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def _raw(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def read_str(name: str, default: str | None = None) -> str | None:
    """Read a string variable."""
    value = _raw(name)
    return default if value is None else value


def read_int(
    name: str,
    default: int | None = None,
    *,
    strict: bool = False,
) -> int | None:
    """Read an integer variable.

    Parameters
    ----------
    name : str
        Environment variable name
    default : int, optional
        Value returned when unset or unparsable
    strict : bool
        Raise instead of falling back on unparsable values

    Returns
    -------
    int | None
        Parsed value or ``default``
    """
    value = _raw(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        if strict:
            msg = f"{name} must be an integer, got {value!r}"
            raise ValueError(msg) from None
        return default


def read_float(
    name: str,
    default: float | None = None,
    *,
    strict: bool = False,
) -> float | None:
    """Read a float variable."""
    value = _raw(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        if strict:
            msg = f"{name} must be a number, got {value!r}"
            raise ValueError(msg) from None
        return default


def read_bool(name: str, default: bool = False, *, strict: bool = False) -> bool:
    """Read a boolean variable (1/0, true/false, yes/no, on/off)."""
    value = _raw(name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    if strict:
        msg = f"{name} must be a boolean, got {value!r}"
        raise ValueError(msg)
    return default
