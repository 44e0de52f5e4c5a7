"""Utility helpers for the FlickPick service."""

from __future__ import annotations

import re
from typing import Any

from .errors import InvalidInputError


INTEGER_RE = re.compile(r"-?[0-9]+")


def coerce_int(value: Any, *, field: str) -> int:
    """Return ``value`` as an integer identifier or raise ``InvalidInputError``.

    JSON integers and integer strings (``"28"``) are accepted. Booleans and
    floats are rejected even though Python treats them as numbers.
    """

    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if INTEGER_RE.fullmatch(text):
            try:
                return int(text)
            except ValueError as exc:
                # Beyond the interpreter's integer string conversion limit.
                raise InvalidInputError(f"{field} must be an integer") from exc
    raise InvalidInputError(f"{field} must be an integer")


def coerce_int_list(values: Any, *, field: str) -> list[int]:
    """Validate a JSON array of integer identifiers."""

    if not isinstance(values, (list, tuple)):
        raise InvalidInputError(f"{field} must be an array")
    return [coerce_int(value, field=field) for value in values]


def dedupe(values: list[int]) -> list[int]:
    """Drop repeated identifiers, keeping first occurrences in order."""

    seen: set[int] = set()
    unique: list[int] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        unique.append(value)
    return unique


def bearer_token(authorization: str | None) -> str:
    """Extract the credential from an ``Authorization`` header value."""

    raw = (authorization or "").strip()
    if not raw:
        return ""
    scheme, _, credential = raw.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return credential.strip()
