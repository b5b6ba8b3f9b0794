"""
Instructor name handling -- normalization and the pairing token.

A raw instructor field in the schedule spreadsheet may name two (or more)
instructors joined by a reserved pairing token, e.g. ``"Ana vs Maria"``.
Such strings identify a paired class, never a person: they are split for
class records and rejected as a single instructor identity.

Pure functions, zero I/O.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from payroll_kernel.exceptions import InvalidInstructorNameError

DEFAULT_PAIRING_TOKENS: tuple[str, ...] = ("vs", "vs.")


@lru_cache(maxsize=16)
def _token_pattern(tokens: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(
        re.escape(t) for t in sorted(tokens, key=len, reverse=True)
    )
    return re.compile(rf"\s+(?:{alternatives})\s+", re.IGNORECASE)


def normalize_name(raw: str) -> str:
    """Collapse whitespace and capitalize each word: ``"juan  PEREZ"`` -> ``"Juan Perez"``."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in raw.split())


def contains_pairing_token(
    name: str, tokens: Iterable[str] = DEFAULT_PAIRING_TOKENS
) -> bool:
    return bool(_token_pattern(tuple(tokens)).search(f" {name} "))


def split_instructor_names(
    raw: str, tokens: Iterable[str] = DEFAULT_PAIRING_TOKENS
) -> tuple[str, ...]:
    """Split a raw instructor field into normalized names.

    A field without the pairing token yields a single name.  Empty parts are
    dropped.
    """
    parts = _token_pattern(tuple(tokens)).split(f" {raw.strip()} ")
    return tuple(normalize_name(p) for p in parts if p.strip())


def validate_instructor_name(
    name: str, tokens: Iterable[str] = DEFAULT_PAIRING_TOKENS
) -> str:
    """Return the normalized name, or raise if it cannot identify one person.

    Raises:
        InvalidInstructorNameError: empty name, or the name contains the
            pairing token.
    """
    normalized = normalize_name(name)
    if not normalized:
        raise InvalidInstructorNameError(name, "is empty")
    if contains_pairing_token(normalized, tokens):
        raise InvalidInstructorNameError(name)
    return normalized
