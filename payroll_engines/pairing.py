"""
Paired-class ("vs") splitting.

Pure functions with deterministic behavior. No I/O.

A schedule row whose instructor field joins several names with the pairing
token describes one class taught jointly.  ``split_paired_class`` turns it
into one share per kept instructor, each carrying ``ceil(value / n)`` of
reservations, capacity and paid reservations, where ``n`` is the number of
names in the field (kept or not).  Rounding up means the shares of an odd
count sum to one more than the original.

Usage:
    shares = split_paired_class(
        "ana vs maria", reservations=18, capacity=20, paid_reservations=15,
    )
    # (ClassShare("Ana", 9, 10, 8, 2, "a"), ClassShare("Maria", 9, 10, 8, 2, "b"))
"""

from __future__ import annotations

import string
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from payroll_kernel.domain.names import DEFAULT_PAIRING_TOKENS, split_instructor_names
from payroll_kernel.exceptions import InvalidInstructorNameError

MAX_PAIRED_INSTRUCTORS = 4


@dataclass(frozen=True)
class ClassShare:
    """One instructor's part of a (possibly paired) class."""

    instructor_name: str
    reservations: int
    capacity: int
    paid_reservations: int
    versus_count: int = 1
    id_suffix: str = ""

    @property
    def is_versus(self) -> bool:
        return self.versus_count > 1


def ceil_share(total: int, parts: int) -> int:
    """Integer ceiling of ``total / parts``."""
    return -(-total // parts)


def split_paired_class(
    raw_instructor: str,
    reservations: int,
    capacity: int,
    paid_reservations: int,
    keep: Sequence[bool] | None = None,
    tokens: Iterable[str] = DEFAULT_PAIRING_TOKENS,
) -> tuple[ClassShare, ...]:
    """
    Split a raw instructor field into per-instructor class shares.

    Args:
        raw_instructor: e.g. ``"juan perez"`` or ``"ana vs maria"``.
        keep: Per-name flags in field order; missing flags default to True.
            Dropped names produce no share but still count towards ``n``.

    Raises:
        InvalidInstructorNameError: no name at all, or more than
            MAX_PAIRED_INSTRUCTORS names.
    """
    names = split_instructor_names(raw_instructor, tokens)
    if not names:
        raise InvalidInstructorNameError(raw_instructor, "is empty")
    if len(names) > MAX_PAIRED_INSTRUCTORS:
        raise InvalidInstructorNameError(
            raw_instructor, f"pairs more than {MAX_PAIRED_INSTRUCTORS} instructors"
        )

    if len(names) == 1:
        if keep and not keep[0]:
            return ()
        return (ClassShare(names[0], reservations, capacity, paid_reservations),)

    n = len(names)
    flags = list(keep or ())
    flags += [True] * (n - len(flags))
    return tuple(
        ClassShare(
            instructor_name=name,
            reservations=ceil_share(reservations, n),
            capacity=ceil_share(capacity, n),
            paid_reservations=ceil_share(paid_reservations, n),
            versus_count=n,
            id_suffix=string.ascii_lowercase[index],
        )
        for index, name in enumerate(names)
        if flags[index]
    )
