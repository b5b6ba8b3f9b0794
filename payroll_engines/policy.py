"""
PayrollPolicy -- the constants the pure payroll engines are parameterized by.

Engines never read configuration files; callers build a ``PayrollPolicy``
(normally via ``payroll_config.PayrollSettings.to_policy()``) and pass it in.
The defaults reproduce the shipped configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class OffPeakWindow:
    """Start times (``HH:MM``) that are off-peak at venues whose name
    contains ``venue_key`` (case-insensitive)."""

    venue_key: str
    times: frozenset[str]

    def matches(self, venue: str, time_of_day: str) -> bool:
        return self.venue_key.lower() in venue.lower() and time_of_day in self.times


DEFAULT_OFF_PEAK_SCHEDULE: tuple[OffPeakWindow, ...] = (
    OffPeakWindow("Reducto", frozenset({"08:00", "09:00", "13:00", "18:00"})),
    OffPeakWindow("San Isidro", frozenset({"09:00", "13:00"})),
    OffPeakWindow("Primavera", frozenset({"09:00", "13:00", "18:00"})),
    OffPeakWindow("Estancia", frozenset({"06:00", "09:15", "18:00"})),
)


@dataclass(frozen=True)
class PayrollPolicy:
    weeks_per_period: int = 4
    capital_city: str = "Lima"
    reference_discipline: str | None = "Siclo"
    off_peak_schedule: tuple[OffPeakWindow, ...] = DEFAULT_OFF_PEAK_SCHEDULE
    retention_rate: Decimal = Decimal("0.08")
    cover_rate: Decimal = Decimal("80")
    branding_rate: Decimal = Decimal("15")
    theme_ride_rate: Decimal = Decimal("30")
    versus_bonus_rate: Decimal = Decimal("30")
    penalty_max_allowed_ratio: Decimal = Decimal("0.10")
    max_penalty_discount_percent: Decimal = Decimal("100")

    def __post_init__(self) -> None:
        if self.weeks_per_period <= 0:
            raise ValueError("weeks_per_period must be positive")
        if not Decimal("0") <= self.retention_rate < Decimal("1"):
            raise ValueError("retention_rate must be in [0, 1)")
        if not Decimal("0") <= self.max_penalty_discount_percent <= Decimal("100"):
            raise ValueError("max_penalty_discount_percent must be in [0, 100]")
