"""
PayrollSettings schema.

The human-authored payroll configuration as a frozen value.  YAML is
parsed into these types by ``payroll_config.loader``; engines never see
this type directly but receive the ``PayrollPolicy`` built by
``PayrollSettings.to_policy()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from payroll_kernel.domain.names import DEFAULT_PAIRING_TOKENS
from payroll_engines.policy import DEFAULT_OFF_PEAK_SCHEDULE, OffPeakWindow, PayrollPolicy

DEFAULT_DATABASE_URL = "sqlite:///payroll.db"


@dataclass(frozen=True)
class PayrollSettings:
    """Validated payroll configuration."""

    weeks_per_period: int = 4
    capital_city: str = "Lima"
    reference_discipline: str | None = "Siclo"
    pairing_tokens: tuple[str, ...] = DEFAULT_PAIRING_TOKENS
    retention_rate: Decimal = Decimal("0.08")
    cover_rate: Decimal = Decimal("80")
    branding_rate: Decimal = Decimal("15")
    theme_ride_rate: Decimal = Decimal("30")
    versus_bonus_rate: Decimal = Decimal("30")
    penalty_max_allowed_ratio: Decimal = Decimal("0.10")
    max_penalty_discount_percent: Decimal = Decimal("10")
    max_workers: int = 4
    off_peak_schedule: tuple[OffPeakWindow, ...] = DEFAULT_OFF_PEAK_SCHEDULE
    database_url: str = DEFAULT_DATABASE_URL
    source: str | None = None
    fingerprint: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if not self.pairing_tokens:
            raise ValueError("pairing_tokens must not be empty")

    def to_policy(self) -> PayrollPolicy:
        """Engine-facing subset of the settings."""
        return PayrollPolicy(
            weeks_per_period=self.weeks_per_period,
            capital_city=self.capital_city,
            reference_discipline=self.reference_discipline,
            off_peak_schedule=self.off_peak_schedule,
            retention_rate=self.retention_rate,
            cover_rate=self.cover_rate,
            branding_rate=self.branding_rate,
            theme_ride_rate=self.theme_ride_rate,
            versus_bonus_rate=self.versus_bonus_rate,
            penalty_max_allowed_ratio=self.penalty_max_allowed_ratio,
            max_penalty_discount_percent=self.max_penalty_discount_percent,
        )
