"""
payroll_config -- single public entrypoint for payroll configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``PayrollSettings``; engines
    receive its ``to_policy()`` projection and never read files themselves.

Architecture position:
    Configuration -- YAML-driven settings.  Sits above ``payroll_kernel``
    and ``payroll_engines`` and below ``payroll_batch`` /
    ``payroll_ingestion``.  The kernel MUST NEVER import from
    ``payroll_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - The ``PAYROLL_CONFIG`` environment variable, when set, names the YAML
      file; otherwise the packaged ``defaults.yaml`` is used.
    - Deterministic fingerprint: the same YAML content always yields the
      same ``PayrollSettings.fingerprint``.

Failure modes:
    - ``FileNotFoundError`` -- the configured file does not exist.
    - ``ValueError`` -- unknown key or out-of-range value.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry with the source path, fingerprint
    and the rates that drive payment amounts, tying every payroll run to
    the configuration that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from payroll_config.loader import load_settings, parse_settings
from payroll_config.schema import PayrollSettings

_logger = logging.getLogger("payroll_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "PAYROLL_CONFIG"


def get_active_config(path: Path | str | None = None) -> PayrollSettings:
    """The ONLY public configuration entrypoint.

    Args:
        path: Explicit YAML file.  Takes precedence over ``PAYROLL_CONFIG``
            and the packaged defaults.

    Returns:
        Frozen ``PayrollSettings``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If the file fails validation.
    """
    resolved = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    settings = load_settings(resolved)

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "source": settings.source,
            "fingerprint": settings.fingerprint,
            "reference_discipline": settings.reference_discipline,
            "weeks_per_period": settings.weeks_per_period,
            "retention_rate": str(settings.retention_rate),
            "cover_rate": str(settings.cover_rate),
            "max_penalty_discount_percent": str(settings.max_penalty_discount_percent),
            "off_peak_venues": len(settings.off_peak_schedule),
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "PayrollSettings",
    "get_active_config",
    "parse_settings",
]
