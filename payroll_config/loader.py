"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``payroll_config.schema.PayrollSettings``.  Runtime callers go through
``payroll_config.get_active_config()``; this module is the tooling
behind it.

Invariants enforced
-------------------
* Unknown top-level keys are rejected with ``ValueError`` so a typo never
  silently falls back to a default.
* Money and ratio values are parsed through ``str`` into ``Decimal``; YAML
  floats never reach the engines.
* ``compute_fingerprint`` is a deterministic SHA-256 over the canonical
  JSON of the parsed data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong shape or out-of-range value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import PayrollSettings
from payroll_engines.policy import OffPeakWindow

_DECIMAL_KEYS = (
    "retention_rate",
    "cover_rate",
    "branding_rate",
    "theme_ride_rate",
    "versus_bonus_rate",
    "penalty_max_allowed_ratio",
    "max_penalty_discount_percent",
)
_INT_KEYS = ("weeks_per_period", "max_workers")
_STR_KEYS = ("capital_city", "database_url")
_KNOWN_KEYS = frozenset(
    _DECIMAL_KEYS
    + _INT_KEYS
    + _STR_KEYS
    + ("reference_discipline", "pairing_tokens", "off_peak_schedule")
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML must be a mapping")
    return data


def parse_decimal(key: str, value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key}: not a number: {value!r}") from None


def parse_off_peak_schedule(data: Any) -> tuple[OffPeakWindow, ...]:
    """Parse ``{venue_key: ["HH:MM", ...]}`` into off-peak windows."""
    if not isinstance(data, dict):
        raise ValueError("off_peak_schedule must map venue keys to time lists")
    windows = []
    for venue_key, times in data.items():
        if isinstance(times, str):
            times = [times]
        windows.append(OffPeakWindow(str(venue_key), frozenset(str(t) for t in times)))
    return tuple(windows)


def parse_settings(
    data: dict[str, Any], source: str | None = None
) -> PayrollSettings:
    """
    Parse a settings mapping; absent keys keep their schema default.

    Raises:
        ValueError: unknown key or invalid value.
    """
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    for key in _DECIMAL_KEYS:
        if key in data:
            kwargs[key] = parse_decimal(key, data[key])
    for key in _INT_KEYS:
        if key in data:
            kwargs[key] = int(data[key])
    for key in _STR_KEYS:
        if key in data:
            kwargs[key] = str(data[key])
    if "reference_discipline" in data:
        ref = data["reference_discipline"]
        kwargs["reference_discipline"] = str(ref) if ref else None
    if "pairing_tokens" in data:
        kwargs["pairing_tokens"] = tuple(str(t).lower() for t in data["pairing_tokens"])
    if "off_peak_schedule" in data:
        kwargs["off_peak_schedule"] = parse_off_peak_schedule(data["off_peak_schedule"])

    settings = PayrollSettings(
        source=source, fingerprint=compute_fingerprint(data), **kwargs
    )
    # Range checks live on PayrollPolicy.
    settings.to_policy()
    return settings


def load_settings(path: Path) -> PayrollSettings:
    return parse_settings(load_yaml_file(path), source=str(path))


def compute_fingerprint(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
