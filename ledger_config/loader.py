"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the intake YAML file and parses it into a frozen ``IntakeConfig``.
Runtime callers go through ``ledger_config.get_active_config()``; this
module is the parsing step behind it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import IntakeConfig

_DECIMAL_KEYS = ("vat_rate", "price_alert_tolerance", "price_alert_min_change_pct")
_INT_KEYS = ("claim_ttl_minutes", "currency_places")
_STR_KEYS = ("default_payment_method", "config_id")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(key: str, value: Any) -> Decimal:
    """Parse a YAML scalar as Decimal, going through ``str`` for floats."""
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{key}: cannot parse decimal from {value!r}") from exc


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_intake_config(data: dict[str, Any]) -> IntakeConfig:
    """
    Parse an ``IntakeConfig`` from a dict.

    The dict may be the whole YAML document or its ``intake`` section.
    Keys that are absent keep their dataclass defaults.

    Raises:
        ValueError: unknown key or invalid value.
    """
    section = data.get("intake", data)
    known = set(_DECIMAL_KEYS) | set(_INT_KEYS) | set(_STR_KEYS)
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown intake configuration keys: {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for key in _DECIMAL_KEYS:
        if key in section:
            kwargs[key] = parse_decimal(key, section[key])
    for key in _INT_KEYS:
        if key in section:
            kwargs[key] = int(section[key])
    for key in _STR_KEYS:
        if key in section:
            kwargs[key] = str(section[key])

    return IntakeConfig(checksum=compute_checksum(section), **kwargs)


def load_intake_config(path: Path) -> IntakeConfig:
    """Load and parse an intake configuration file."""
    return parse_intake_config(load_yaml_file(path))
