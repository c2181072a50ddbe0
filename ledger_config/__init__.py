"""
ledger_config -- single public entrypoint for intake configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services and modules receive the returned
    ``IntakeConfig`` by injection; none of them read YAML or environment
    variables directly.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and below
    ``ledger_modules`` / ``ledger_services``.  The kernel never imports it.

Failure modes:
    - ``FileNotFoundError`` -- the requested YAML file does not exist.
    - ``ValueError`` -- unknown keys or values outside their valid range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``ledger_config_loaded`` log entry carrying the config_id and checksum,
    so an approval can be tied back to the VAT rate and alert tolerance it
    ran under.
"""

from __future__ import annotations

import os
from pathlib import Path

from ledger_config.loader import load_intake_config
from ledger_config.schema import PAYMENT_METHODS, IntakeConfig
from ledger_kernel.logging_config import get_logger

__all__ = ["get_active_config", "IntakeConfig", "PAYMENT_METHODS"]

logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Environment override for deployments that ship their own YAML file.
CONFIG_PATH_ENV = "LEDGER_INTAKE_CONFIG"


def get_active_config(path: Path | None = None) -> IntakeConfig:
    """The ONLY public configuration entrypoint.

    Resolution order: explicit ``path``, then ``$LEDGER_INTAKE_CONFIG``,
    then the packaged ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If the file fails validation.
    """
    resolved = path or (
        Path(os.environ[CONFIG_PATH_ENV])
        if os.environ.get(CONFIG_PATH_ENV)
        else _DEFAULT_CONFIG_PATH
    )
    config = load_intake_config(resolved)

    logger.info(
        "ledger_config_loaded",
        extra={
            "config_id": config.config_id,
            "checksum": config.checksum,
            "source": str(resolved),
            "vat_rate": config.vat_rate,
            "price_alert_tolerance": config.price_alert_tolerance,
        },
    )
    return config
