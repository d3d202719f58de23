"""
wholesale_config -- single public entrypoint for kernel configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``KernelConfig``.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` -- a value is out of range or malformed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``WHOLESALE_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from wholesale_config.loader import load_config, parse_config
from wholesale_config.schema import (
    AuditConfig,
    BootstrapConfig,
    BuyerTierDef,
    KernelConfig,
    MigrationConfig,
    PersistenceConfig,
    SecurityConfig,
)

_logger = logging.getLogger("wholesale_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> KernelConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a value fails validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "WHOLESALE_CONFIG_TRACE",
        extra={
            "trace_type": "WHOLESALE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "config_checksum": config.checksum,
            "buyer_tier_count": len(config.buyer_tiers),
        },
    )
    return config


__all__ = [
    "AuditConfig",
    "BootstrapConfig",
    "BuyerTierDef",
    "KernelConfig",
    "MigrationConfig",
    "PersistenceConfig",
    "SecurityConfig",
    "get_active_config",
    "parse_config",
]
