"""
Configuration Loader (``wholesale_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``wholesale_config.schema`` dataclasses.  Runtime callers go through
``wholesale_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Out-of-range values raise ``ValueError`` with a descriptive message.
* ``compute_checksum`` is deterministic for identical input.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from wholesale_config.schema import (
    AuditConfig,
    BootstrapConfig,
    BuyerTierDef,
    KernelConfig,
    MigrationConfig,
    PersistenceConfig,
    SecurityConfig,
)

# bcrypt cost factor bounds
MIN_ROUNDS = 4
MAX_ROUNDS = 31


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


def parse_audit(data: dict[str, Any]) -> AuditConfig:
    defaults = AuditConfig()
    return AuditConfig(
        page_size=_positive_int(data.get("page_size", defaults.page_size), "audit.page_size"),
        export_max_days=_positive_int(
            data.get("export_max_days", defaults.export_max_days),
            "audit.export_max_days",
        ),
    )


def parse_bootstrap(data: dict[str, Any]) -> BootstrapConfig:
    defaults = BootstrapConfig()
    bootstrap = BootstrapConfig(
        superadmin_id=str(data.get("superadmin_id", defaults.superadmin_id)),
        name=str(data.get("name", defaults.name)),
        email=str(data.get("email", defaults.email)),
        password=str(data.get("password", defaults.password)),
    )
    if not bootstrap.superadmin_id or "@" not in bootstrap.email:
        raise ValueError("bootstrap requires a superadmin_id and a valid email")
    return bootstrap


def parse_security(data: dict[str, Any]) -> SecurityConfig:
    rounds = _positive_int(
        data.get("password_rounds", SecurityConfig().password_rounds),
        "security.password_rounds",
    )
    if not MIN_ROUNDS <= rounds <= MAX_ROUNDS:
        raise ValueError(
            f"security.password_rounds must be between {MIN_ROUNDS} and {MAX_ROUNDS}, got {rounds}"
        )
    return SecurityConfig(password_rounds=rounds)


def parse_migration(data: dict[str, Any]) -> MigrationConfig:
    defaults = MigrationConfig()
    status_map = data.get("legacy_status_map", defaults.legacy_status_map)
    lookup = data.get("product_supplier_lookup") or {}
    if not isinstance(status_map, dict) or not isinstance(lookup, dict):
        raise ValueError("migration maps must be mappings")
    return MigrationConfig(
        legacy_status_map={str(k): str(v) for k, v in status_map.items()},
        fallback_status=str(data.get("fallback_status", defaults.fallback_status)),
        product_supplier_lookup={str(k): str(v) for k, v in lookup.items()},
        default_supplier_id=str(data.get("default_supplier_id", defaults.default_supplier_id)),
    )


def parse_persistence(data: dict[str, Any]) -> PersistenceConfig:
    defaults = PersistenceConfig()
    return PersistenceConfig(
        database_url=data.get("database_url") or None,
        snapshot_name=str(data.get("snapshot_name", defaults.snapshot_name)),
        echo=bool(data.get("echo", defaults.echo)),
    )


def parse_buyer_tier(data: dict[str, Any]) -> BuyerTierDef:
    """
    Parse a buyer tier from a dict.

    Raises:
        KeyError: ``id`` or ``name`` missing.
        ValueError: ``multiplier`` is not a positive number.
    """
    multiplier = str(data.get("multiplier", "1"))
    try:
        valid = Decimal(multiplier) > 0
    except InvalidOperation:
        valid = False
    if not valid:
        raise ValueError(f"buyer tier {data.get('id')!r} has invalid multiplier {multiplier!r}")
    return BuyerTierDef(
        id=data["id"],
        name=data["name"],
        multiplier=multiplier,
        description=data.get("description"),
        default_payment_terms=data.get("default_payment_terms"),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> KernelConfig:
    """Build a ``KernelConfig`` from already-loaded YAML data."""
    tiers = tuple(parse_buyer_tier(t) for t in data.get("buyer_tiers") or [])
    tier_ids = [t.id for t in tiers]
    if len(tier_ids) != len(set(tier_ids)):
        raise ValueError(f"duplicate buyer tier ids: {tier_ids}")
    return KernelConfig(
        config_id=str(data.get("config_id", "wholesale-default")),
        version=int(data.get("version", 1)),
        audit=parse_audit(data.get("audit") or {}),
        bootstrap=parse_bootstrap(data.get("bootstrap") or {}),
        security=parse_security(data.get("security") or {}),
        migration=parse_migration(data.get("migration") or {}),
        persistence=parse_persistence(data.get("persistence") or {}),
        buyer_tiers=tiers,
        log_level=str(data.get("log_level", "INFO")).upper(),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> KernelConfig:
    return parse_config(load_yaml_file(path))
