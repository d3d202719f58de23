"""
Kernel configuration schema.

Frozen dataclasses produced by ``wholesale_config.loader`` from YAML.  The
kernel receives a ``KernelConfig`` through its constructor and never reads
files or environment variables itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class AuditConfig:
    """Audit list paging and export window."""

    page_size: int = 20
    export_max_days: int = 365


@dataclass(frozen=True)
class BootstrapConfig:
    """The protected superadmin created when a store has none."""

    superadmin_id: str = "u-super"
    name: str = "Super Admin"
    email: str = "super@signalwholesale.com"
    password: str = "demo123"


@dataclass(frozen=True)
class SecurityConfig:
    password_rounds: int = 12


@dataclass(frozen=True)
class MigrationConfig:
    """Rules applied to stored documents on load."""

    legacy_status_map: Mapping[str, str] = field(default_factory=lambda: {
        "packing": "confirmed",
        "submitted": "pending",
        "invoiced": "completed",
    })
    fallback_status: str = "pending"
    product_supplier_lookup: Mapping[str, str] = field(default_factory=dict)
    default_supplier_id: str = "sup-default"


@dataclass(frozen=True)
class PersistenceConfig:
    """Where snapshots go.  ``database_url`` of None keeps them in memory."""

    database_url: str | None = None
    snapshot_name: str = "default"
    echo: bool = False


@dataclass(frozen=True)
class BuyerTierDef:
    id: str
    name: str
    multiplier: str = "1"
    description: str | None = None
    default_payment_terms: str | None = None


@dataclass(frozen=True)
class KernelConfig:
    """The single runtime configuration artifact."""

    config_id: str = "wholesale-default"
    version: int = 1
    audit: AuditConfig = field(default_factory=AuditConfig)
    bootstrap: BootstrapConfig = field(default_factory=BootstrapConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    buyer_tiers: tuple[BuyerTierDef, ...] = ()
    log_level: str = "INFO"
    checksum: str = ""
