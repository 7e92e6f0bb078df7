"""Unified configuration schema for contentful_migrations.

Defines Pydantic models for the unified config structure with dedicated
sections for the Management API connection, transfer defaults and
logging.  Includes an adapter to the ``Config`` dataclass consumed by
the client.

Usage:
    from contentful_migrations.config_schema import (
        UnifiedConfig, build_config, to_legacy_config,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_legacy_config(unified, cli_overrides={"space_id": "abc"})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

from .transfer.models import ConflictPolicy

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ContentfulConfig(BaseModel):
    """Management API connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    space_id: str | None = Field(default=None, description="Space id")
    access_token: str | None = Field(
        default=None, description="Content Management API token"
    )
    host: str = Field(
        default="api.contentful.com", description="Management API host"
    )
    storage: Literal["tag", "content"] = Field(
        default="tag",
        description="Where the applied migration version is stored",
    )
    field_id: str = Field(
        default="migration",
        description="Tag id (tag storage) holding the migration version",
    )
    migration_content_type_id: str = Field(
        default="contentful-migrations",
        description="Content type recording migrations (content storage)",
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    max_parallel_requests: int = Field(
        default=2,
        ge=1,
        le=100,
        description="Maximum concurrent requests to the API (1-100)",
    )
    page_size: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Items per list request (1-1000)",
    )

    model_config = {"frozen": True}


class TransferConfig(BaseModel):
    """Defaults for content transfers.

    Attributes:
        source_environment: Environment content is read from.
        destination_environment: Environment content is written to.
        content_type: Optional content type filter.
        policy: Conflict policy (``skip``, ``force`` or ``manual``).
    """

    source_environment: str | None = None
    destination_environment: str | None = None
    content_type: str | None = None
    policy: ConflictPolicy = ConflictPolicy.SKIP

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    contentful: ContentfulConfig = Field(default_factory=ContentfulConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> Config dataclass
# ---------------------------------------------------------------------------


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > default

    CLI overrides dict keys: space_id, access_token, host, storage,
    insecure, debug.

    Returns:
        ``Config`` dataclass instance (NOT validated; the caller should
        run ``validate_config()`` separately if needed).
    """
    # Import here to avoid circular imports
    from .config import Config

    overrides = cli_overrides or {}
    section = unified.contentful

    return Config(
        space_id=overrides.get("space_id") or section.space_id or "",
        access_token=overrides.get("access_token")
        or section.access_token
        or "",
        host=overrides.get("host") or section.host,
        storage=overrides.get("storage") or section.storage,
        field_id=section.field_id,
        migration_content_type_id=section.migration_content_type_id,
        insecure=overrides.get("insecure", False) or section.insecure,
        debug=overrides.get("debug", False) or section.debug,
        max_parallel_requests=section.max_parallel_requests,
        page_size=section.page_size,
    )
