"""Canonical Pydantic models shared across all shellcred modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Credential models** -- produced by discovery and consumed by provisioning:
    :class:`FieldName`, :class:`ImportCandidate`, and :class:`CacheEntry`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`ProvisioningConfig`, :class:`CacheConfig`, :class:`PluginsConfig`,
    and :class:`GlobalConfig`.

All models use Pydantic v2. Candidates and cache entries are frozen so that
a value handed to a strategy's caller cannot be mutated behind its back.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Credential Models ---


class FieldName(str, enum.Enum):
    """Identifier for one piece of credential material.

    Values are the human-readable names shown in listings; a credential set
    holds each name at most once.
    """

    ACCESS_KEY_ID = "Access Key ID"
    SECRET_ACCESS_KEY = "Secret Access Key"
    DEFAULT_REGION = "Default Region"
    ONE_TIME_PASSWORD = "One-Time Password"
    MFA_SERIAL = "MFA Serial"
    HOST = "Host"
    PORT = "Port"
    USER = "User"
    PASSWORD = "Password"
    DATABASE = "Database"
    CREDENTIALS = "Credentials"
    TOKEN = "Token"
    SERVICE_ACCOUNT = "Service Account"


class ImportCandidate(BaseModel):
    """One plausible credential set discovered from a single source.

    A candidate may be partial (e.g. only a region from an environment
    variable); the consuming layer decides whether it is usable. The
    :attr:`name_hint` disambiguates several candidates from the same source,
    such as named profiles in ``~/.aws/credentials``, and must already be
    sanitised with :func:`~shellcred.importer.names.sanitize_name_hint`.

    Example::

        ImportCandidate(
            fields={FieldName.ACCESS_KEY_ID: "AKIA...", FieldName.SECRET_ACCESS_KEY: "..."},
            name_hint="user1",
        )
    """

    model_config = ConfigDict(frozen=True)

    fields: dict[FieldName, str] = Field(default_factory=dict)
    name_hint: Optional[str] = None

    def has_fields(self, required: list[FieldName] | tuple[FieldName, ...]) -> bool:
        """Return ``True`` if every field in *required* is present and non-empty."""
        return all(self.fields.get(name) for name in required)


class CacheEntry(BaseModel):
    """A single value persisted between the generate and remove phases.

    Attributes:
        key: Session-relative key (e.g. ``"user"``).
        data: JSON-encoded payload.
        expires_at: UTC instant after which the entry is treated as absent.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    data: bytes
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check expiry against *now*, treating naive datetimes as UTC."""
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return now >= expires


# --- Configuration Models ---


class ProvisioningConfig(BaseModel):
    """Ephemeral provisioning settings stored in :class:`GlobalConfig`."""

    ttl_seconds: int = Field(
        default=36000,
        gt=0,
        description="Lifetime of cached provisioning state; must outlast the wrapped command",
    )
    network_timeout: float = Field(
        default=30.0, gt=0, description="Timeout in seconds for calls to backing services"
    )
    rollback_on_failure: bool = Field(
        default=True,
        description="Tear down partially created identities when generation fails",
    )


class CacheConfig(BaseModel):
    """Provisioning cache location stored in :class:`GlobalConfig`."""

    directory: Optional[str] = Field(
        default=None, description="Cache directory (defaults to the XDG cache dir)"
    )


class PluginsConfig(BaseModel):
    """Explicit plugin allow/deny lists stored in :class:`GlobalConfig`."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/shellcred/config.json``.

    Loaded and saved by :func:`~shellcred.config.load_global_config` and
    :func:`~shellcred.config.save_global_config`. Environment variables
    applied by :func:`~shellcred.config.resolve_config` take precedence.
    """

    provisioning: ProvisioningConfig = Field(default_factory=ProvisioningConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
