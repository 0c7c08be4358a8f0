"""JSON file storage for tenant domain bindings.

This is a self-hosted implementation of the business record store: it owns
the domain -> tenant mapping and the binding lifecycle, and enforces that a
normalized domain is bound to at most one tenant. Deployments with their own
database implement the same methods instead.

Writes go to a temp file that is renamed over the storage file. An unreadable
file raises StorageError rather than being treated as empty.

Storage file format (domains.json):
    {
        "bindings": {
            "tenant-123": {
                "tenant_id": "tenant-123",
                "custom_domain": "shop.example.com",
                "status": "active",
                "verification_token": "platform-verify-3f9c...",
                "token_expires_at": "2024-01-22T10:00:00+00:00",
                "verified_at": "2024-01-15T10:30:00+00:00",
                "last_checked": "2024-01-15T10:30:00+00:00",
                "last_error": null,
                "created_at": "2024-01-15T10:00:00+00:00"
            }
        }
    }
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from tenantdomains.domains.availability import TenantRef
from tenantdomains.domains.errors import ConflictError, StorageError

logger = structlog.get_logger()


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _write_atomic(path: Path, content: str) -> None:
    """Write content to a temp file beside path, then rename it over path."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


class BindingStatus(Enum):
    """Lifecycle of a tenant's custom domain."""

    PENDING = "pending"
    ACTIVE = "active"


@dataclass
class DomainBinding:
    """A tenant's custom domain and its verification state."""

    tenant_id: str
    custom_domain: str | None = None
    status: BindingStatus = BindingStatus.PENDING
    verification_token: str | None = None
    token_expires_at: datetime | None = None
    verified_at: datetime | None = None
    last_checked: datetime | None = None
    last_error: str | None = None
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def is_active(self) -> bool:
        return self.custom_domain is not None and self.status == BindingStatus.ACTIVE

    def token_expired(self, now: datetime | None = None) -> bool:
        if self.token_expires_at is None:
            return False
        return self.token_expires_at < (now or _utc_now())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "tenant_id": self.tenant_id,
            "custom_domain": self.custom_domain,
            "status": self.status.value,
            "verification_token": self.verification_token,
            "token_expires_at": self.token_expires_at.isoformat()
            if self.token_expires_at
            else None,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "last_checked": self.last_checked.isoformat() if self.last_checked else None,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DomainBinding:
        """Create from dictionary (JSON deserialization)."""
        return cls(
            tenant_id=data["tenant_id"],
            custom_domain=data.get("custom_domain"),
            status=BindingStatus(data.get("status", BindingStatus.PENDING.value)),
            verification_token=data.get("verification_token"),
            token_expires_at=_parse_dt(data.get("token_expires_at")),
            verified_at=_parse_dt(data.get("verified_at")),
            last_checked=_parse_dt(data.get("last_checked")),
            last_error=data.get("last_error"),
            created_at=_parse_dt(data.get("created_at")) or _utc_now(),
        )


class DomainStore:
    """JSON file-based storage for domain bindings.

    Serialized via an asyncio lock. Suitable for self-hosted deployments
    with moderate tenant counts.
    """

    def __init__(self, storage_path: str | Path = "domains.json") -> None:
        """Initialize domain store.

        Args:
            storage_path: Path to the JSON storage file.
        """
        self.storage_path = Path(storage_path)
        self._lock = asyncio.Lock()
        self._cache: dict[str, DomainBinding] | None = None

    async def _load(self) -> dict[str, DomainBinding]:
        """Load bindings from storage file."""
        if self._cache is not None:
            return self._cache

        if not self.storage_path.exists():
            self._cache = {}
            return self._cache

        try:
            content = await asyncio.to_thread(self.storage_path.read_text)
            data = json.loads(content)
            bindings = {
                tenant_id: DomainBinding.from_dict(binding)
                for tenant_id, binding in data.get("bindings", {}).items()
            }
        except (OSError, json.JSONDecodeError, KeyError, ValueError, AttributeError) as e:
            logger.error(
                "Unreadable domain storage",
                path=str(self.storage_path),
                error=str(e),
            )
            raise StorageError(
                f"Domain storage {self.storage_path} is unreadable: {e}", code="STORAGE_UNREADABLE"
            ) from e

        self._cache = bindings
        return self._cache

    async def _save(self, bindings: dict[str, DomainBinding]) -> None:
        """Save bindings to storage file, replacing it atomically.

        The cache is updated only once the file is in place.
        """
        data = {"bindings": {tenant_id: b.to_dict() for tenant_id, b in bindings.items()}}
        content = json.dumps(data, indent=2)
        try:
            await asyncio.to_thread(_write_atomic, self.storage_path, content)
        except OSError as e:
            logger.error("Failed to write domain storage", path=str(self.storage_path), error=str(e))
            raise StorageError(
                f"Could not write domain storage {self.storage_path}: {e}", code="STORAGE_WRITE"
            ) from e
        self._cache = bindings

    @staticmethod
    def _holder(
        bindings: dict[str, DomainBinding], domain: str, exclude_tenant_id: str | None
    ) -> DomainBinding | None:
        for binding in bindings.values():
            if binding.custom_domain == domain and binding.tenant_id != exclude_tenant_id:
                return binding
        return None

    async def save(self, binding: DomainBinding) -> None:
        """Save or update a binding.

        Raises:
            ConflictError: If another tenant already holds the domain.
            StorageError: If the storage file cannot be read or written.
        """
        async with self._lock:
            bindings = dict(await self._load())
            if binding.custom_domain and self._holder(
                bindings, binding.custom_domain, binding.tenant_id
            ):
                raise ConflictError(
                    "This domain is already connected to another store", code="DOMAIN_TAKEN"
                )
            bindings[binding.tenant_id] = binding
            await self._save(bindings)

    async def get(self, tenant_id: str) -> DomainBinding | None:
        """Get the binding for a tenant."""
        async with self._lock:
            bindings = await self._load()
            return bindings.get(tenant_id)

    async def get_by_domain(self, domain: str) -> DomainBinding | None:
        """Get the binding holding a domain, whatever its status."""
        async with self._lock:
            bindings = await self._load()
            return self._holder(bindings, domain, None)

    async def find_tenant_by_custom_domain(
        self, domain: str, exclude_tenant_id: str | None = None
    ) -> TenantRef | None:
        """Find the tenant holding domain, ignoring exclude_tenant_id."""
        async with self._lock:
            bindings = await self._load()
            holder = self._holder(bindings, domain, exclude_tenant_id)
            return TenantRef(holder.tenant_id) if holder else None

    async def list_all(self) -> list[DomainBinding]:
        """Get all bindings."""
        async with self._lock:
            bindings = await self._load()
            return list(bindings.values())

    async def list_active(self) -> list[DomainBinding]:
        """Get all bindings whose domain is verified and serving."""
        async with self._lock:
            bindings = await self._load()
            return [b for b in bindings.values() if b.is_active]

    async def delete(self, tenant_id: str) -> bool:
        """Delete a tenant's binding.

        Returns:
            True if deleted, False if not found.
        """
        async with self._lock:
            bindings = await self._load()
            if tenant_id not in bindings:
                return False
            remaining = {tid: b for tid, b in bindings.items() if tid != tenant_id}
            await self._save(remaining)
            return True

    def invalidate_cache(self) -> None:
        """Invalidate the in-memory cache.

        Call this after external modifications to the storage file.
        """
        self._cache = None
