"""Domain availability checks against the business record store.

The record store owns the authoritative domain -> tenant mapping. This module
only queries it through the BusinessRecordStore protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import structlog

from tenantdomains.domains.errors import ErrorKind
from tenantdomains.domains.normalize import normalize_domain
from tenantdomains.domains.validation import DomainPolicy, validate_domain_format

logger = structlog.get_logger()

ERROR_DOMAIN_TAKEN = "This domain is already connected to another store"


@dataclass(frozen=True)
class TenantRef:
    """Reference to a tenant holding a domain."""

    tenant_id: str


class BusinessRecordStore(Protocol):
    """Read interface the availability check needs from the record store."""

    async def find_tenant_by_custom_domain(
        self, domain: str, exclude_tenant_id: str | None = None
    ) -> TenantRef | None: ...


@dataclass(frozen=True)
class AvailabilityResult:
    """Outcome of an availability check."""

    is_available: bool
    error: str | None = None
    kind: ErrorKind | None = None


@dataclass(frozen=True)
class DomainValidation:
    """Outcome of the combined normalize + validate + availability call."""

    is_valid: bool
    normalized_domain: str | None = None
    error: str | None = None
    kind: ErrorKind | None = None


class AvailabilityChecker:
    """Decides whether a tenant may claim a domain."""

    def __init__(self, store: BusinessRecordStore, policy: DomainPolicy | None = None) -> None:
        self.store = store
        self.policy = policy or DomainPolicy()

    async def check(self, domain: str, exclude_tenant_id: str | None = None) -> AvailabilityResult:
        """Check that domain is well formed and not bound to another tenant.

        Format validation runs again here even if the caller already did it.

        Args:
            domain: Domain to check. Normalized before use.
            exclude_tenant_id: Tenant whose own binding is ignored, used when
                a tenant re-validates a domain it already holds.

        Returns:
            AvailabilityResult; the error never names the other tenant.
        """
        normalized = normalize_domain(domain)

        validation = validate_domain_format(normalized, self.policy)
        if not validation.is_valid:
            return AvailabilityResult(is_available=False, error=validation.error, kind=validation.kind)

        holder = await self.store.find_tenant_by_custom_domain(normalized, exclude_tenant_id)
        if holder is not None:
            logger.info("Custom domain already bound", domain=normalized)
            return AvailabilityResult(
                is_available=False,
                error=ERROR_DOMAIN_TAKEN,
                kind=ErrorKind.CONFLICT,
            )

        return AvailabilityResult(is_available=True)

    async def validate(self, raw: str, exclude_tenant_id: str | None = None) -> DomainValidation:
        """Normalize, validate and check availability in one call."""
        normalized = normalize_domain(raw)

        validation = validate_domain_format(normalized, self.policy)
        if not validation.is_valid:
            return DomainValidation(is_valid=False, error=validation.error, kind=validation.kind)

        availability = await self.check(normalized, exclude_tenant_id)
        if not availability.is_available:
            return DomainValidation(
                is_valid=False, error=availability.error, kind=availability.kind
            )

        return DomainValidation(is_valid=True, normalized_domain=normalized)


async def validate_domain(
    raw: str,
    store: BusinessRecordStore,
    exclude_tenant_id: str | None = None,
    policy: DomainPolicy | None = None,
) -> DomainValidation:
    """Convenience wrapper around AvailabilityChecker.validate."""
    return await AvailabilityChecker(store, policy).validate(raw, exclude_tenant_id)
