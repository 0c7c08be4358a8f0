"""Domain manager for the tenant custom domain lifecycle.

This module drives onboarding on top of the core checks:
- Assignment with validation, availability and token issue
- DNS verification and activation of the binding
- Status and DNS setup instructions for the onboarding UI

Usage:
    manager = DomainManager(store, verifier)

    # Tenant submits a domain
    binding = await manager.assign_domain("tenant-123", "https://www.Shop.Example.com")

    # Later, after the tenant configured DNS
    outcome = await manager.verify_tenant_domain("tenant-123")
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

import structlog

from tenantdomains.domains.availability import AvailabilityChecker, DomainValidation
from tenantdomains.domains.errors import ConflictError, ErrorKind, PolicyError
from tenantdomains.domains.normalize import normalize_domain
from tenantdomains.domains.storage import BindingStatus, DomainBinding, DomainStore
from tenantdomains.domains.tokens import TokenIssuer
from tenantdomains.domains.validation import DomainPolicy
from tenantdomains.domains.verification import DNSVerifier, DomainVerificationStatus

logger = structlog.get_logger()

DEFAULT_TOKEN_TTL_DAYS = 7

PROPAGATION_NOTE = (
    "DNS changes can take up to 48 hours to propagate, "
    "but usually complete within 5-30 minutes."
)


@dataclass(frozen=True)
class DNSRecordInstruction:
    """One DNS record the tenant has to create."""

    record_type: str
    name: str
    value: str
    description: str


@dataclass
class DomainInfo:
    """A tenant's binding plus what the tenant still has to do."""

    tenant_id: str
    binding: DomainBinding | None
    instructions: list[DNSRecordInstruction]

    @property
    def domain(self) -> str | None:
        return self.binding.custom_domain if self.binding else None

    @property
    def status(self) -> BindingStatus | None:
        return self.binding.status if self.binding else None


@dataclass
class VerificationOutcome:
    """Result of verify_tenant_domain."""

    binding: DomainBinding
    dns_status: DomainVerificationStatus | None
    activated: bool

    @property
    def is_active(self) -> bool:
        return self.binding.is_active


class DomainManager:
    """Manages tenant custom domain assignment and verification.

    Coordinates validation, token issue, DNS verification and storage. Only
    the full verification result ever activates a binding.
    """

    def __init__(
        self,
        store: DomainStore,
        verifier: DNSVerifier | None = None,
        policy: DomainPolicy | None = None,
        token_ttl_days: int = DEFAULT_TOKEN_TTL_DAYS,
    ) -> None:
        """Initialize domain manager.

        Args:
            store: Storage backend for domain bindings.
            verifier: DNS verifier. Its issuer names the TXT records.
            policy: Domain policy used for validation.
            token_ttl_days: Days before an issued token expires.
        """
        self.store = store
        self.verifier = verifier or DNSVerifier()
        self.issuer: TokenIssuer = self.verifier.issuer
        self.checker = AvailabilityChecker(store, policy)
        self.token_ttl = timedelta(days=token_ttl_days)

    async def validate(self, raw: str, tenant_id: str | None = None) -> DomainValidation:
        """Validate a raw domain and check it is free for tenant_id."""
        return await self.checker.validate(raw, exclude_tenant_id=tenant_id)

    async def assign_domain(self, tenant_id: str, raw_domain: str) -> DomainBinding:
        """Bind a domain to a tenant pending DNS verification.

        A fresh token is issued every time; previous verification data for the
        tenant is cleared.

        Raises:
            PolicyError: If the domain fails format or policy checks.
            ConflictError: If another tenant holds the domain.
        """
        validation = await self.validate(raw_domain, tenant_id)
        if not validation.is_valid:
            message = validation.error or "Invalid domain"
            if validation.kind == ErrorKind.CONFLICT:
                raise ConflictError(message, code="DOMAIN_TAKEN")
            raise PolicyError(message, code="INVALID_DOMAIN")

        domain = validation.normalized_domain
        if not domain:
            raise PolicyError("Domain is required", code="INVALID_DOMAIN")
        token = self.issuer.issue(domain)

        existing = await self.store.get(tenant_id)
        binding = DomainBinding(
            tenant_id=tenant_id,
            custom_domain=domain,
            status=BindingStatus.PENDING,
            verification_token=token.value,
            token_expires_at=datetime.now(UTC) + self.token_ttl,
            created_at=existing.created_at if existing else datetime.now(UTC),
        )
        if existing and existing.custom_domain and existing.custom_domain != domain:
            logger.info(
                "Replacing custom domain",
                tenant_id=tenant_id,
                previous=existing.custom_domain,
                domain=domain,
            )

        await self.store.save(binding)
        logger.info("Custom domain assigned", tenant_id=tenant_id, domain=domain)
        return binding

    async def verify_tenant_domain(self, tenant_id: str) -> VerificationOutcome:
        """Verify DNS for a tenant's domain and activate it when configured.

        Raises:
            PolicyError: With code NO_DOMAIN, NO_TOKEN or TOKEN_EXPIRED when
                verification cannot run.
        """
        binding = await self.store.get(tenant_id)
        if binding is None or not binding.custom_domain:
            raise PolicyError("No custom domain configured", code="NO_DOMAIN")

        if binding.is_active:
            return VerificationOutcome(binding=binding, dns_status=None, activated=False)

        if not binding.verification_token:
            raise PolicyError(
                "Verification token missing. Please save the domain again.", code="NO_TOKEN"
            )

        if binding.token_expired():
            raise PolicyError(
                "Verification token expired. Please save the domain again to get a new token.",
                code="TOKEN_EXPIRED",
            )

        dns_status = await self.verifier.verify_domain(
            binding.custom_domain, binding.verification_token
        )

        checked_at = datetime.now(UTC)
        activated = dns_status.dns_configured
        if activated:
            binding = replace(
                binding,
                status=BindingStatus.ACTIVE,
                verified_at=checked_at,
                last_checked=checked_at,
                last_error=None,
            )
        else:
            binding = replace(
                binding, last_checked=checked_at, last_error="; ".join(dns_status.errors)
            )

        await self.store.save(binding)
        logger.info(
            "Custom domain verification recorded",
            tenant_id=tenant_id,
            domain=binding.custom_domain,
            activated=activated,
        )
        return VerificationOutcome(binding=binding, dns_status=dns_status, activated=activated)

    async def get_domain_info(self, tenant_id: str) -> DomainInfo:
        """Get a tenant's binding and, while pending, its DNS instructions."""
        binding = await self.store.get(tenant_id)
        instructions: list[DNSRecordInstruction] = []
        if (
            binding
            and binding.custom_domain
            and binding.verification_token
            and not binding.is_active
        ):
            instructions = self.dns_instructions(binding.custom_domain, binding.verification_token)
        return DomainInfo(tenant_id=tenant_id, binding=binding, instructions=instructions)

    async def remove_domain(self, tenant_id: str) -> bool:
        """Unbind a tenant's custom domain.

        Returns:
            True if a binding was removed, False if the tenant had none.
        """
        removed = await self.store.delete(tenant_id)
        if removed:
            logger.info("Custom domain removed", tenant_id=tenant_id)
        return removed

    async def get_tenant_for_domain(self, domain: str) -> str | None:
        """Get the tenant serving an active custom domain.

        ``www.`` prefixes, ports and case are ignored. This is the lookup
        used by the request router.
        """
        binding = await self.store.get_by_domain(normalize_domain(domain))
        if binding and binding.is_active:
            return binding.tenant_id
        return None

    def dns_instructions(self, domain: str, token: str) -> list[DNSRecordInstruction]:
        """Build the DNS records a tenant must create for domain."""
        server_ip = self.verifier.server_ip or "YOUR_SERVER_IP"
        records = [
            DNSRecordInstruction(
                record_type="A",
                name=domain,
                value=server_ip,
                description="Point your domain to our server",
            )
        ]
        if self.verifier.cname_target:
            records.append(
                DNSRecordInstruction(
                    record_type="CNAME",
                    name=domain,
                    value=self.verifier.cname_target,
                    description="Alternative to the A record",
                )
            )
        records.append(
            DNSRecordInstruction(
                record_type="TXT",
                name=self.issuer.record_name(domain),
                value=token,
                description="Verify domain ownership",
            )
        )
        return records
