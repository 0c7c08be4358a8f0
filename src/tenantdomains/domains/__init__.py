"""Custom domain onboarding for hosted storefronts.

This module lets a tenant attach its own domain (e.g. shop.example.com) to its
storefront, and proves before activation that the domain is valid, free, and
that its DNS points at the platform and carries the tenant's token.

Features:
- Normalization of user-entered domains
- Format and platform-policy validation
- Availability checks against the business record store
- Verification token issue
- Concurrent TXT / A / CNAME verification with per-lookup timeouts
- Quick pointer check for the request router

Usage:
    from tenantdomains.domains import DNSVerifier, DomainManager, DomainStore

    store = DomainStore("domains.json")
    manager = DomainManager(store, DNSVerifier(server_ip="203.0.113.10"))

    binding = await manager.assign_domain("tenant-123", "shop.example.com")
    outcome = await manager.verify_tenant_domain("tenant-123")
"""

from tenantdomains.domains.availability import (
    AvailabilityChecker,
    AvailabilityResult,
    BusinessRecordStore,
    DomainValidation,
    TenantRef,
    validate_domain,
)
from tenantdomains.domains.errors import (
    ConfigurationError,
    ConflictError,
    DNSNotFoundError,
    DNSTransientError,
    DomainError,
    ErrorKind,
    PolicyError,
    StorageError,
)
from tenantdomains.domains.manager import DomainInfo, DomainManager, VerificationOutcome
from tenantdomains.domains.normalize import DomainCandidate, normalize_domain
from tenantdomains.domains.resolver import AiodnsResolver, DNSResolver, StaticResolver
from tenantdomains.domains.storage import BindingStatus, DomainBinding, DomainStore
from tenantdomains.domains.tokens import TokenIssuer, VerificationToken
from tenantdomains.domains.validation import DomainPolicy, ValidationResult, validate_domain_format
from tenantdomains.domains.verification import (
    DNSCheckResult,
    DNSVerifier,
    DomainVerificationStatus,
)

__all__ = [
    "AiodnsResolver",
    "AvailabilityChecker",
    "AvailabilityResult",
    "BindingStatus",
    "BusinessRecordStore",
    "ConfigurationError",
    "ConflictError",
    "DNSCheckResult",
    "DNSNotFoundError",
    "DNSResolver",
    "DNSTransientError",
    "DNSVerifier",
    "DomainBinding",
    "DomainCandidate",
    "DomainError",
    "DomainInfo",
    "DomainManager",
    "DomainPolicy",
    "DomainStore",
    "DomainValidation",
    "DomainVerificationStatus",
    "ErrorKind",
    "PolicyError",
    "StaticResolver",
    "StorageError",
    "TenantRef",
    "TokenIssuer",
    "ValidationResult",
    "VerificationOutcome",
    "VerificationToken",
    "normalize_domain",
    "validate_domain",
    "validate_domain_format",
]
