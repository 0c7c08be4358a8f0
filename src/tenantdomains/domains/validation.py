"""Format and platform-policy validation for custom domains.

Rules are evaluated in a fixed order and the first failing rule wins:

1. empty
2. longer than the policy's max length (253 by default)
3. dotted-quad IPv4 literal
4. ends with a blocked TLD (.local, .test, ...)
5. equals or is a subdomain of a reserved/system domain
6. label syntax (1-63 chars, alphanumeric or hyphen, no leading/trailing
   hyphen, alphabetic TLD of at least two characters)

The policy is passed in as data so the platform's own apex and the list of
hosting-provider suffixes come from configuration.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from tenantdomains.domains.errors import ErrorKind

MAX_DOMAIN_LENGTH = 253

DEFAULT_PLATFORM_DOMAIN = "waveorder.app"

DEFAULT_HOSTING_SUFFIXES = (
    "localhost",
    "vercel.app",
    "netlify.app",
    "herokuapp.com",
    "azurewebsites.net",
)

DEFAULT_BLOCKED_TLDS = (
    ".local",
    ".internal",
    ".localhost",
    ".test",
    ".example",
    ".invalid",
)

_IPV4_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_LABEL_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$", re.IGNORECASE)
_TLD_RE = re.compile(r"^[a-z]{2,63}$", re.IGNORECASE)

ERROR_REQUIRED = "Domain is required"
ERROR_IP_ADDRESS = "IP addresses are not allowed. Please use a domain name."
ERROR_BLOCKED_TLD = "This domain extension is not allowed"
ERROR_SYSTEM_DOMAIN = "System domains cannot be used as custom domains"
ERROR_INVALID_FORMAT = "Invalid domain format. Example: shop.example.com"

PLATFORM_HOST_LABELS = ("www", "api", "admin", "app")


def platform_hosts(platform_domain: str) -> tuple[str, ...]:
    """Return the platform apex and the hosts the platform itself serves."""
    apex = platform_domain.lower().strip(".")
    return (apex, *(f"{label}.{apex}" for label in PLATFORM_HOST_LABELS))


@dataclass(frozen=True)
class DomainPolicy:
    """Policy data consumed by validate_domain_format."""

    reserved_domains: tuple[str, ...] = field(
        default_factory=lambda: platform_hosts(DEFAULT_PLATFORM_DOMAIN) + DEFAULT_HOSTING_SUFFIXES
    )
    blocked_tlds: tuple[str, ...] = DEFAULT_BLOCKED_TLDS
    max_length: int = MAX_DOMAIN_LENGTH

    @classmethod
    def build(
        cls,
        reserved_domains: Iterable[str],
        blocked_tlds: Iterable[str],
        max_length: int = MAX_DOMAIN_LENGTH,
    ) -> DomainPolicy:
        """Build a policy, canonicalizing the suffix lists.

        Reserved domains are lower-cased without surrounding dots; blocked
        TLDs always carry a leading dot so ``test`` and ``.test`` are the same.
        """
        reserved = tuple(
            dict.fromkeys(d.strip().lower().strip(".") for d in reserved_domains if d.strip())
        )
        tlds = tuple(
            dict.fromkeys("." + t.strip().lower().lstrip(".") for t in blocked_tlds if t.strip())
        )
        return cls(reserved_domains=reserved, blocked_tlds=tlds, max_length=max_length)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of format validation; at most one error is reported."""

    is_valid: bool
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error: str) -> ValidationResult:
        return cls(is_valid=False, error=error, kind=ErrorKind.POLICY)


def is_ip_literal(domain: str) -> bool:
    """Check whether a string looks like a dotted-quad IPv4 address."""
    return bool(_IPV4_RE.match(domain))


def is_reserved_domain(domain: str, reserved_domains: Iterable[str]) -> bool:
    """Check whether domain equals, or is a subdomain of, a reserved domain."""
    return any(domain == sys or domain.endswith(f".{sys}") for sys in reserved_domains)


def has_valid_label_syntax(domain: str) -> bool:
    """Check dot-separated label rules and the alphabetic TLD requirement."""
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    if not all(_LABEL_RE.match(label) for label in labels):
        return False
    return bool(_TLD_RE.match(labels[-1]))


def validate_domain_format(domain: str, policy: DomainPolicy | None = None) -> ValidationResult:
    """Validate a normalized domain against syntax and platform policy.

    Args:
        domain: Domain to validate (normalize it first).
        policy: Policy to apply. Defaults to DomainPolicy().

    Returns:
        ValidationResult with the first failing rule's message.
    """
    policy = policy or DomainPolicy()

    if not domain:
        return ValidationResult.fail(ERROR_REQUIRED)

    if len(domain) > policy.max_length:
        return ValidationResult.fail(
            f"Domain exceeds maximum length of {policy.max_length} characters"
        )

    if is_ip_literal(domain):
        return ValidationResult.fail(ERROR_IP_ADDRESS)

    if any(domain.endswith(tld) for tld in policy.blocked_tlds):
        return ValidationResult.fail(ERROR_BLOCKED_TLD)

    if is_reserved_domain(domain, policy.reserved_domains):
        return ValidationResult.fail(ERROR_SYSTEM_DOMAIN)

    if not has_valid_label_syntax(domain):
        return ValidationResult.fail(ERROR_INVALID_FORMAT)

    return ValidationResult.ok()
