"""DNS verification for custom domain ownership.

A custom domain is considered configured when both hold:

1. TXT record: proves ownership with the tenant's verification token
2. A or CNAME record: routes traffic to the platform

Example DNS setup required by the tenant:
    # A record (routes traffic)
    shop.example.com  A  203.0.113.10

    # TXT record (proves ownership)
    _platform-verification.shop.example.com  TXT  "platform-verify-3f9c..."

Every lookup runs under its own timeout and every outcome, including
"record missing" and "resolver timed out", is reported as a DNSCheckResult.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from tenantdomains.domains.errors import (
    DNSNotFoundError,
    DNSTransientError,
    ErrorKind,
    PolicyError,
)
from tenantdomains.domains.resolver import AiodnsResolver, DNSResolver
from tenantdomains.domains.tokens import TokenIssuer

logger = structlog.get_logger()

DEFAULT_DNS_TIMEOUT = 5.0

ERROR_TIMEOUT = "DNS lookup timed out"
ERROR_TXT_NOT_FOUND = "Verification TXT record not found"
ERROR_TXT_MISMATCH = "TXT verification record not found or invalid"
ERROR_SERVER_IP_MISSING = "Server IP not configured"
ERROR_NOT_POINTING = (
    "Domain does not point to the platform. "
    "Add an A record with the server IP or a CNAME record."
)


@dataclass
class DNSCheckResult:
    """Result of a single record-type check.

    ``found`` means some record of the type exists at ``name``; ``verified``
    means one of them matches the expected value.
    """

    record_type: str
    name: str
    verified: bool = False
    found: bool = False
    values: list[str] = field(default_factory=list)
    error: str | None = None
    kind: ErrorKind | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_type": self.record_type,
            "name": self.name,
            "verified": self.verified,
            "found": self.found,
            "values": list(self.values),
            "error": self.error,
            "kind": self.kind.value if self.kind else None,
        }


@dataclass
class VerificationDetails:
    """Per-record detail behind a DomainVerificationStatus."""

    txt: DNSCheckResult
    a_record: DNSCheckResult
    cname: DNSCheckResult


@dataclass
class DomainVerificationStatus:
    """Snapshot of a domain's DNS configuration."""

    domain: str
    txt_verified: bool
    a_record_verified: bool
    cname_record_verified: bool
    errors: list[str]
    details: VerificationDetails

    @property
    def points_to_platform(self) -> bool:
        return self.a_record_verified or self.cname_record_verified

    @property
    def dns_configured(self) -> bool:
        """TXT ownership proof plus an A or CNAME pointer."""
        return self.txt_verified and self.points_to_platform

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain,
            "txt_verified": self.txt_verified,
            "a_record_verified": self.a_record_verified,
            "cname_record_verified": self.cname_record_verified,
            "dns_configured": self.dns_configured,
            "errors": list(self.errors),
            "details": {
                "txt": self.details.txt.to_dict(),
                "a_record": self.details.a_record.to_dict(),
                "cname": self.details.cname.to_dict(),
            },
        }


class DNSVerifier:
    """Verifies domain ownership and pointing via DNS records.

    Verification requires two things:
    1. TXT: _<namespace>-verification.domain -> <token> (proves ownership)
    2. A: domain -> server IP, or CNAME: domain -> platform target
    """

    def __init__(
        self,
        resolver: DNSResolver | None = None,
        server_ip: str | None = None,
        cname_target: str | None = None,
        timeout: float = DEFAULT_DNS_TIMEOUT,
        issuer: TokenIssuer | None = None,
    ) -> None:
        """Initialize DNS verifier.

        Args:
            resolver: DNS backend. Defaults to AiodnsResolver.
            server_ip: Expected A record target. When unset, A checks report
                a configuration error instead of querying DNS.
            cname_target: Expected CNAME target. When unset, any CNAME counts.
            timeout: Per-lookup timeout in seconds.
            issuer: Token issuer whose namespace names the TXT record.
        """
        if timeout <= 0:
            raise ValueError("DNS timeout must be positive")
        self.resolver: DNSResolver = resolver or AiodnsResolver()
        self.server_ip = server_ip or None
        self.cname_target = cname_target.rstrip(".").lower() if cname_target else None
        self.timeout = timeout
        self.issuer = issuer or TokenIssuer()

    async def _lookup(
        self,
        record_type: str,
        name: str,
        query: Callable[[str], Awaitable[list[Any]]],
        not_found_error: str,
    ) -> tuple[list[Any] | None, DNSCheckResult | None]:
        """Run one query under the timeout.

        Returns either the records, or a failed DNSCheckResult.
        """
        try:
            records = await asyncio.wait_for(query(name), timeout=self.timeout)
        except DNSNotFoundError:
            logger.debug("DNS record not found", record_type=record_type, name=name)
            return None, DNSCheckResult(
                record_type, name, error=not_found_error, kind=ErrorKind.DNS_NOT_FOUND
            )
        except TimeoutError:
            logger.warning(
                "DNS lookup timed out", record_type=record_type, name=name, timeout=self.timeout
            )
            return None, DNSCheckResult(
                record_type, name, error=ERROR_TIMEOUT, kind=ErrorKind.DNS_TRANSIENT
            )
        except PolicyError as e:
            logger.debug("DNS name rejected", record_type=record_type, name=name)
            return None, DNSCheckResult(record_type, name, error=str(e), kind=ErrorKind.POLICY)
        except (DNSTransientError, OSError) as e:
            logger.warning("DNS lookup failed", record_type=record_type, name=name, error=str(e))
            return None, DNSCheckResult(
                record_type,
                name,
                error=str(e) or f"Failed to check {record_type} record",
                kind=ErrorKind.DNS_TRANSIENT,
            )
        return records, None

    async def check_txt(self, domain: str, expected_token: str) -> DNSCheckResult:
        """Check the verification TXT record for domain.

        Each TXT record's fragments are joined before comparison, and the
        token must match one record exactly.
        """
        name = self.issuer.record_name(domain)
        records, failed = await self._lookup(
            "TXT", name, self.resolver.resolve_txt, ERROR_TXT_NOT_FOUND
        )
        if failed:
            return failed

        values = ["".join(fragments) for fragments in records]
        return DNSCheckResult(
            "TXT",
            name,
            verified=expected_token in values,
            found=bool(values),
            values=values,
        )

    async def check_a(self, domain: str, expected_ip: str | None = None) -> DNSCheckResult:
        """Check that domain has an A record pointing at the server IP."""
        target_ip = expected_ip or self.server_ip
        if not target_ip:
            return DNSCheckResult(
                "A", domain, error=ERROR_SERVER_IP_MISSING, kind=ErrorKind.CONFIGURATION
            )

        addresses, failed = await self._lookup(
            "A", domain, self.resolver.resolve_a, "A record not found"
        )
        if failed:
            return failed

        return DNSCheckResult(
            "A",
            domain,
            verified=target_ip in addresses,
            found=bool(addresses),
            values=list(addresses),
        )

    async def check_cname(self, domain: str, expected_target: str | None = None) -> DNSCheckResult:
        """Check domain's CNAME record.

        With an expected target the comparison is case-insensitive; without
        one, any CNAME counts as verified.
        """
        expected = expected_target.rstrip(".").lower() if expected_target else self.cname_target
        targets, failed = await self._lookup(
            "CNAME", domain, self.resolver.resolve_cname, "CNAME record not found"
        )
        if failed:
            return failed

        targets = [t.rstrip(".") for t in targets if t]
        if expected:
            verified = any(t.lower() == expected for t in targets)
        else:
            verified = bool(targets)

        return DNSCheckResult(
            "CNAME", domain, verified=verified, found=bool(targets), values=targets
        )

    async def verify_domain(self, domain: str, expected_token: str) -> DomainVerificationStatus:
        """Run the TXT, A and CNAME checks concurrently and aggregate them.

        All three checks always complete; the result carries every check's
        detail. Nothing is cached and nothing is written.

        Args:
            domain: The custom domain to verify.
            expected_token: The token the TXT record must carry.

        Returns:
            DomainVerificationStatus snapshot.
        """
        txt, a_record, cname = await asyncio.gather(
            self.check_txt(domain, expected_token),
            self.check_a(domain),
            self.check_cname(domain),
        )

        errors: list[str] = []
        if not txt.verified:
            errors.append(txt.error or ERROR_TXT_MISMATCH)
        if not (a_record.verified or cname.verified):
            errors.append(ERROR_NOT_POINTING)

        status = DomainVerificationStatus(
            domain=domain,
            txt_verified=txt.verified,
            a_record_verified=a_record.verified,
            cname_record_verified=cname.verified,
            errors=errors,
            details=VerificationDetails(txt=txt, a_record=a_record, cname=cname),
        )

        logger.info(
            "DNS verification completed",
            domain=domain,
            txt_verified=status.txt_verified,
            a_record_verified=status.a_record_verified,
            cname_record_verified=status.cname_record_verified,
            dns_configured=status.dns_configured,
        )
        return status

    async def points_to_platform(self, domain: str) -> bool:
        """Quick check that domain resolves toward the platform.

        Runs only the A and CNAME checks and treats any failure as "no".
        This is for request routing; it must not be used to mark a domain
        verified.
        """
        results = await asyncio.gather(
            self.check_a(domain),
            self.check_cname(domain),
            return_exceptions=True,
        )
        return any(isinstance(r, DNSCheckResult) and r.verified for r in results)
