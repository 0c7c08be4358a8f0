"""Error taxonomy for custom domain onboarding.

Checks in this package report problems as structured results carrying an
ErrorKind. The exception classes exist for the two boundaries that do raise:

- DNS resolvers raise DNSNotFoundError / DNSTransientError (or PolicyError for
  a name that cannot be encoded), which the record checks convert into results.
- The onboarding workflow (DomainManager) raises PolicyError / ConflictError
  when a tenant asks for a domain it cannot have.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Classification of a failed check."""

    POLICY = "policy"
    CONFLICT = "conflict"
    DNS_NOT_FOUND = "dns_not_found"
    DNS_TRANSIENT = "dns_transient"
    CONFIGURATION = "configuration"

    @property
    def is_retryable(self) -> bool:
        """Whether re-running the same check later may succeed."""
        return self in (ErrorKind.DNS_NOT_FOUND, ErrorKind.DNS_TRANSIENT)


class DomainError(Exception):
    """Base class for custom domain errors."""

    kind: ErrorKind = ErrorKind.POLICY

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class PolicyError(DomainError, ValueError):
    """Domain string violates format or platform policy."""

    kind = ErrorKind.POLICY


class ConflictError(DomainError, ValueError):
    """Domain is already bound to another tenant."""

    kind = ErrorKind.CONFLICT


class DNSNotFoundError(DomainError):
    """Requested record does not exist (NXDOMAIN / NODATA)."""

    kind = ErrorKind.DNS_NOT_FOUND


class DNSTransientError(DomainError):
    """Resolver failure or timeout."""

    kind = ErrorKind.DNS_TRANSIENT


class ConfigurationError(DomainError):
    """Platform is misconfigured (operator-facing)."""

    kind = ErrorKind.CONFIGURATION


class StorageError(DomainError):
    """Domain binding storage cannot be read or written."""

    kind = ErrorKind.CONFIGURATION
