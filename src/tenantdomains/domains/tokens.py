"""Ownership-proof tokens.

A tenant proves control of a domain by publishing a TXT record:

    _platform-verification.shop.example.com  TXT  "platform-verify-3f9c..."

Tokens carry 128 bits from the secrets module, hex encoded.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

DEFAULT_NAMESPACE = "platform"
TOKEN_ENTROPY_BYTES = 16


@dataclass(frozen=True)
class VerificationToken:
    """A token value and the DNS name that must carry it."""

    value: str
    record_name: str


class TokenIssuer:
    """Generates verification tokens for a fixed namespace."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE) -> None:
        """Initialize the issuer.

        Args:
            namespace: Marker used in the token prefix and the record label.
        """
        namespace = namespace.strip().lower()
        if not namespace:
            raise ValueError("Token namespace must not be empty")
        self.namespace = namespace

    @property
    def token_prefix(self) -> str:
        return f"{self.namespace}-verify-"

    @property
    def record_label(self) -> str:
        return f"_{self.namespace}-verification"

    def record_name(self, domain: str) -> str:
        """Return the TXT record name that must carry the token for domain."""
        return f"{self.record_label}.{domain}"

    def issue(self, domain: str) -> VerificationToken:
        """Issue a fresh token for domain.

        No I/O happens here; callers persist the token.
        """
        value = self.token_prefix + secrets.token_hex(TOKEN_ENTROPY_BYTES)
        return VerificationToken(value=value, record_name=self.record_name(domain))
