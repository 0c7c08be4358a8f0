"""Canonicalization of user-entered domain strings."""

from __future__ import annotations

from dataclasses import dataclass

_SCHEMES = ("http://", "https://")


def _normalize_once(domain: str) -> str:
    domain = domain.strip().lower()

    for scheme in _SCHEMES:
        if domain.startswith(scheme):
            domain = domain[len(scheme) :]
            break

    domain = domain.split("/", 1)[0]
    domain = domain.split(":", 1)[0]

    if domain.startswith("www."):
        domain = domain[4:]

    return domain


def normalize_domain(raw: str | None) -> str:
    """Turn raw user input into a canonical domain string.

    Steps, in order: trim, lower-case, strip an http(s) scheme, cut the path,
    cut the port, strip a leading ``www.`` label. The steps are repeated until
    the value stops changing, so inputs such as ``www.www.shop.com`` or
    ``http:// shop.com`` still normalize to a fixed point.

    Examples:
        >>> normalize_domain("https://www.Shop.Example.com/path?x=1")
        'shop.example.com'
        >>> normalize_domain("shop.example.com:8080")
        'shop.example.com'
        >>> normalize_domain("")
        ''
    """
    if not raw:
        return ""

    domain = raw
    while True:
        normalized = _normalize_once(domain)
        if normalized == domain:
            return normalized
        domain = normalized


@dataclass(frozen=True)
class DomainCandidate:
    """A raw domain string paired with its normalized form."""

    raw: str
    normalized: str

    @classmethod
    def from_raw(cls, raw: str) -> DomainCandidate:
        return cls(raw=raw, normalized=normalize_domain(raw))
