"""DNS resolver interface and implementations.

Record checks talk to DNS only through the DNSResolver protocol. Two
implementations ship with the package:

- AiodnsResolver: production resolver over aiodns (c-ares).
- StaticResolver: canned records held in memory, for tests and dry runs.

Resolvers raise DNSNotFoundError when a name or record type does not exist,
PolicyError when the name cannot be encoded as a DNS name, and
DNSTransientError for anything else. Timeouts are applied by the caller.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Mapping, Sequence
from typing import Protocol

import aiodns

from tenantdomains.domains.errors import DNSNotFoundError, DNSTransientError, PolicyError

_NOT_FOUND_CODES = frozenset(
    {
        aiodns.error.ARES_ENODATA,
        aiodns.error.ARES_ENOTFOUND,
    }
)


class DNSResolver(Protocol):
    """Async lookups for the three record types used in verification."""

    async def resolve_txt(self, name: str) -> list[list[str]]:
        """Return TXT records at name, each as its list of string fragments."""
        ...

    async def resolve_a(self, name: str) -> list[str]:
        """Return IPv4 addresses for name."""
        ...

    async def resolve_cname(self, name: str) -> list[str]:
        """Return CNAME targets for name, without trailing dots."""
        ...


def _decode(text: str | bytes) -> str:
    if isinstance(text, bytes):
        return text.decode("utf-8", errors="replace")
    return text


class AiodnsResolver:
    """DNSResolver backed by aiodns."""

    def __init__(self, nameservers: Sequence[str] | None = None) -> None:
        """Initialize the resolver.

        Args:
            nameservers: Resolver IPs to query. None or empty uses the
                system configuration.
        """
        self.nameservers = list(nameservers) if nameservers else None
        self._resolver: aiodns.DNSResolver | None = None

    def _get_resolver(self) -> aiodns.DNSResolver:
        """Get or create the aiodns resolver bound to the running loop."""
        if self._resolver is None:
            if sys.platform == "win32":
                loop = asyncio.get_running_loop()
                self._resolver = aiodns.DNSResolver(nameservers=self.nameservers, loop=loop)
            else:
                self._resolver = aiodns.DNSResolver(nameservers=self.nameservers)
        return self._resolver

    async def _query(self, name: str, record_type: str):
        try:
            return await self._get_resolver().query(name, record_type)
        except aiodns.error.DNSError as e:
            code = e.args[0] if e.args else None
            message = e.args[1] if len(e.args) > 1 else str(e)
            if code in _NOT_FOUND_CODES:
                raise DNSNotFoundError(f"{record_type} record not found for {name}") from e
            if code == aiodns.error.ARES_EBADNAME:
                raise PolicyError(f"Invalid DNS name: {name}", code="INVALID_DOMAIN") from e
            raise DNSTransientError(message or f"{record_type} lookup failed") from e
        except ValueError as e:
            # IDNA encoding of the name failed (UnicodeError)
            raise PolicyError(f"Invalid DNS name: {name}", code="INVALID_DOMAIN") from e

    async def resolve_txt(self, name: str) -> list[list[str]]:
        result = await self._query(name, "TXT")
        return [[_decode(record.text)] for record in result or []]

    async def resolve_a(self, name: str) -> list[str]:
        result = await self._query(name, "A")
        return [record.host for record in result or []]

    async def resolve_cname(self, name: str) -> list[str]:
        result = await self._query(name, "CNAME")
        if not result:
            return []
        return [result.cname.rstrip(".")]


class StaticResolver:
    """DNSResolver serving canned records from memory.

    Names not present in a table raise DNSNotFoundError. Per-lookup failures
    can be injected with ``failures`` keyed by ``(record_type, name)``, and
    ``delay`` slows every lookup down to exercise timeouts.
    """

    def __init__(
        self,
        txt: Mapping[str, list[list[str]]] | None = None,
        a: Mapping[str, list[str]] | None = None,
        cname: Mapping[str, list[str]] | None = None,
        failures: Mapping[tuple[str, str], Exception] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.txt = dict(txt or {})
        self.a = dict(a or {})
        self.cname = dict(cname or {})
        self.failures = dict(failures or {})
        self.delay = delay
        self.queries: list[tuple[str, str]] = []

    async def _lookup(self, record_type: str, name: str, table: Mapping[str, list]) -> list:
        self.queries.append((record_type, name))
        if self.delay:
            await asyncio.sleep(self.delay)
        failure = self.failures.get((record_type, name))
        if failure is not None:
            raise failure
        records = table.get(name.lower())
        if not records:
            raise DNSNotFoundError(f"{record_type} record not found for {name}")
        return list(records)

    async def resolve_txt(self, name: str) -> list[list[str]]:
        return await self._lookup("TXT", name, self.txt)

    async def resolve_a(self, name: str) -> list[str]:
        return await self._lookup("A", name, self.a)

    async def resolve_cname(self, name: str) -> list[str]:
        return await self._lookup("CNAME", name, self.cname)
