"""Hostname routing for incoming storefront traffic.

Maps the Host header of a request to the tenant that should serve it:

    shop.waveorder.app     -> platform slug "shop"
    shop.example.com       -> tenant holding the active custom domain

Custom domains are routed only when the record store holds an active
(fully verified) binding. The optional pointer gate additionally requires the
hostname to still resolve toward the platform; it never grants verification.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from tenantdomains.domains.manager import DomainManager
from tenantdomains.domains.validation import PLATFORM_HOST_LABELS, is_ip_literal

logger = structlog.get_logger()


class RouteKind(Enum):
    """How a host was matched."""

    PLATFORM = "platform"
    SLUG = "slug"
    CUSTOM_DOMAIN = "custom_domain"


@dataclass(frozen=True)
class HostRoute:
    """Routing decision for a host."""

    host: str
    kind: RouteKind
    target: str | None = None


def clean_host(host: str) -> str:
    """Lower-case a Host header value and strip its port and trailing dot."""
    return host.strip().split(":")[0].lower().rstrip(".")


class HostRouter:
    """Resolves request hosts to tenants."""

    def __init__(
        self,
        manager: DomainManager,
        platform_domain: str,
        require_pointer: bool = False,
    ) -> None:
        """Initialize the router.

        Args:
            manager: Domain manager owning custom domain lookups.
            platform_domain: Apex domain the platform serves slugs under.
            require_pointer: Also require the quick A/CNAME check to pass
                before routing a custom domain.
        """
        self.manager = manager
        self.platform_domain = platform_domain.lower().strip(".")
        self.require_pointer = require_pointer

    def extract_slug(self, host: str) -> str | None:
        """Extract a single-level slug from a platform host."""
        host = clean_host(host)
        suffix = f".{self.platform_domain}"
        if not host.endswith(suffix):
            return None

        slug = host[: -len(suffix)]
        if slug and "." not in slug and slug not in PLATFORM_HOST_LABELS:
            return slug
        return None

    def is_platform_host(self, host: str) -> bool:
        host = clean_host(host)
        return host == self.platform_domain or host.endswith(f".{self.platform_domain}")

    async def route(self, host: str) -> HostRoute | None:
        """Decide which tenant serves host.

        Returns:
            HostRoute, or None if nothing serves this host.
        """
        host = clean_host(host)
        if not host or is_ip_literal(host):
            return None

        if self.is_platform_host(host):
            slug = self.extract_slug(host)
            if slug:
                return HostRoute(host=host, kind=RouteKind.SLUG, target=slug)
            return HostRoute(host=host, kind=RouteKind.PLATFORM)

        tenant_id = await self.manager.get_tenant_for_domain(host)
        if tenant_id is None:
            return None

        if self.require_pointer and not await self.manager.verifier.points_to_platform(host):
            logger.warning("Custom domain no longer points to platform", host=host)
            return None

        return HostRoute(host=host, kind=RouteKind.CUSTOM_DOMAIN, target=tenant_id)
