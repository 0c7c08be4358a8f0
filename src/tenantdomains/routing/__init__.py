"""Request routing by hostname."""

from tenantdomains.routing.hosts import HostRoute, HostRouter, RouteKind, clean_host

__all__ = ["HostRoute", "HostRouter", "RouteKind", "clean_host"]
