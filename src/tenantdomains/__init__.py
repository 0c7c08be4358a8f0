"""Tenant Domains - custom domain onboarding for hosted storefronts."""

__version__ = "0.1.0"
