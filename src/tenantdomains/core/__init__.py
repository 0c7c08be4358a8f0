"""Core configuration for tenant domains."""
