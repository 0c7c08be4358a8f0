"""Configuration types with environment variable support.

Verification settings can be configured via environment variables with the
TENANTDOMAINS_ prefix.
Example: TENANTDOMAINS_DNS_TIMEOUT=2.5 sets the per-lookup DNS timeout.

The platform server IP is also read from the plain SERVER_IP variable.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tenantdomains.domains.validation import (
    DEFAULT_BLOCKED_TLDS,
    DEFAULT_HOSTING_SUFFIXES,
    DEFAULT_PLATFORM_DOMAIN,
    MAX_DOMAIN_LENGTH,
    DomainPolicy,
    platform_hosts,
)


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            return tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e


class DomainPolicyConfig(BaseModel):
    """Which domains tenants may claim."""

    platform_domain: str = Field(
        default=DEFAULT_PLATFORM_DOMAIN,
        description="The platform's own apex domain; it and its hosts are reserved.",
    )
    reserved_domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_HOSTING_SUFFIXES),
        description="Extra reserved domains (matched exactly and as parent domains).",
    )
    blocked_tlds: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_TLDS),
        description="TLD suffixes that can never be claimed (e.g. '.local').",
    )
    max_length: int = Field(
        default=MAX_DOMAIN_LENGTH,
        ge=1,
        le=MAX_DOMAIN_LENGTH,
        description="Maximum domain length in characters.",
    )

    def to_policy(self) -> DomainPolicy:
        """Build the policy value consumed by the validator."""
        return DomainPolicy.build(
            reserved_domains=[*platform_hosts(self.platform_domain), *self.reserved_domains],
            blocked_tlds=self.blocked_tlds,
            max_length=self.max_length,
        )


class VerificationConfig(BaseSettings):
    """DNS verification settings.

    All settings can be overridden via environment variables:
    - TENANTDOMAINS_SERVER_IP (or SERVER_IP): expected A record target
    - TENANTDOMAINS_CNAME_TARGET: expected CNAME target
    - TENANTDOMAINS_DNS_TIMEOUT: per-lookup timeout (seconds)
    - TENANTDOMAINS_TOKEN_NAMESPACE: marker in token and TXT record name
    - TENANTDOMAINS_TOKEN_TTL_DAYS: days a token stays valid
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANTDOMAINS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    server_ip: str | None = Field(
        default=None,
        validation_alias=AliasChoices("server_ip", "TENANTDOMAINS_SERVER_IP", "SERVER_IP"),
        description="Platform server IPv4 address tenants must point A records at.",
    )
    cname_target: str | None = Field(
        default=None,
        description="Hostname tenants may CNAME to. Unset accepts any CNAME.",
    )
    dns_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for each DNS lookup (seconds).",
    )
    token_namespace: str = Field(
        default="platform",
        min_length=1,
        description="Namespace marker for tokens (<ns>-verify-...) and records (_<ns>-verification).",
    )
    token_ttl_days: int = Field(
        default=7,
        ge=1,
        description="Days a verification token stays valid after issue.",
    )
    nameservers: list[str] = Field(
        default_factory=list,
        description="Resolver IPs to query. Empty uses the system resolver.",
    )

    @field_validator("server_ip", "cname_target", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class TenantDomainsConfig(BaseModel):
    """Master configuration combining all settings.

    Use get_config() to get a cached instance built from the environment, or
    from_mapping() to build one from a loaded config file.

    Example:
        config = get_config()
        print(config.verification.dns_timeout)
        print(config.policy.platform_domain)
    """

    policy: DomainPolicyConfig = Field(default_factory=DomainPolicyConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    storage_path: str = Field(
        default="domains.json",
        description="Path to the JSON file storing domain bindings.",
    )

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> TenantDomainsConfig:
        """Build config from a file mapping; environment fills what it omits."""
        verification = VerificationConfig(**(data.get("verification") or {}))
        return cls(
            policy=DomainPolicyConfig(**(data.get("policy") or {})),
            verification=verification,
            storage_path=data.get("storage_path", "domains.json"),
        )

    def to_display_dict(self) -> dict[str, Any]:
        """Export current configuration as a nested dictionary for display."""
        return {
            "policy": self.policy.model_dump(),
            "verification": self.verification.model_dump(),
            "storage_path": self.storage_path,
        }


_config: TenantDomainsConfig | None = None


def get_config() -> TenantDomainsConfig:
    """Get the global configuration instance.

    The instance is created once and cached for the lifetime of the process.
    To reload config (e.g., in tests), call clear_config() first.
    """
    global _config
    if _config is None:
        _config = TenantDomainsConfig()
    return _config


def clear_config() -> None:
    """Clear the cached configuration.

    Call this to force reloading of environment variables on next get_config() call.
    """
    global _config
    _config = None
