"""Tenant Domains CLI - Command line interface."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tenantdomains import __version__
from tenantdomains.core.config import TenantDomainsConfig, get_config, load_config_from_file
from tenantdomains.domains.errors import ConfigurationError, DomainError
from tenantdomains.domains.manager import PROPAGATION_NOTE, DomainManager
from tenantdomains.domains.normalize import normalize_domain
from tenantdomains.domains.resolver import AiodnsResolver
from tenantdomains.domains.storage import BindingStatus, DomainStore
from tenantdomains.domains.tokens import TokenIssuer
from tenantdomains.domains.validation import validate_domain_format
from tenantdomains.domains.verification import DNSCheckResult, DNSVerifier

console = Console()


def _configure_logging(log_level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.WARNING)
        ),
    )


def _get_config(ctx: click.Context) -> TenantDomainsConfig:
    return ctx.obj["config"]


def _build_verifier(
    config: TenantDomainsConfig,
    server_ip: str | None = None,
    cname_target: str | None = None,
    timeout: float | None = None,
) -> DNSVerifier:
    settings = config.verification
    return DNSVerifier(
        resolver=AiodnsResolver(settings.nameservers),
        server_ip=server_ip or settings.server_ip,
        cname_target=cname_target or settings.cname_target,
        timeout=timeout or settings.dns_timeout,
        issuer=TokenIssuer(settings.token_namespace),
    )


def _build_manager(config: TenantDomainsConfig, storage: str | None) -> DomainManager:
    return DomainManager(
        DomainStore(storage or config.storage_path),
        _build_verifier(config),
        policy=config.policy.to_policy(),
        token_ttl_days=config.verification.token_ttl_days,
    )


def _require_pointer_target(verifier: DNSVerifier) -> None:
    """Without a server IP or CNAME target, a pointer check proves nothing."""
    if not verifier.server_ip and not verifier.cname_target:
        raise ConfigurationError(
            "Server IP not configured. Set TENANTDOMAINS_SERVER_IP or SERVER_IP."
        )


def _require_valid_domain(config: TenantDomainsConfig, domain_name: str) -> str:
    """Normalize and validate a domain, exiting before any DNS lookup if invalid."""
    domain = normalize_domain(domain_name)
    validation = validate_domain_format(domain, config.policy.to_policy())
    if not validation.is_valid:
        console.print(f"[red]Invalid:[/red] {validation.error}")
        sys.exit(1)
    return domain


def _status_cell(check: DNSCheckResult) -> str:
    if check.verified:
        return "[green]Valid[/green]"
    if check.found:
        return "[yellow]Mismatch[/yellow]"
    return "[red]Missing[/red]"


@click.group()
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to YAML or TOML config file",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    help="Log level",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(__version__, prog_name="tenantdomains")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, log_level: str, verbose: bool):
    """Tenant Domains - custom domain onboarding for hosted storefronts.

    Validate domains, issue ownership tokens and verify DNS.

    Examples:

        tenantdomains check shop.example.com

        tenantdomains verify shop.example.com --token platform-verify-...

        tenantdomains domain assign tenant-123 shop.example.com
    """
    _configure_logging("debug" if verbose else log_level)

    ctx.ensure_object(dict)
    try:
        if config_file:
            ctx.obj["config"] = TenantDomainsConfig.from_mapping(load_config_from_file(config_file))
        else:
            ctx.obj["config"] = get_config()
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(2)


@main.command()
@click.argument("domain_name")
@click.option("--tenant-id", "-t", default=None, help="Tenant re-validating its own domain")
@click.option("--storage", default=None, help="Path to domain storage file")
@click.pass_context
def check(ctx: click.Context, domain_name: str, tenant_id: str | None, storage: str | None):
    """Validate a domain and check it is not bound to another tenant."""
    asyncio.run(_check_async(_get_config(ctx), domain_name, tenant_id, storage))


async def _check_async(
    config: TenantDomainsConfig, domain_name: str, tenant_id: str | None, storage: str | None
):
    manager = _build_manager(config, storage)
    result = await manager.validate(domain_name, tenant_id)

    if result.is_valid:
        console.print(f"[green]OK[/green] {result.normalized_domain} is available")
        return

    console.print(f"[red]Invalid:[/red] {result.error}")
    sys.exit(1)


@main.command()
@click.argument("domain_name")
@click.pass_context
def token(ctx: click.Context, domain_name: str):
    """Issue a verification token for a domain."""
    config = _get_config(ctx)
    domain = _require_valid_domain(config, domain_name)

    issued = TokenIssuer(config.verification.token_namespace).issue(domain)
    console.print(
        Panel(
            f"[bold]Domain:[/bold] {domain}\n\n"
            f"[yellow]Create this TXT record:[/yellow]\n"
            f"   Name: {issued.record_name}\n"
            f"   Value: {issued.value}\n\n"
            f"Then run:\n"
            f"  [cyan]tenantdomains verify {domain} --token {issued.value}[/cyan]",
            title="Verification Token",
            border_style="green",
        )
    )


@main.command()
@click.argument("domain_name")
@click.option("--token", "expected_token", required=True, help="Expected verification token")
@click.option("--server-ip", default=None, help="Expected A record target")
@click.option("--cname-target", default=None, help="Expected CNAME target")
@click.option("--timeout", type=float, default=None, help="Per-lookup DNS timeout (seconds)")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def verify(
    ctx: click.Context,
    domain_name: str,
    expected_token: str,
    server_ip: str | None,
    cname_target: str | None,
    timeout: float | None,
    json_output: bool,
):
    """Verify a domain's TXT, A and CNAME records."""
    config = _get_config(ctx)
    domain = _require_valid_domain(config, domain_name)
    asyncio.run(
        _verify_async(
            config,
            domain,
            expected_token,
            server_ip,
            cname_target,
            timeout,
            json_output,
        )
    )


async def _verify_async(
    config: TenantDomainsConfig,
    domain: str,
    expected_token: str,
    server_ip: str | None,
    cname_target: str | None,
    timeout: float | None,
    json_output: bool,
):
    verifier = _build_verifier(config, server_ip, cname_target, timeout)
    status = await verifier.verify_domain(domain, expected_token)

    if json_output:
        console.print_json(json.dumps(status.to_dict()))
    else:
        table = Table(title=f"DNS Verification: {domain}")
        table.add_column("Record")
        table.add_column("Name", style="cyan")
        table.add_column("Status", justify="center")
        table.add_column("Values", style="dim")
        table.add_column("Error")

        for check_result in (status.details.txt, status.details.a_record, status.details.cname):
            table.add_row(
                check_result.record_type,
                check_result.name,
                _status_cell(check_result),
                ", ".join(check_result.values) or "-",
                check_result.error or "",
            )
        console.print(table)

        if status.dns_configured:
            console.print("[green]DNS is configured correctly.[/green]")
        else:
            for error in status.errors:
                console.print(f"[red]Error:[/red] {error}")

    if not status.dns_configured:
        sys.exit(1)


@main.command()
@click.argument("domain_name")
@click.option("--server-ip", default=None, help="Expected A record target")
@click.option("--cname-target", default=None, help="Expected CNAME target")
@click.pass_context
def points(ctx: click.Context, domain_name: str, server_ip: str | None, cname_target: str | None):
    """Quick check that a domain resolves toward the platform."""
    config = _get_config(ctx)
    verifier = _build_verifier(config, server_ip, cname_target)
    try:
        _require_pointer_target(verifier)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(2)

    domain = _require_valid_domain(config, domain_name)
    if asyncio.run(verifier.points_to_platform(domain)):
        console.print(f"[green]Yes[/green] {domain} points to the platform")
        return

    console.print(f"[yellow]No[/yellow] {domain} does not point to the platform")
    sys.exit(1)


@main.group()
def domain():
    """Manage tenant custom domains in the local store.

    Examples:

        tenantdomains domain assign tenant-123 shop.example.com

        tenantdomains domain verify tenant-123

        tenantdomains domain list

        tenantdomains domain status tenant-123

        tenantdomains domain remove tenant-123
    """
    pass


@domain.command("assign")
@click.argument("tenant_id")
@click.argument("domain_name")
@click.option("--storage", default=None, help="Path to domain storage file")
@click.pass_context
def domain_assign(ctx: click.Context, tenant_id: str, domain_name: str, storage: str | None):
    """Assign a custom domain to a tenant.

    After assignment, you'll receive DNS records to configure.
    """
    asyncio.run(_domain_assign_async(_get_config(ctx), tenant_id, domain_name, storage))


async def _domain_assign_async(
    config: TenantDomainsConfig, tenant_id: str, domain_name: str, storage: str | None
):
    manager = _build_manager(config, storage)

    try:
        binding = await manager.assign_domain(tenant_id, domain_name)
    except DomainError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    records = manager.dns_instructions(binding.custom_domain, binding.verification_token)
    lines = [
        f"   {r.record_type:<5} {r.name}  ->  {r.value}\n         {r.description}" for r in records
    ]
    expires = binding.token_expires_at.strftime("%Y-%m-%d %H:%M") if binding.token_expires_at else "never"
    console.print(
        Panel(
            f"[green]Domain assigned![/green]\n\n"
            f"[bold]Domain:[/bold] {binding.custom_domain}\n"
            f"[bold]Tenant ID:[/bold] {binding.tenant_id}\n"
            f"[bold]Status:[/bold] Pending verification\n"
            f"[bold]Token expires:[/bold] {expires}\n\n"
            f"[yellow]Configure these DNS records:[/yellow]\n\n"
            + "\n".join(lines)
            + f"\n\n{PROPAGATION_NOTE}\n\n"
            f"After configuring DNS, run:\n"
            f"  [cyan]tenantdomains domain verify {binding.tenant_id}[/cyan]",
            title="Domain Assignment",
            border_style="green",
        )
    )


@domain.command("verify")
@click.argument("tenant_id")
@click.option("--storage", default=None, help="Path to domain storage file")
@click.pass_context
def domain_verify(ctx: click.Context, tenant_id: str, storage: str | None):
    """Verify DNS records for a tenant's domain and activate it."""
    asyncio.run(_domain_verify_async(_get_config(ctx), tenant_id, storage))


async def _domain_verify_async(config: TenantDomainsConfig, tenant_id: str, storage: str | None):
    manager = _build_manager(config, storage)

    try:
        outcome = await manager.verify_tenant_domain(tenant_id)
    except DomainError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    binding = outcome.binding
    if outcome.dns_status is None:
        console.print(f"[green]{binding.custom_domain} is already active[/green]")
        return

    details = outcome.dns_status.details
    content = (
        f"[bold]Domain:[/bold] {binding.custom_domain}\n"
        f"[bold]TXT:[/bold] {_status_cell(details.txt)}\n"
        f"[bold]A:[/bold] {_status_cell(details.a_record)}\n"
        f"[bold]CNAME:[/bold] {_status_cell(details.cname)}"
    )

    if outcome.activated:
        console.print(
            Panel(
                f"[green]Domain verified successfully![/green]\n\n{content}\n\n"
                f"Your domain is now active.",
                title="Verification Successful",
                border_style="green",
            )
        )
        return

    errors = "\n".join(f"[red]Error:[/red] {e}" for e in outcome.dns_status.errors)
    console.print(
        Panel(
            f"[yellow]Verification incomplete[/yellow]\n\n{content}\n\n{errors}",
            title="Verification Status",
            border_style="yellow",
        )
    )
    sys.exit(1)


@domain.command("status")
@click.argument("tenant_id")
@click.option("--storage", default=None, help="Path to domain storage file")
@click.pass_context
def domain_status(ctx: click.Context, tenant_id: str, storage: str | None):
    """Show detailed status for a tenant's domain."""
    asyncio.run(_domain_status_async(_get_config(ctx), tenant_id, storage))


async def _domain_status_async(config: TenantDomainsConfig, tenant_id: str, storage: str | None):
    manager = _build_manager(config, storage)
    info = await manager.get_domain_info(tenant_id)

    if info.binding is None or not info.domain:
        console.print(f"[red]No custom domain for tenant:[/red] {tenant_id}")
        sys.exit(1)

    binding = info.binding
    status_color = "green" if binding.status == BindingStatus.ACTIVE else "yellow"
    content = (
        f"[bold]Domain:[/bold] {binding.custom_domain}\n"
        f"[bold]Status:[/bold] [{status_color}]{binding.status.value}[/{status_color}]\n"
        f"[bold]Tenant ID:[/bold] {binding.tenant_id}"
    )
    if binding.verified_at:
        content += f"\n[bold]Verified At:[/bold] {binding.verified_at.strftime('%Y-%m-%d %H:%M')}"
    if binding.last_checked:
        content += f"\n[bold]Last Checked:[/bold] {binding.last_checked.strftime('%Y-%m-%d %H:%M')}"
    if binding.last_error:
        content += f"\n[bold]Last Error:[/bold] {binding.last_error}"
    if binding.token_expired():
        content += "\n[red]Verification token expired. Assign the domain again.[/red]"

    if info.instructions:
        content += "\n\n[yellow]DNS Setup Required:[/yellow]"
        for record in info.instructions:
            content += f"\n   {record.record_type:<5} {record.name}  ->  {record.value}"

    console.print(Panel(content, title=f"Domain Status: {tenant_id}", border_style=status_color))


@domain.command("list")
@click.option("--storage", default=None, help="Path to domain storage file")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def domain_list(ctx: click.Context, storage: str | None, json_output: bool):
    """List all tenant domain bindings."""
    asyncio.run(_domain_list_async(_get_config(ctx), storage, json_output))


async def _domain_list_async(config: TenantDomainsConfig, storage: str | None, json_output: bool):
    store = DomainStore(storage or config.storage_path)
    bindings = await store.list_all()

    if json_output:
        data = [b.to_dict() for b in bindings]
        console.print(json.dumps(data, indent=2, default=str))
        return

    if not bindings:
        console.print("[dim]No domains assigned[/dim]")
        return

    table = Table(title="Tenant Domains")
    table.add_column("Domain", style="cyan")
    table.add_column("Tenant ID", style="dim")
    table.add_column("Status", justify="center")
    table.add_column("Last Checked")

    for binding in bindings:
        status = (
            "[green]active[/green]"
            if binding.status == BindingStatus.ACTIVE
            else "[yellow]pending[/yellow]"
        )
        checked = binding.last_checked.strftime("%Y-%m-%d %H:%M") if binding.last_checked else "N/A"
        table.add_row(binding.custom_domain or "-", binding.tenant_id, status, checked)

    console.print(table)


@domain.command("remove")
@click.argument("tenant_id")
@click.option("--storage", default=None, help="Path to domain storage file")
@click.pass_context
def domain_remove(ctx: click.Context, tenant_id: str, storage: str | None):
    """Remove a tenant's custom domain."""
    asyncio.run(_domain_remove_async(_get_config(ctx), tenant_id, storage))


async def _domain_remove_async(config: TenantDomainsConfig, tenant_id: str, storage: str | None):
    manager = _build_manager(config, storage)

    if await manager.remove_domain(tenant_id):
        console.print(f"[green]Removed custom domain for tenant {tenant_id}[/green]")
    else:
        console.print(f"[yellow]No custom domain for tenant:[/yellow] {tenant_id}")
        sys.exit(1)


@main.command("config")
@click.pass_context
def show_config(ctx: click.Context):
    """Show the effective configuration."""
    config = _get_config(ctx)
    console.print_json(json.dumps(config.to_display_dict(), default=str))


if __name__ == "__main__":
    main()
