"""Hostwarden CLI - Command line interface."""

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

from hostwarden.core.config import HostwardenConfig, get_config

console = Console()


def _configure_logging(log_level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
    )


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
    default=None,
    help="Log level (default: from config, info)",
)
@click.pass_context
def main(ctx: click.Context, config_file: str | None, log_level: str | None):
    """Hostwarden - managed and custom hosts for traffic resources.

    Examples:

        hostwarden reconcile ingress.json

        hostwarden domain add mycompany.com --namespace team-a

        hostwarden routes list
    """
    try:
        if config_file:
            cfg = HostwardenConfig.from_file(config_file, log_level=log_level)
        else:
            cfg = get_config()
            if log_level:
                cfg = cfg.model_copy(update={"log_level": log_level})
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    _configure_logging(cfg.log_level)
    ctx.obj = cfg


@main.command()
def version():
    """Show version information."""
    from hostwarden import __version__

    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {sys.version}")


@main.command()
@click.argument("resource_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--managed-domain", help="Override the managed domain")
@click.option(
    "--custom-hosts/--no-custom-hosts",
    default=None,
    help="Override whether custom hosts are allowed",
)
@click.option(
    "--passes",
    type=click.IntRange(min=1),
    default=1,
    help="Maximum passes; a STOP is saved and followed by the next pass",
)
@click.pass_obj
def reconcile(
    cfg: HostwardenConfig,
    resource_file: str,
    managed_domain: str | None,
    custom_hosts: bool | None,
    passes: int,
):
    """Reconcile the hosts of a traffic resource stored as JSON.

    The resource is saved back whenever a pass asks to stop or changes it.

    Examples:

        hostwarden reconcile ingress.json --passes 2

        hostwarden reconcile ingress.json --no-custom-hosts
    """
    update = {}
    if managed_domain:
        update["managed_domain"] = managed_domain
    if custom_hosts is not None:
        update["custom_hosts_enabled"] = custom_hosts
    if update:
        cfg = cfg.model_copy(update=update)

    ok = asyncio.run(_reconcile_async(cfg, resource_file, passes))
    if not ok:
        sys.exit(1)


async def _reconcile_async(cfg: HostwardenConfig, resource_file: str, passes: int) -> bool:
    """Async implementation of reconcile command."""
    from hostwarden.domains import DomainVerificationStore
    from hostwarden.traffic import (
        ANNOTATION_MANAGED_HOST,
        HostReconciler,
        RouteStore,
        load_resource,
        run_reconcilers,
        save_resource,
    )

    try:
        resource = load_resource(resource_file)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        return False

    domain_store = DomainVerificationStore(cfg.domains_storage_path)
    routes = RouteStore(cfg.routes_storage_path)
    reconciler = HostReconciler(
        managed_domain=cfg.managed_domain,
        custom_hosts_enabled=cfg.custom_hosts_enabled,
        get_domain_verifications=domain_store.for_accessor,
        create_or_update_traffic=routes.create_or_update,
        delete_traffic=routes.delete,
    )

    for number in range(1, passes + 1):
        before = resource.to_dict()
        result = await run_reconcilers(resource, [reconciler])

        if result.should_stop or resource.to_dict() != before:
            save_resource(resource, resource_file)

        style = "yellow" if result.should_stop else "green"
        console.print(
            f"Pass {number}: [{style}]{result.status.value.upper()}[/{style}]"
            f"  hosts={', '.join(resource.hosts) or '-'}"
        )

        if result.error is not None:
            console.print(f"[red]Error:[/red] {result.error}")
            return False

        if not result.should_stop:
            break

    console.print(
        f"[bold]Managed host:[/bold] {resource.annotations.get(ANNOTATION_MANAGED_HOST, '-')}"
    )
    return True


@main.group()
def domain():
    """Manage domain ownership for custom hosts.

    A custom host is only routed while its namespace owns a verified domain
    covering it.

    Examples:

        hostwarden domain add mycompany.com --namespace team-a

        hostwarden domain verify mycompany.com

        hostwarden domain list
    """
    pass


@domain.command("add")
@click.argument("domain_name")
@click.option("--namespace", "-n", required=True, help="Namespace claiming the domain")
@click.pass_obj
def domain_add(cfg: HostwardenConfig, domain_name: str, namespace: str):
    """Register a domain for a namespace and show the TXT record to publish."""
    asyncio.run(_domain_add_async(cfg, domain_name, namespace))


async def _domain_add_async(cfg: HostwardenConfig, domain_name: str, namespace: str):
    """Async implementation of domain add command."""
    from hostwarden.domains import DNSVerifier, DomainManager, DomainVerificationStore

    store = DomainVerificationStore(cfg.domains_storage_path)
    manager = DomainManager(store, DNSVerifier(cfg.verification_prefix))

    try:
        record = await manager.register_domain(domain_name, namespace)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(
        Panel(
            f"[green]Domain registered[/green]\n\n"
            f"[bold]Domain:[/bold] {record.domain}\n"
            f"[bold]Namespace:[/bold] {record.namespace}\n"
            f"[bold]Status:[/bold] {'Verified' if record.verified else 'Pending verification'}\n\n"
            f"{manager.dns_instructions(record)}",
            title="Domain Registration",
            border_style="green",
        )
    )


@domain.command("verify")
@click.argument("domain_name")
@click.pass_obj
def domain_verify(cfg: HostwardenConfig, domain_name: str):
    """Verify the TXT record of a domain."""
    asyncio.run(_domain_verify_async(cfg, domain_name))


async def _domain_verify_async(cfg: HostwardenConfig, domain_name: str):
    """Async implementation of domain verify command."""
    from hostwarden.domains import DNSVerifier, DomainManager, DomainVerificationStore

    store = DomainVerificationStore(cfg.domains_storage_path)
    manager = DomainManager(store, DNSVerifier(cfg.verification_prefix))

    try:
        result = await manager.verify_domain(domain_name)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if result.is_verified:
        console.print(f"[green]Domain verified:[/green] {result.domain}")
        return

    console.print(f"[yellow]Verification incomplete:[/yellow] {result.error or 'Unknown error'}")
    sys.exit(1)


@domain.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_obj
def domain_list(cfg: HostwardenConfig, json_output: bool):
    """List all domain verification records."""
    asyncio.run(_domain_list_async(cfg, json_output))


async def _domain_list_async(cfg: HostwardenConfig, json_output: bool):
    """Async implementation of domain list command."""
    from hostwarden.domains import DomainVerificationStore

    store = DomainVerificationStore(cfg.domains_storage_path)
    try:
        records = await store.list_all()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if json_output:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    if not records:
        console.print("[dim]No domains registered[/dim]")
        return

    table = Table(title="Domains")
    table.add_column("Domain", style="cyan")
    table.add_column("Namespace", style="dim")
    table.add_column("Verified", justify="center")
    table.add_column("Created At")

    for record in records:
        verified = "[green]Yes[/green]" if record.verified else "[yellow]No[/yellow]"
        table.add_row(
            record.domain,
            record.namespace,
            verified,
            record.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@main.group()
def routes():
    """Inspect traffic routes of custom hosts."""
    pass


@routes.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_obj
def routes_list(cfg: HostwardenConfig, json_output: bool):
    """List all traffic routes."""
    asyncio.run(_routes_list_async(cfg, json_output))


async def _routes_list_async(cfg: HostwardenConfig, json_output: bool):
    """Async implementation of routes list command."""
    from hostwarden.traffic import RouteStore

    store = RouteStore(cfg.routes_storage_path)
    try:
        all_routes = await store.list_all()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if json_output:
        click.echo(json.dumps([r.to_dict() for r in all_routes], indent=2))
        return

    if not all_routes:
        console.print("[dim]No routes[/dim]")
        return

    table = Table(title="Traffic Routes")
    table.add_column("Host", style="cyan")
    table.add_column("Target")
    table.add_column("Updated At", style="dim")

    for route in all_routes:
        table.add_row(route.host, route.target, route.updated_at.strftime("%Y-%m-%d %H:%M"))

    console.print(table)


@main.command("config")
@click.option("--shell", type=click.Choice(["bash", "powershell", "cmd"]), default="bash", help="Shell format")
@click.pass_obj
def config_export(cfg: HostwardenConfig, shell: str):
    """Export the effective configuration as environment variables."""
    for key, value in cfg.to_env_dict().items():
        if shell == "bash":
            click.echo(f'export {key}="{value}"')
        elif shell == "powershell":
            click.echo(f'$env:{key}="{value}"')
        elif shell == "cmd":
            click.echo(f"set {key}={value}")


if __name__ == "__main__":
    main()
