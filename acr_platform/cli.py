"""Command line interface for ACR provisioning requests.

Examples:

    acr-platform validate request.yaml
    acr-platform promote-check promotion.yaml --request request.yaml
    acr-platform plan request.yaml --format json
    acr-platform --backend memory apply request.yaml
    acr-platform destroy request.yaml
"""

import json
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .backend import create_backend
from .config import (
    ConfigError,
    PlatformSettings,
    load_config,
    load_promotion,
    load_request,
)
from .config.models import BackendKind
from .desired_state import DesiredState
from .exceptions import AcrPlatformError, NameConflictError
from .logging_config import configure_logging
from .models import ProvisioningHandle
from .naming import derive_scope_resources
from .provisioner import Provisioner, plan_request
from .validation import check_promotion, find_name_conflicts

console = Console()


def exit_with_error(error: Exception) -> None:
    """Print an error and exit with status 1."""
    console.print(f"[red]❌ {escape(str(error))}[/red]")
    sys.exit(1)


def _credentials_from_env() -> dict[str, str]:
    credentials = {}
    for key, env_var in (
        ("client_id", "AZURE_CLIENT_ID"),
        ("client_secret", "AZURE_CLIENT_SECRET"),
        ("tenant_id", "AZURE_TENANT_ID"),
        ("subscription_id", "AZURE_SUBSCRIPTION_ID"),
    ):
        value = os.environ.get(env_var)
        if value:
            credentials[key] = value
    return credentials


def _render_plan_table(state: DesiredState) -> Table:
    table = Table(title=f"Desired state for {state.request_id}")
    table.add_column("Resource", style="cyan")
    table.add_column("Name")
    table.add_column("Owner", style="dim")

    table.add_row("registry", state.registry.name, state.registry.sku)
    for resource in state.scope_resources:
        owner = f"{resource.team}/{resource.environment}"
        table.add_row("scope map", resource.scope_map_name, owner)
        table.add_row("token", resource.token_name, owner)
    if state.private_endpoint_name:
        table.add_row("private endpoint", state.private_endpoint_name, "")
    return table


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (default: $ACR_CONFIG_PATH or ~/.config/acr-platform/config.yaml)",
)
@click.option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.option(
    "--backend",
    type=click.Choice([kind.value for kind in BackendKind]),
    help="Provisioning backend to use",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    log_level: Optional[str],
    backend: Optional[str],
) -> None:
    """Validate, plan and provision Azure Container Registry environments."""
    ctx.ensure_object(dict)
    try:
        settings = load_config(
            config_path,
            cli_args={"log_level": log_level, "backend": {"kind": backend}},
        )
    except ConfigError as e:
        exit_with_error(e)
    configure_logging(settings.log_level)
    ctx.obj["settings"] = settings


def _load_provisioner(ctx: click.Context) -> Provisioner:
    settings: PlatformSettings = ctx.obj["settings"]
    try:
        backend = create_backend(settings.backend, _credentials_from_env())
    except ValueError as e:
        exit_with_error(e)
    return Provisioner(backend, settings)


@cli.command()
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def validate(ctx: click.Context, request_file: Path) -> None:
    """Validate a provisioning request file."""
    settings: PlatformSettings = ctx.obj["settings"]
    try:
        request = load_request(request_file)
    except ConfigError as e:
        exit_with_error(e)

    try:
        plan_request(request, settings)
    except NameConflictError as e:
        # Report every conflict at once, not just the first one
        resources = derive_scope_resources(
            request.registry.name, request.registry.environment, request.teams
        )
        for conflict in find_name_conflicts(resources).conflicts:
            console.print(f"[yellow]⚠️  {escape(str(conflict))}[/yellow]")
        exit_with_error(e)
    except AcrPlatformError as e:
        exit_with_error(e)

    console.print(f"[green]✅ {request_file} is valid[/green]")


@cli.command("promote-check")
@click.argument("promotion_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--request",
    "request_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Provisioning request of the target registry; checks the team's scope maps",
)
@click.pass_context
def promote_check(
    ctx: click.Context, promotion_file: Path, request_file: Optional[Path]
) -> None:
    """Check an image promotion request against the promotion rules."""
    settings: PlatformSettings = ctx.obj["settings"]
    try:
        promotion = load_promotion(promotion_file)
        scope_resources = None
        if request_file is not None:
            scope_resources = plan_request(load_request(request_file), settings).scope_resources
    except AcrPlatformError as e:
        exit_with_error(e)

    result = check_promotion(promotion, scope_resources)
    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {escape(warning)}[/yellow]")

    if not result.is_valid:
        table = Table(title=f"Promotion of {promotion.image_name}:{promotion.source_tag}")
        table.add_column("Rule", style="red")
        table.add_column("Field", style="cyan")
        table.add_column("Message")
        for error in result.errors:
            table.add_row(error.rule, error.field, escape(error.message))
        console.print(table)
        exit_with_error(
            ValueError(f"{len(result.errors)} promotion rule(s) violated in {promotion_file}")
        )

    console.print(
        f"[green]✅ {promotion.source_environment} -> {promotion.target_environment} "
        f"promotion of {promotion.image_name}:{promotion.resolved_target_tag} is allowed[/green]"
    )


@cli.command()
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Plan output format",
)
@click.pass_context
def plan(ctx: click.Context, request_file: Path, output_format: str) -> None:
    """Show the resources a request would provision."""
    settings: PlatformSettings = ctx.obj["settings"]
    try:
        request = load_request(request_file)
        state = plan_request(request, settings)
    except AcrPlatformError as e:
        exit_with_error(e)

    if output_format.lower() == "json":
        click.echo(
            json.dumps(
                {
                    "request_id": state.request_id,
                    "scope_map_names": state.scope_map_names,
                    "token_names": state.token_names,
                    "private_endpoint_name": state.private_endpoint_name,
                    "tfvars": state.to_tfvars(),
                },
                indent=2,
            )
        )
        return

    console.print(_render_plan_table(state))


@cli.command()
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def apply(ctx: click.Context, request_file: Path) -> None:
    """Provision the resources of a request."""
    try:
        request = load_request(request_file)
        provisioner = _load_provisioner(ctx)
        result = provisioner.apply(request)
    except AcrPlatformError as e:
        exit_with_error(e)

    console.print(f"[green]✅ Provisioned {result.state.request_id}[/green]")
    for name, value in sorted(result.outputs.items()):
        console.print(f"  {name} = {escape(str(value))}")


@cli.command()
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def destroy(ctx: click.Context, request_file: Path, yes: bool) -> None:
    """Destroy the resources of a request."""
    try:
        request = load_request(request_file)
    except AcrPlatformError as e:
        exit_with_error(e)

    if not yes:
        click.confirm(f"Destroy all resources of {request.request_id}?", abort=True)

    try:
        provisioner = _load_provisioner(ctx)
        provisioner.destroy(ProvisioningHandle(request_id=request.request_id))
    except AcrPlatformError as e:
        exit_with_error(e)

    console.print(f"[green]✅ Destroyed {request.request_id}[/green]")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
