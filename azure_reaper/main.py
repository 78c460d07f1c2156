"""
azure-reaper CLI - Azure Tenant Resource Remover

Main entry point for the command-line interface.
"""

import logging
import sys
import threading
from typing import List, Optional, Tuple

import click
from rich.console import Console

from azure_reaper import __version__
from azure_reaper import resources  # noqa: F401  registers every resource type
from azure_reaper.cleaners.remover import ResourceRemover
from azure_reaper.core.azure_client import AZURE_ENVIRONMENTS, configure_auth
from azure_reaper.core.composition import wire
from azure_reaper.core.config import DEFAULT_CONFIG_PATH, load_config
from azure_reaper.core.engine import MIN_FORCE_SLEEP, Engine, Parameters
from azure_reaper.core.exceptions import ReaperError
from azure_reaper.core.filters import Filters
from azure_reaper.core.logging import setup_logging
from azure_reaper.core.prompt import TenantPrompt
from azure_reaper.core.registry import default_registry
from azure_reaper.core.tenant import discover_tenant
from azure_reaper.reporters.cli_reporter import CLIReporter


logger = logging.getLogger(__name__)

console = Console()

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def validate_prompt_delay(ctx, param, value: int) -> int:
    """Reject delays shorter than the minimum countdown."""
    if value < MIN_FORCE_SLEEP:
        raise click.BadParameter(f"cannot be less than {MIN_FORCE_SLEEP} seconds")
    return value


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="azure-reaper")
def cli():
    """
    azure-reaper: remove every resource from an Azure tenant

    Lists the resources of a tenant, its subscriptions and resource groups,
    filters out what the configuration protects and removes the rest in
    dependency order. Runs are dry runs unless --no-dry-run is given.
    """
    pass


@cli.command("run")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the YAML configuration file",
)
@click.option(
    "--include",
    "includes",
    multiple=True,
    help="Only remove these resource types (repeatable)",
)
@click.option(
    "--exclude",
    "excludes",
    multiple=True,
    help="Never remove these resource types (repeatable)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Do not log filtered resources",
)
@click.option(
    "--no-dry-run",
    is_flag=True,
    help="Actually remove resources",
)
@click.option(
    "--no-prompt",
    "--force",
    "force",
    is_flag=True,
    help="Skip the confirmation prompt and wait --prompt-delay seconds instead",
)
@click.option(
    "--prompt-delay",
    default=10,
    type=int,
    show_default=True,
    callback=validate_prompt_delay,
    help=f"Seconds to wait before a forced run (minimum {MIN_FORCE_SLEEP})",
)
@click.option(
    "--wait-on-dependencies",
    is_flag=True,
    help="Wait for dependencies to be removed instead of blocking dependents",
)
@click.option(
    "--environment",
    envvar="AZURE_ENVIRONMENT",
    type=click.Choice(sorted(AZURE_ENVIRONMENTS), case_sensitive=False),
    default="global",
    show_default=True,
    help="Azure cloud environment",
)
@click.option(
    "--tenant-id",
    envvar="AZURE_TENANT_ID",
    required=True,
    help="The tenant to process",
)
@click.option(
    "--subscription-id",
    "subscription_ids",
    envvar="AZURE_SUBSCRIPTION_ID",
    multiple=True,
    help="Only process these subscriptions (repeatable)",
)
@click.option(
    "--client-id",
    envvar="AZURE_CLIENT_ID",
    default=None,
    help="Application (client) id of the service principal",
)
@click.option(
    "--client-secret",
    envvar="AZURE_CLIENT_SECRET",
    default=None,
    help="Client secret of the service principal",
)
@click.option(
    "--client-certificate-file",
    envvar="AZURE_CLIENT_CERTIFICATE_PATH",
    default=None,
    help="Certificate file of the service principal",
)
@click.option(
    "--client-federated-token-file",
    envvar="AZURE_FEDERATED_TOKEN_FILE",
    default=None,
    help="Federated token file for workload identity",
)
@click.option(
    "--region",
    "regions",
    multiple=True,
    help="Regions to process, overrides the config file (repeatable)",
)
@click.option(
    "--max-workers",
    default=10,
    type=int,
    show_default=True,
    help="Maximum parallel listing and removal calls",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Also write logs to this file",
)
def run_command(
    config_path: str,
    includes: Tuple[str, ...],
    excludes: Tuple[str, ...],
    quiet: bool,
    no_dry_run: bool,
    force: bool,
    prompt_delay: int,
    wait_on_dependencies: bool,
    environment: str,
    tenant_id: str,
    subscription_ids: Tuple[str, ...],
    client_id: Optional[str],
    client_secret: Optional[str],
    client_certificate_file: Optional[str],
    client_federated_token_file: Optional[str],
    regions: Tuple[str, ...],
    max_workers: int,
    log_level: str,
    log_file: Optional[str],
):
    """
    List and remove the resources of a tenant.

    Examples:

        # Preview what would be removed (safe)
        azure-reaper run --tenant-id <tenant> --config config.yaml

        # Only look at two resource types in one region
        azure-reaper run --tenant-id <tenant> --region eastus \\
            --include VirtualMachine --include Disk

        # Remove, with the confirmation prompt
        azure-reaper run --tenant-id <tenant> --no-dry-run

        # Remove without prompting (dangerous!)
        azure-reaper run --tenant-id <tenant> --no-dry-run --no-prompt
    """
    setup_logging(level=log_level, log_file=log_file)
    reporter = CLIReporter(console)

    registry = default_registry()
    registry.freeze()

    parameters = Parameters(
        force=force,
        force_sleep=prompt_delay,
        quiet=quiet,
        no_dry_run=no_dry_run,
        includes=list(includes),
        excludes=list(excludes),
        wait_on_dependencies=wait_on_dependencies,
        max_workers=max_workers,
    )
    cancel_event = threading.Event()

    try:
        parameters.validate()
        config = load_config(
            config_path,
            deprecations=registry.deprecated_mapping(),
            regions=list(regions),
        )
        config.validate(tenant_id)

        auth = configure_auth(
            environment,
            tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            certificate_file=client_certificate_file,
            federated_token_file=client_federated_token_file,
        )
        with auth:
            with console.status("[bold]Discovering tenant...[/bold]"):
                tenant = discover_tenant(
                    auth,
                    tenant_id,
                    subscription_ids=list(subscription_ids) or None,
                    regions=config.regions,
                )

            remover = ResourceRemover(
                progress_callback=reporter.print_delete_result if no_dry_run else None
            )
            engine = Engine(
                parameters,
                Filters(),
                registry,
                remover=remover,
                listing_callback=reporter.report_listing,
            )
            wire(
                engine,
                tenant,
                registry,
                config,
                parameters,
                version=f"azure-reaper {__version__}",
                prompt=TenantPrompt(parameters, tenant, console=console),
            )

            reporter.print_header(
                tenant, config.regions, dry_run=parameters.dry_run, version=__version__
            )
            summary = engine.run(cancel_event)

    except ReaperError as e:
        logger.debug(f"Run failed: {e.to_dict()}")
        reporter.print_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        cancel_event.set()
        console.print("\n[yellow]Run cancelled by user.[/yellow]")
        sys.exit(130)

    reporter.report_summary(summary)
    if summary.failed:
        sys.exit(1)


@cli.command("resource-types")
def resource_types_command():
    """List every supported resource type and its scope."""
    registry = default_registry()
    CLIReporter(console).report_resource_types(registry)


# Aliases
cli.add_command(run_command, name="nuke")
cli.add_command(resource_types_command, name="list-resources")


def main(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    cli(args=argv, prog_name="azure-reaper")


if __name__ == "__main__":
    main()
