#!/usr/bin/env python3
"""
Instance commands for omnideploy CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Optional

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from omnideploy.core.config import ConfigLoader
from omnideploy.core.errors import DeployError, handle_error
from omnideploy.models import ServiceHierarchy
from omnideploy.orchestration.instance_manager import InstanceManager

from ..constants import ExitCode
from ..utils import (
    console,
    create_client,
    create_prompter,
    display_instances_table,
    exit_code_for,
    setup_logging,
)


# Create a sub-app for instance commands
instance_app = typer.Typer(
    name="instance",
    help="📦 Inspect and wait for service instances",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@instance_app.command("list")
def list_instances(
    service_id: Annotated[str, typer.Option("--service-id", help="Service id")],
    environment_id: Annotated[str, typer.Option("--environment-id", help="Environment id")],
    plan_id: Annotated[str, typer.Option("--plan-id", help="Product tier id")],
    show_accounts: Annotated[
        bool, typer.Option("--show-accounts", help="Include cloud account instances")
    ] = False,
    config_file: Annotated[
        Optional[str], typer.Option("--config", help="YAML or JSON config file")
    ] = None,
    token: Annotated[
        Optional[str], typer.Option("--token", help="Control plane API token")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    📋 List instances of a plan.
    """
    setup_logging(verbose)

    try:
        config = ConfigLoader.load(cli_options={"api": {"token": token}}, config_file=config_file)
        client = create_client(config)
        try:
            instances = client.list_instances(service_id, environment_id, plan_id)
        finally:
            client.close()
    except DeployError as e:
        handle_error(e)
        raise typer.Exit(exit_code_for(e))

    if not show_accounts:
        instances = [i for i in instances if not i.is_account_instance]
    if not instances:
        console.print("ℹ️  [yellow]No instances found[/yellow]")
        raise typer.Exit(ExitCode.SUCCESS)

    display_instances_table(instances)


@instance_app.command("wait")
def wait_instance(
    instance_id: Annotated[str, typer.Argument(help="Instance id")],
    service_id: Annotated[str, typer.Option("--service-id", help="Service id")],
    environment_id: Annotated[str, typer.Option("--environment-id", help="Environment id")],
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", help="Seconds to wait (default from config)")
    ] = None,
    interval: Annotated[
        Optional[float], typer.Option("--interval", help="Seconds between checks")
    ] = None,
    config_file: Annotated[
        Optional[str], typer.Option("--config", help="YAML or JSON config file")
    ] = None,
    token: Annotated[
        Optional[str], typer.Option("--token", help="Control plane API token")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    ⏳ Wait until an instance is READY or RUNNING.

    Exits non-zero when the instance fails or the wait times out.
    """
    setup_logging(verbose)

    try:
        config = ConfigLoader.load(
            cli_options={
                "api": {"token": token},
                "polling": {"instance_ready": {"timeout": timeout, "interval": interval}},
            },
            config_file=config_file,
        )
        client = create_client(config)
        manager = InstanceManager(client, create_prompter(False), config)
        hierarchy = ServiceHierarchy(service_id=service_id, environment_id=environment_id)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task(f"Waiting for instance {instance_id}...", total=None)
                instance = manager.wait_for_instance_ready(hierarchy, instance_id)
                progress.update(task, description="Instance ready!")
        finally:
            client.close()
    except DeployError as e:
        handle_error(e)
        raise typer.Exit(exit_code_for(e))

    console.print(
        f"🎉 [bold green]Instance {instance.id} is "
        f"{instance.raw_status or instance.status.value}[/bold green]"
    )
