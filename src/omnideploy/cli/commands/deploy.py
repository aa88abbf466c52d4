#!/usr/bin/env python3
"""
Deploy command for omnideploy CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
from typing import Optional

import typer
from rich.panel import Panel

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from omnideploy.core.config import ConfigLoader
from omnideploy.core.errors import DeployError, handle_error
from omnideploy.orchestration.deploy_orchestrator import DeployOrchestrator

from ..constants import ExitCode
from ..utils import (
    console,
    create_client,
    create_prompter,
    default_service_name,
    display_summary_table,
    exit_code_for,
    find_default_spec,
    setup_logging,
)
from ..validators import (
    validate_cloud_provider,
    validate_deployment_type,
    validate_output_format,
    validate_parameters,
)


def deploy(
    spec: Annotated[
        Optional[str],
        typer.Argument(help="Spec file (defaults to compose.yaml, docker-compose.yaml or spec.yaml)"),
    ] = None,
    service_name: Annotated[
        Optional[str],
        typer.Option("--service-name", "-n", help="Service name (defaults to the spec's directory)"),
    ] = None,
    cloud_provider: Annotated[
        Optional[str],
        typer.Option("--cloud-provider", help="Cloud provider: aws, gcp, azure or oci"),
    ] = None,
    region: Annotated[
        Optional[str],
        typer.Option("--region", help="Region for a new instance"),
    ] = None,
    deployment_type: Annotated[
        Optional[str],
        typer.Option("--deployment-type", help="hosted or byoa (overrides the spec)"),
    ] = None,
    instance_id: Annotated[
        Optional[str],
        typer.Option("--instance-id", help="Existing instance to upgrade"),
    ] = None,
    resource_id: Annotated[
        Optional[str],
        typer.Option("--resource-id", help="Resource to create the instance for"),
    ] = None,
    param: Annotated[
        Optional[str],
        typer.Option("--param", help="Instance parameters as a JSON object"),
    ] = None,
    param_file: Annotated[
        Optional[str],
        typer.Option("--param-file", help="File containing instance parameters JSON"),
    ] = None,
    environment: Annotated[
        Optional[str],
        typer.Option("--environment", help="Environment name (default: Development)"),
    ] = None,
    environment_type: Annotated[
        Optional[str],
        typer.Option("--environment-type", help="Environment type (default: DEV)"),
    ] = None,
    release_description: Annotated[
        Optional[str],
        typer.Option("--release-description", help="Description of the released version"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Resolve and validate everything, but do not create or upgrade"),
    ] = False,
    wait: Annotated[
        bool,
        typer.Option("--wait", help="Wait until the instance is ready"),
    ] = False,
    non_interactive: Annotated[
        bool,
        typer.Option("--non-interactive", help="Fail instead of prompting"),
    ] = False,
    config_file: Annotated[
        Optional[str],
        typer.Option("--config", help="YAML or JSON config file"),
    ] = None,
    api_url: Annotated[
        Optional[str],
        typer.Option("--api-url", help="Control plane API URL"),
    ] = None,
    token: Annotated[
        Optional[str],
        typer.Option("--token", help="Control plane API token"),
    ] = None,
    output: Annotated[
        str,
        typer.Option("--output", "-o", help="Output format: table or json"),
    ] = "table",
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    🚀 Deploy a service spec in one shot.

    Classifies the spec, makes sure a usable cloud account is linked,
    finds or creates the service hierarchy, builds a new version and
    then upgrades the existing instance or creates a new one.
    """
    setup_logging(verbose)

    output = validate_output_format(output)
    cloud_provider = validate_cloud_provider(cloud_provider)
    deployment_type = validate_deployment_type(deployment_type)
    parameters = validate_parameters(param, param_file)

    try:
        cli_options = {
            "api": {"base_url": api_url, "token": token},
            "environment": {"name": environment, "type": environment_type},
            "release": {"description": release_description},
            "deploy": {
                "spec_path": spec,
                "service_name": service_name,
                "cloud_provider": cloud_provider,
                "region": region,
                "deployment_type": deployment_type,
                "instance_id": instance_id,
                "resource_id": resource_id,
                "parameters": parameters or None,
                "dry_run": dry_run or None,
                "wait": wait or None,
                "interactive": False if non_interactive else None,
            },
        }
        config = ConfigLoader.load(cli_options=cli_options, config_file=config_file)
        if not config.spec_path:
            config.spec_path = str(find_default_spec())
        if not config.service_name:
            config.service_name = default_service_name(config.spec_path)

        console.print(
            Panel(
                f"🚀 [bold cyan]Deploying Service[/bold cyan]\n"
                f"Spec: [yellow]{config.spec_path}[/yellow]\n"
                f"Service: [yellow]{config.service_name}[/yellow]\n"
                f"Environment: [yellow]{config.environment_name} ({config.environment_type})[/yellow]\n"
                f"Cloud: [yellow]{config.cloud_provider or 'auto'}[/yellow]  "
                f"Region: [yellow]{config.region or 'auto'}[/yellow]\n"
                f"Dry run: [yellow]{config.dry_run}[/yellow]",
                title="Deploy Configuration",
                border_style="blue",
            )
        )

        client = create_client(config)
        try:
            orchestrator = DeployOrchestrator(
                config, client, create_prompter(config.interactive), console=console
            )
            summary = orchestrator.execute()
        finally:
            client.close()

        if output == "json":
            console.print_json(json.dumps(summary.to_dict()))
        else:
            display_summary_table(summary)
            if summary.dry_run:
                console.print("🔍 [bold yellow]Dry run complete, nothing was created or upgraded[/bold yellow]")
            else:
                console.print("🎉 [bold green]Deployment completed successfully![/bold green]")
        raise typer.Exit(ExitCode.SUCCESS)

    except typer.Exit:
        raise
    except DeployError as e:
        handle_error(e)
        raise typer.Exit(exit_code_for(e))
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Deployment cancelled by user[/yellow]")
        raise typer.Exit(ExitCode.FAILURE)
