#!/usr/bin/env python3
"""
Account commands for omnideploy CLI

This module lists, describes and links cloud accounts on the control plane.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Optional

import typer
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from omnideploy.core.config import ConfigLoader
from omnideploy.core.errors import DeployError, handle_error
from omnideploy.models import CloudProvider
from omnideploy.orchestration.account_resolver import AccountResolver
from omnideploy.orchestration.onboarding import build_account_request

from ..constants import ExitCode, VALID_CLOUD_PROVIDERS
from ..utils import (
    console,
    create_client,
    create_prompter,
    display_accounts_table,
    exit_code_for,
    setup_logging,
)
from ..validators import validate_cloud_provider


# Create a sub-app for account commands
account_app = typer.Typer(
    name="account",
    help="🔐 Manage linked cloud accounts",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


ConfigOption = Annotated[
    Optional[str], typer.Option("--config", help="YAML or JSON config file")
]
ApiUrlOption = Annotated[
    Optional[str], typer.Option("--api-url", help="Control plane API URL")
]
TokenOption = Annotated[
    Optional[str], typer.Option("--token", help="Control plane API token")
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
]


def _load_config(config_file, api_url, token):
    return ConfigLoader.load(
        cli_options={
            "api": {"base_url": api_url, "token": token},
        },
        config_file=config_file,
    )


@account_app.command("list")
def list_accounts(
    cloud_provider: Annotated[
        Optional[str],
        typer.Option("--cloud-provider", help="Only list accounts of this provider"),
    ] = None,
    config_file: ConfigOption = None,
    api_url: ApiUrlOption = None,
    token: TokenOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    📋 List linked cloud accounts and their status.
    """
    setup_logging(verbose)
    cloud_provider = validate_cloud_provider(cloud_provider)
    providers = [CloudProvider.parse(cloud_provider)] if cloud_provider else list(CloudProvider)

    try:
        config = _load_config(config_file, api_url, token)
        client = create_client(config)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Listing cloud accounts...", total=None)
                accounts = []
                for provider in providers:
                    accounts.extend(client.list_accounts(provider))
                progress.update(task, description="Done")
        finally:
            client.close()
    except DeployError as e:
        handle_error(e)
        raise typer.Exit(exit_code_for(e))

    if not accounts:
        console.print("ℹ️  [yellow]No cloud accounts linked[/yellow]")
        console.print("💡 Link one with: [cyan]omnideploy account create[/cyan]")
        raise typer.Exit(ExitCode.SUCCESS)

    display_accounts_table(accounts)


@account_app.command("describe")
def describe_account(
    account_id: Annotated[str, typer.Argument(help="Account config id")],
    config_file: ConfigOption = None,
    api_url: ApiUrlOption = None,
    token: TokenOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🔎 Show one linked cloud account.
    """
    setup_logging(verbose)

    try:
        config = _load_config(config_file, api_url, token)
        client = create_client(config)
        try:
            account = client.describe_account(account_id)
        finally:
            client.close()
    except DeployError as e:
        handle_error(e)
        raise typer.Exit(exit_code_for(e))

    display_accounts_table([account], title=f"Cloud Account {account_id}")
    if not account.is_ready:
        console.print(
            f"⚠️  [yellow]Account is {account.raw_status or account.status.value}, "
            "complete the provider setup to make it READY[/yellow]"
        )


@account_app.command("create")
def create_account(
    aws_account_id: Annotated[
        Optional[str], typer.Option("--aws-account-id", help="AWS account id (12 digits)")
    ] = None,
    aws_bootstrap_role_arn: Annotated[
        Optional[str],
        typer.Option("--aws-bootstrap-role-arn", help="AWS bootstrap role ARN (derived by default)"),
    ] = None,
    gcp_project_id: Annotated[
        Optional[str], typer.Option("--gcp-project-id", help="GCP project id")
    ] = None,
    gcp_project_number: Annotated[
        Optional[str], typer.Option("--gcp-project-number", help="GCP project number")
    ] = None,
    azure_subscription_id: Annotated[
        Optional[str], typer.Option("--azure-subscription-id", help="Azure subscription id")
    ] = None,
    azure_tenant_id: Annotated[
        Optional[str], typer.Option("--azure-tenant-id", help="Azure tenant id")
    ] = None,
    name: Annotated[
        Optional[str], typer.Option("--name", help="Account config name")
    ] = None,
    wait: Annotated[
        bool, typer.Option("--wait/--no-wait", help="Wait for the account to become READY")
    ] = True,
    config_file: ConfigOption = None,
    api_url: ApiUrlOption = None,
    token: TokenOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    ➕ Link a cloud account.

    Without identity options the command asks for the provider and its
    credentials interactively.

    Examples:
        omnideploy account create
        omnideploy account create --aws-account-id 123456789012
        omnideploy account create --gcp-project-id my-proj --gcp-project-number 1234
    """
    setup_logging(verbose)

    answers = {
        "aws_account_id": aws_account_id,
        "aws_bootstrap_role_arn": aws_bootstrap_role_arn,
        "gcp_project_id": gcp_project_id,
        "gcp_project_number": gcp_project_number,
        "azure_subscription_id": azure_subscription_id,
        "azure_tenant_id": azure_tenant_id,
    }
    flags_given = any(answers.values())

    console.print(
        Panel(
            f"🔐 [bold cyan]Linking Cloud Account[/bold cyan]\n"
            f"Mode: [yellow]{'from options' if flags_given else 'interactive'}[/yellow]\n"
            f"Providers: [yellow]{', '.join(VALID_CLOUD_PROVIDERS[:3])}[/yellow]",
            title="Account Onboarding",
            border_style="blue",
        )
    )

    try:
        config = _load_config(config_file, api_url, token)
        client = create_client(config)
        try:
            resolver = AccountResolver(client, create_prompter(True), config)
            if not flags_given:
                account = resolver.create_account_interactively()
            else:
                org_id = client.get_org_id() if gcp_project_id else None
                request = build_account_request(answers, org_id=org_id, name=name)
                account_id = client.create_account(request)
                console.print(f"✅ Created account config [cyan]{account_id}[/cyan]")
                console.print(resolver.instructions.render(request, account_config_id=account_id))
                if wait:
                    account = resolver.wait_for_account_ready(account_id)
                else:
                    account = client.describe_account(account_id)
        finally:
            client.close()
    except DeployError as e:
        handle_error(e)
        raise typer.Exit(exit_code_for(e))

    display_accounts_table([account], title="Linked Account")
    if account.is_ready:
        console.print("🎉 [bold green]Account is READY[/bold green]")
