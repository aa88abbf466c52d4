#!/usr/bin/env python3
"""
Utility functions for omnideploy CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Union

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from omnideploy.client.rest import ClientConfig, RestControlPlaneClient
from omnideploy.core.config import DeployConfig
from omnideploy.core.errors import (
    AuthenticationError,
    DeployError,
    ErrorCategory,
    ErrorHandler,
    SpecFormatError,
    create_error_context,
    set_error_handler,
)
from omnideploy.core.prompter import InteractivePrompter, Prompter, ScriptedPrompter
from omnideploy.models import CloudAccount, Instance, InstanceAction
from omnideploy.orchestration.deploy_orchestrator import DeploymentSummary

from .constants import DEFAULT_SERVICE_NAME, DEFAULT_SPEC_FILES, ExitCode


# Initialize Rich console
console = Console()

_EXIT_CODES = {
    ErrorCategory.VALIDATION: ExitCode.INVALID_ARGS,
    ErrorCategory.CONFIGURATION: ExitCode.INVALID_ARGS,
    ErrorCategory.SPEC: ExitCode.SPEC_ERROR,
    ErrorCategory.ACCOUNT: ExitCode.ACCOUNT_ERROR,
    ErrorCategory.HIERARCHY: ExitCode.HIERARCHY_ERROR,
    ErrorCategory.INSTANCE: ExitCode.INSTANCE_ERROR,
    ErrorCategory.TIMEOUT: ExitCode.INSTANCE_ERROR,
}


def setup_logging(verbose: bool = False) -> None:
    """Setup Rich logging configuration and unified error handler."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Setup rich logging handler
    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=verbose,
        markup=True,
        rich_tracebacks=True,
    )

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[rich_handler],
    )

    # Setup unified error handler
    error_handler = ErrorHandler(console=console, verbose=verbose)
    set_error_handler(error_handler)


def exit_code_for(error: DeployError) -> int:
    return _EXIT_CODES.get(error.category, ExitCode.FAILURE)


def sanitize_service_name(name: str) -> str:
    """Lowercase, non-alphanumerics to '-', runs collapsed, ends trimmed.

    "My Service!" -> "my-service"
    """
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def find_default_spec(directory: Union[str, Path, None] = None) -> Path:
    """Return the first default spec file present in a directory.

    Raises:
        SpecFormatError: None of the default file names exist
    """
    base = Path(directory) if directory else Path.cwd()
    for name in DEFAULT_SPEC_FILES:
        candidate = base / name
        if candidate.is_file():
            return candidate

    raise SpecFormatError(
        f"No spec file found in {base}",
        context=create_error_context(operation="find_default_spec", file_path=str(base)),
        suggestions=[
            f"Create one of: {', '.join(DEFAULT_SPEC_FILES)}",
            "Or pass the spec path: omnideploy deploy path/to/spec.yaml",
        ],
    )


def default_service_name(spec_path: Union[str, Path]) -> str:
    """Service name derived from the spec's directory."""
    directory = Path(spec_path).resolve().parent.name
    if directory in ("", ".", "/"):
        return DEFAULT_SERVICE_NAME
    return sanitize_service_name(directory) or DEFAULT_SERVICE_NAME


def create_client(config: DeployConfig) -> RestControlPlaneClient:
    """REST client for the configured control plane."""
    if not config.api_token:
        raise AuthenticationError(
            "No API token configured",
            context=create_error_context(operation="create_client"),
        )
    return RestControlPlaneClient(
        ClientConfig(
            base_url=config.api_base_url,
            token=config.api_token,
            timeout=config.api_timeout,
        )
    )


def create_prompter(interactive: bool) -> Prompter:
    if interactive:
        return InteractivePrompter(console)
    return ScriptedPrompter(interactive=False)


def display_summary_table(summary: DeploymentSummary) -> None:
    """Display the outcome of a deploy run."""
    table = Table(title="Deployment Summary", show_header=True, header_style="bold magenta")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="bold")

    hierarchy = summary.hierarchy
    table.add_row("Service", f"{summary.service_name} ({hierarchy.service_id or '-'})")
    table.add_row("Spec", f"{summary.spec_kind} / {summary.target} / {summary.deployment_model}")
    table.add_row("Environment", hierarchy.environment_id or "-")
    table.add_row("Plan", f"{summary.plan_name} ({hierarchy.product_tier_id or '-'})")
    if summary.account_config_ids:
        table.add_row("Accounts", ", ".join(summary.account_config_ids))
    table.add_row("New service", "yes" if hierarchy.is_new_service else "no")
    table.add_row("New plan", "yes" if hierarchy.is_new_tier else "no")

    action_style = {
        InstanceAction.CREATED: "green",
        InstanceAction.UPGRADED: "green",
        InstanceAction.DRY_RUN: "yellow",
        InstanceAction.NONE: "dim",
    }[summary.instance_action]
    table.add_row(
        "Instance",
        f"[{action_style}]{summary.instance_action.value}[/{action_style}] "
        f"{summary.instance_id or ''}".rstrip(),
    )
    if summary.version:
        table.add_row("Version", summary.version)

    console.print(table)

    for warning in summary.warnings:
        console.print(f"⚠️  [yellow]{warning}[/yellow]")


def display_accounts_table(accounts: List[CloudAccount], title: str = "Cloud Accounts") -> None:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Provider")
    table.add_column("Identity")
    table.add_column("Status", style="bold")

    for account in accounts:
        status = account.raw_status or account.status.value
        color = "green" if account.is_ready else "yellow"
        table.add_row(
            account.id,
            account.name,
            account.provider.value,
            account.identity_label(),
            f"[{color}]{status}[/{color}]",
        )

    console.print(table)


def display_instances_table(instances: List[Instance], title: Optional[str] = None) -> None:
    table = Table(title=title or "Instances", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Resource", style="dim")
    table.add_column("Cloud")
    table.add_column("Region")
    table.add_column("Version")
    table.add_column("Status", style="bold")

    for instance in instances:
        resource = instance.resource_id
        if instance.is_account_instance:
            resource = f"{resource} (account)"
        table.add_row(
            instance.id,
            resource,
            instance.cloud_provider,
            instance.region,
            instance.version,
            instance.raw_status or instance.status.value,
        )

    console.print(table)
