#!/usr/bin/env python3
"""
Validation functions for omnideploy CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
from typing import Any, Dict, Optional

import typer
from rich.panel import Panel

from .constants import (
    ExitCode,
    VALID_CLOUD_PROVIDERS,
    VALID_DEPLOYMENT_TYPES,
    VALID_OUTPUT_FORMATS,
)
from .utils import console


def validate_parameters(
    param: Optional[str] = None,
    param_file: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate and parse instance parameters.

    Args:
        param: JSON object string from --param
        param_file: Path to a JSON file from --param-file

    Returns:
        Dict of parameters; --param values override the file

    Raises:
        typer.Exit: If a source is unreadable or not a JSON object
    """
    parameters: Dict[str, Any] = {}

    # Load from file first
    if param_file:
        try:
            with open(param_file, "r") as f:
                loaded = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            console.print(f"❌ Failed to load parameter file: [red]{e}[/red]")
            raise typer.Exit(ExitCode.INVALID_ARGS)
        if not isinstance(loaded, dict):
            console.print("❌ [red]Parameter file must contain a JSON object[/red]")
            raise typer.Exit(ExitCode.INVALID_ARGS)
        parameters.update(loaded)

    # Parse inline parameters (override file)
    if param:
        try:
            inline = json.loads(param)
        except json.JSONDecodeError as e:
            console.print(f"❌ Invalid JSON in --param: [red]{e}[/red]")
            console.print(
                Panel(
                    """[bold cyan]Example usage:[/bold cyan]
omnideploy deploy --param '{"instanceType": "t3.medium", "replicas": 2}'

[bold cyan]Or using a file:[/bold cyan]
omnideploy deploy --param-file params.json""",
                    title="Instance Parameters",
                    border_style="blue",
                )
            )
            raise typer.Exit(ExitCode.INVALID_ARGS)
        if not isinstance(inline, dict):
            console.print("❌ [red]--param must be a JSON object[/red]")
            raise typer.Exit(ExitCode.INVALID_ARGS)
        parameters.update(inline)

    return parameters


def validate_cloud_provider(cloud_provider: Optional[str]) -> Optional[str]:
    if cloud_provider is None:
        return None
    value = cloud_provider.strip().lower()
    if value not in VALID_CLOUD_PROVIDERS:
        console.print(
            f"❌ Invalid cloud provider: [red]{cloud_provider}[/red] "
            f"(valid: {', '.join(VALID_CLOUD_PROVIDERS)})"
        )
        raise typer.Exit(ExitCode.INVALID_ARGS)
    return value


def validate_deployment_type(deployment_type: Optional[str]) -> Optional[str]:
    if deployment_type is None:
        return None
    value = deployment_type.strip().lower()
    if value not in VALID_DEPLOYMENT_TYPES:
        console.print(
            f"❌ Invalid deployment type: [red]{deployment_type}[/red] "
            f"(valid: {', '.join(VALID_DEPLOYMENT_TYPES)})"
        )
        raise typer.Exit(ExitCode.INVALID_ARGS)
    return value


def validate_output_format(output: str) -> str:
    value = output.strip().lower()
    if value not in VALID_OUTPUT_FORMATS:
        console.print(
            f"❌ Invalid output format: [red]{output}[/red] "
            f"(valid: {', '.join(VALID_OUTPUT_FORMATS)})"
        )
        raise typer.Exit(ExitCode.INVALID_ARGS)
    return value
