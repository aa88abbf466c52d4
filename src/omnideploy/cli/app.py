#!/usr/bin/env python3
"""
omnideploy command-line entry point.

`deploy` runs the whole workflow for one spec file. The `account` and
`instance` groups inspect and prepare what a deploy relies on: linked
cloud accounts and the instances of a plan.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import sys

import typer
from rich.traceback import install

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from omnideploy import __version__
from omnideploy.core.errors import DeployError, handle_error

from .commands import account_app, deploy, instance_app
from .constants import ExitCode
from .utils import console, exit_code_for

install(show_locals=False)

app = typer.Typer(
    name="omnideploy",
    help=(
        "🚀 omnideploy - Deploy a compose file or service plan spec to the "
        "Omnistrate control plane"
    ),
    epilog=(
        "Start with [bold]omnideploy deploy[/bold] in the directory holding "
        "your compose.yaml; link accounts first with "
        "[bold]omnideploy account create[/bold] for BYOA plans."
    ),
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
)

app.command()(deploy)
app.add_typer(account_app, name="account")
app.add_typer(instance_app, name="instance")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", help="Print the omnideploy version and exit")
    ] = False,
) -> None:
    """
    🚀 omnideploy

    Classifies the spec, checks linked cloud accounts, finds or creates
    the service hierarchy, submits a build, then upgrades the plan's
    instances or creates a new one.
    """
    if version:
        console.print(
            f"🚀 [bold cyan]omnideploy[/bold cyan] version [green]{__version__}[/green]"
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit()


def cli_main() -> None:
    """Console-script entry point; maps escaped errors to exit codes."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Deployment interrupted, entities created so far are kept[/yellow]")
        sys.exit(ExitCode.FAILURE)
    except DeployError as e:
        handle_error(e)
        sys.exit(exit_code_for(e))
    except Exception as e:
        console.print(f"💥 [bold red]Unexpected error: {e}[/bold red]")
        console.print_exception()
        sys.exit(ExitCode.FAILURE)


if __name__ == "__main__":
    cli_main()
