"""CLI interface for the PagerDuty on-call client."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
)

from pagerduty_cli.client import PagerDutyClient, PagerDutyError
from pagerduty_cli.config import (
    TOKEN_ENV_VAR,
    ConfigError,
    Settings,
    load_settings,
    token_from_dotenv,
)
from pagerduty_cli.logging_config import configure_logging, err_console
from pagerduty_cli.models import EscalationPolicy
from pagerduty_cli.output import (
    build_csv_output,
    build_export_output,
    build_json_output,
    build_tree_output,
    filter_policies,
    write_output,
)

app = typer.Typer(
    name="pagerduty-cli",
    help="PagerDuty CLI — see who is on call and export escalation policies.",
    no_args_is_help=True,
)


class OncallFormat(str, Enum):
    tree = "tree"
    json = "json"
    csv = "csv"


class ExportFormat(str, Enum):
    tfstate = "tfstate"


def _fail(exc: Exception) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
    return typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if not value:
        return
    try:
        typer.echo(version("pagerduty-cli"))
    except PackageNotFoundError:
        typer.echo("unknown")
    raise typer.Exit()


@dataclass
class CliState:
    """Global options, resolved into settings only when a command needs them."""

    config_path: Path | None = None
    api_token: str | None = None
    quiet: bool = False

    def settings(self) -> Settings:
        return load_settings(
            config_path=self.config_path,
            api_token=self.api_token or token_from_dotenv(),
        )


def make_progress(quiet: bool = False) -> Progress:
    """Page counter on stderr; hidden with ``-q``."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=err_console,
        transient=True,
        disable=quiet,
    )


def _fetch_policies(state: CliState) -> list[EscalationPolicy]:
    try:
        settings = state.settings()
        with make_progress(state.quiet) as progress:
            client = PagerDutyClient(settings, progress=progress)
            return client.fetch_policies_for_account()
    except (ConfigError, PagerDutyError) as exc:
        raise _fail(exc)


@app.callback()
def main(
    ctx: typer.Context,
    api_token: Annotated[
        Optional[str],
        typer.Option(
            "--api-token",
            "-a",
            envvar=TOKEN_ENV_VAR,
            help="A PagerDuty API token with READ access. Also read from .env.",
            show_default=False,
        ),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML file with PagerDuty settings."),
    ] = None,
    verbose: Annotated[
        int, typer.Option("--verbose", "-v", count=True, help="Increase verbosity.")
    ] = 0,
    warn: Annotated[
        bool, typer.Option("--warn", "-w", help="Only display warning messages.")
    ] = False,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Only display errors.")
    ] = False,
    show_version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
) -> None:
    """Query PagerDuty escalation policies and current on-calls."""
    configure_logging(verbose=verbose, warn=warn, quiet=quiet)
    ctx.obj = CliState(config_path=config, api_token=api_token, quiet=quiet)


@app.command("who-is-oncall")
def who_is_oncall(
    ctx: typer.Context,
    filter_: Annotated[
        Optional[str],
        typer.Option(
            "--filter",
            help="Only show Escalation Policies whose name contains the string.",
        ),
    ] = None,
    fmt: Annotated[
        OncallFormat,
        typer.Option("--format", "-f", help="Output format."),
    ] = OncallFormat.tree,
) -> None:
    """List who is on call for each escalation policy."""
    policies = filter_policies(_fetch_policies(ctx.obj), filter_)

    if fmt is OncallFormat.json:
        output = build_json_output(policies)
    elif fmt is OncallFormat.csv:
        output = build_csv_output(policies)
    else:
        output = build_tree_output(policies)

    if output:
        typer.echo(output, nl=not output.endswith("\n"))


app.command("who", hidden=True, help="Alias for who-is-oncall.")(who_is_oncall)


@app.command("export")
def export(
    ctx: typer.Context,
    dest: Annotated[
        str,
        typer.Option("--output", "-o", help="Where to save the output. Use - for stdout."),
    ] = "-",
    fmt: Annotated[
        ExportFormat,
        typer.Option("--format", "-f", help="Export format."),
    ] = ExportFormat.tfstate,
) -> None:
    """Export escalation policy names and ids as JSON."""
    policies = _fetch_policies(ctx.obj)
    try:
        write_output(dest, build_export_output(policies))
    except OSError as exc:
        raise _fail(exc)
