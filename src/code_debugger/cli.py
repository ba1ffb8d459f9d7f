"""
CLI interface using Click.

Drives the session orchestrator from a terminal: run a file, repair it
with a live progress line, inspect budgets and personas.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from code_debugger import __version__
from code_debugger.budget import iteration_budget, line_count
from code_debugger.config import ConfigurationError, DebuggerConfig, load_config
from code_debugger.logging import setup_logging, get_logger
from code_debugger.orchestrator import SessionOrchestrator
from code_debugger.personas import Persona, all_profiles, messages_for
from code_debugger.state import (
    ChangeType,
    ExecutionOutcome,
    ExecutionStatus,
    Notification,
    NotificationLevel,
)

console = Console()
logger = get_logger(__name__)

PERSONA_CHOICES = [p.value for p in Persona]


def _load_config_or_exit(config_path: Optional[str]) -> DebuggerConfig:
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)


def _print_notification(notification: Notification) -> None:
    style = "red" if notification.level == NotificationLevel.ERROR else "cyan"
    console.print(f"[{style}]{notification.title}:[/{style}] {escape(notification.description)}")


def _print_outcome(outcome: ExecutionOutcome, title: str = "Output") -> None:
    """Render an execution outcome as a panel."""
    if outcome.status == ExecutionStatus.SUCCESS:
        subtitle = "[green]Success[/green]"
        border = "green"
    elif outcome.status == ExecutionStatus.ERROR:
        subtitle = "[red]Error[/red]"
        border = "red"
    else:
        subtitle = "idle"
        border = "dim"

    if outcome.latency_ms is not None:
        subtitle += f"  {outcome.latency_ms}ms"

    console.print(Panel(
        Text(outcome.output or "(no output)"),
        title=title,
        subtitle=subtitle,
        border_style=border,
    ))


def _print_patches(orchestrator: SessionOrchestrator) -> None:
    patches = orchestrator.patch_set
    if not patches:
        console.print("[dim]No patches generated.[/dim]")
        return

    table = Table(title=f"Patches ({len(patches)})")
    table.add_column("Iter", justify="right")
    table.add_column("Change")
    table.add_column("Old")
    table.add_column("New")
    table.add_column("Text")
    table.add_column("Reason", style="dim")

    for patch in patches:
        if patch.change_type == ChangeType.REMOVED:
            change = "[red]REMOVED[/red]"
            text = f"[red strike]{escape(patch.old_text)}[/red strike]"
        else:
            change = "[green]ADDED[/green]"
            text = f"[green]{escape(patch.new_text)}[/green]"
        table.add_row(
            str(patch.iteration),
            change,
            str(patch.line_old) if patch.line_old else "-",
            str(patch.line_new) if patch.line_new else "-",
            text,
            escape(patch.reason),
        )

    console.print(table)


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path),
              help="Also write DEBUG logs to this file as JSON lines")
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool, log_file: Optional[Path]) -> None:
    """Code Debugger - run and repair code against a remote service."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    setup_logging(level="DEBUG" if verbose else "WARNING", log_file=log_file)

    if version:
        console.print(f"code-debugger v{__version__}")
        sys.exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
def run(file: Path, config: Optional[str]) -> None:
    """Run FILE once on the execution service."""
    debugger_config = _load_config_or_exit(config)
    code = file.read_text()
    logger.info("Run command", file=str(file))

    async def _run() -> ExecutionOutcome:
        async with SessionOrchestrator(debugger_config, initial_code=code) as orchestrator:
            return await orchestrator.trigger_run()

    outcome = asyncio.run(_run())
    _print_outcome(outcome, title=file.name)
    sys.exit(0 if outcome.status == ExecutionStatus.SUCCESS else 1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--instructions", "-i", default="", help="What the repair should achieve")
@click.option("--persona", "-p", type=click.Choice(PERSONA_CHOICES), default=None,
              help="Progress message personality")
@click.option("--write", "-w", is_flag=True, help="Write the repaired code back to FILE")
@click.option("--no-auto-run", is_flag=True, help="Do not run the repaired code afterwards")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
def repair(
    file: Path,
    instructions: str,
    persona: Optional[str],
    write: bool,
    no_auto_run: bool,
    config: Optional[str],
) -> None:
    """Repair FILE following the given instructions."""
    debugger_config = _load_config_or_exit(config)
    if no_auto_run:
        debugger_config.timing.auto_run_enabled = False
    code = file.read_text()
    logger.info("Repair command", file=str(file), persona=persona)

    console.print(
        f"[bold]{file.name}[/bold]: {line_count(code)} lines, "
        f"budget {iteration_budget(code)} iterations"
    )

    async def _repair():
        with console.status("") as status:
            async with SessionOrchestrator(
                debugger_config,
                initial_code=code,
                on_output=lambda text: status.update(text),
                on_notify=_print_notification,
            ) as orchestrator:
                attempt = await orchestrator.trigger_repair(code, instructions, persona)
                if attempt.repair_session is not None and not attempt.stale:
                    status.update("Running repaired code…")
                    await orchestrator.wait_for_auto_run()
                return attempt, orchestrator

    attempt, orchestrator = asyncio.run(_repair())

    if not attempt.accepted or attempt.repair_session is None:
        sys.exit(2 if not attempt.accepted else 1)

    _print_patches(orchestrator)
    _print_outcome(orchestrator.outcome, title="Repaired run" if debugger_config.timing.auto_run_enabled else "Repair output")

    if write:
        file.write_text(attempt.repair_session.final_code)
        console.print(f"[green]✓ Wrote repaired code to {file}[/green]")
    else:
        console.print(Panel(
            Text(attempt.repair_session.final_code),
            title="Repaired code",
            border_style="cyan",
        ))

    sys.exit(0 if orchestrator.outcome.status == ExecutionStatus.SUCCESS else 1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def budget(file: Path) -> None:
    """Show the repair iteration budget for FILE."""
    code = file.read_text()
    console.print(f"Lines: {line_count(code)}")
    console.print(f"Iteration budget: {iteration_budget(code)}")


@main.command()
@click.option("--messages", "-m", is_flag=True, help="Show each persona's progress messages")
def personas(messages: bool) -> None:
    """List available personas."""
    table = Table()
    table.add_column("Persona", style="cyan")
    table.add_column("Title")
    table.add_column("Subtitle")
    table.add_column("Description", style="dim")

    for profile in all_profiles():
        table.add_row(profile.persona.value, profile.title, profile.subtitle, profile.description)

    console.print(table)

    if messages:
        for profile in all_profiles():
            console.print(f"\n[bold]{profile.title}[/bold]")
            for line in messages_for(profile.persona):
                console.print(f"  {line}")


@main.command(name="config")
@click.option("--show", "-s", is_flag=True, help="Show the effective configuration")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to config file")
def config_cmd(show: bool, config_path: Optional[str]) -> None:
    """Validate and optionally show configuration."""
    debugger_config = _load_config_or_exit(config_path)
    console.print("[green]✓ Configuration is valid[/green]")
    if show:
        console.print(yaml.dump(debugger_config.model_dump(mode="json"), default_flow_style=False))


if __name__ == "__main__":
    main()
