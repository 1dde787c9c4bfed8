"""Console output formatting utilities for localpipe."""

from __future__ import annotations

import traceback
from typing import Any, Dict, List, Mapping, Optional

import click

from .. import settings
from ..model import ExecutionResult, ExecutionUnit, Step, StepKind, StepResult, StepStatus

_STATUS_COLOURS = {
    StepStatus.SUCCEEDED: "green",
    StepStatus.FAILED: "red",
    StepStatus.SKIPPED: "yellow",
    StepStatus.SIMULATED: "cyan",
}


def _tail(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return "..." + text[-limit:]


def _preview(text: str, limit: int) -> str:
    text = text.strip()
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + "..."


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, verbose: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show stack traces and [DEBUG] lines
            verbose: If True, show script text and full output of failed steps
        """
        self.debug = debug
        self.verbose = verbose

    def print_header(self, title: str) -> None:
        """Print a section header."""
        click.echo(f"\n{title}")
        click.echo("-" * len(title))

    def print_run_started(
        self,
        pipeline_file: str,
        vendor: str,
        workflow: str,
        working_directory: str,
        unit_count: int,
    ) -> None:
        """Print run start information."""
        click.secho("\nRUN STARTED", bold=True)
        click.echo(f"Pipeline file: {pipeline_file}")
        click.echo(f"Type: {vendor}")
        click.echo(f"Workflow: {workflow}")
        click.echo(f"Working directory: {working_directory}")
        click.echo(f"Units: {unit_count}")

    def print_metadata(self, metadata: Mapping[str, Any], indent: int = 0) -> None:
        pad = "  " * indent
        for key, value in metadata.items():
            click.echo(f"{pad}{key}: {value}")

    def print_variables(self, variables: Mapping[str, str]) -> None:
        """Print workflow variables (verbose only)."""
        if not self.verbose or not variables:
            return
        click.echo("Variables:")
        for key, value in variables.items():
            click.echo(f"  {key}={value}")

    def print_unit_start(self, unit: ExecutionUnit, depth: int) -> None:
        pad = "  " * depth
        label = "STAGE" if unit.is_composite else "JOB"
        click.secho(f"\n{pad}{label} STARTED: {unit.display_name}", bold=True)
        self.print_metadata(unit.metadata, indent=depth + 1)
        if unit.condition:
            click.echo(f"{pad}  Condition: {unit.condition}")

    def print_unit_end(self, unit: ExecutionUnit, result: ExecutionResult, depth: int) -> None:
        pad = "  " * depth
        label = "STAGE" if unit.is_composite else "JOB"
        for warning in result.warnings:
            self.print_warning(warning)
        if result.skipped:
            click.secho(f"{pad}{label} SKIPPED: {unit.display_name} (condition is false)", fg="yellow")
        elif result.succeeded:
            click.secho(f"{pad}{label} SUCCEEDED: {unit.display_name}", fg="green")
        else:
            click.secho(f"{pad}{label} FAILED: {unit.display_name}", fg="red")

    def print_step(self, step: Step, index: int) -> None:
        """Print step start message."""
        click.echo(f"STEP {index + 1}: {step.display_name}")
        if self.verbose and step.kind is StepKind.SCRIPT:
            for line in step.content.text.rstrip().splitlines():
                click.echo(f"  | {line}")

    def print_step_result(self, result: StepResult) -> None:
        colour = _STATUS_COLOURS[result.status]

        if result.status is StepStatus.SIMULATED:
            click.secho(f"  SIMULATED: {result.message}", fg=colour)
            return
        if result.status is StepStatus.SKIPPED:
            click.secho(f"  SKIPPED: {result.message or 'not run'}", fg=colour)
            return

        if result.status is StepStatus.SUCCEEDED:
            if result.message:
                self.print_warning(result.message)
            preview = _preview(result.stdout, settings.OUTPUT_PREVIEW_CHARS)
            if preview and not self.verbose:
                click.echo(f"  Output: {preview}")
            elif self.verbose and result.stdout:
                click.echo(result.stdout.rstrip())
            click.secho(f"  STATUS: success ({result.duration:.1f}s)", fg=colour)
            return

        click.secho(f"  STEP FAILED: {result.step.display_name}", fg=colour, bold=True)
        click.echo(f"  Exit code: {result.exit_code}")
        limit = 0 if self.verbose else settings.FAILURE_TAIL_CHARS
        if result.stdout.strip():
            click.echo("  stdout:")
            click.echo(_tail(result.stdout.rstrip(), limit))
        if result.stderr.strip():
            click.echo("  stderr:", err=True)
            click.echo(_tail(result.stderr.rstrip(), limit), err=True)
        if result.message:
            click.secho(f"  {result.message}", fg="yellow")

    def print_results(self, result: ExecutionResult) -> None:
        """Print final results summary."""
        click.echo("\n" + "=" * 40)
        click.echo("RESULTS")
        click.echo("=" * 40)
        for line, ok in self._summary_lines(result, depth=0):
            click.secho(line, fg=None if ok is None else ("green" if ok else "red"))

        counts: Dict[StepStatus, int] = {s: 0 for s in StepStatus}
        for step_result in result.all_step_results():
            counts[step_result.status] += 1
        click.echo(", ".join(f"{n} {s.value}" for s, n in counts.items()))

        if result.succeeded:
            click.secho("Pipeline SUCCEEDED", fg="green", bold=True)
        else:
            click.secho("Pipeline FAILED", fg="red", bold=True)

    def _summary_lines(self, result: ExecutionResult, depth: int) -> List[tuple]:
        lines = []
        for child in result.children:
            if child.skipped:
                status, ok = "SKIPPED", None
            else:
                status, ok = ("SUCCESS", True) if child.succeeded else ("FAILED", False)
            lines.append((f"{'  ' * (depth + 1)}{child.unit_name}: {status}", ok))
            lines.extend(self._summary_lines(child, depth + 1))
        return lines

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        click.secho(f"\nERROR: {title}", fg="red", bold=True, err=True)
        click.echo(message, err=True)
        for detail in details or []:
            click.echo(f"  {detail}", err=True)
        if suggestion:
            click.echo(f"\n{suggestion}", err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            click.echo(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                err=True,
            )
        else:
            click.echo(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        click.echo(message)

    def print_warning(self, message: str) -> None:
        click.secho(f"  WARNING: {message}", fg="yellow")

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            click.echo(f"[DEBUG] {message}", err=True)


# Global console instance (initialized by the CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
