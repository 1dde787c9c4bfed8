# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from . import settings
from .errors import PipelineError
from .model import PipelineType
from .runner import RunOptions, list_pipelines, list_workflows, run_pipeline
from .ui.console import Console, get_console, set_console

TYPE_CHOICES = [t.value for t in PipelineType if t is not PipelineType.UNKNOWN]

_ERROR_TITLES = {
    "schema_error": "Invalid pipeline document",
    "detection_error": "No pipeline found",
    "reference_error": "Unresolved reference",
    "process_launch_error": "Could not start process",
}


def _pipeline_type(value: str | None) -> PipelineType | None:
    return PipelineType.parse(value) if value else None


def _fail(ctx: click.Context, exc: BaseException) -> None:
    """Report an aborted command and exit 1."""
    console = get_console()
    if isinstance(exc, PipelineError):
        console.print_error(
            _ERROR_TITLES.get(exc.kind, "Pipeline error"),
            exc.message,
            details=[f"{k}: {v}" for k, v in exc.details.items()],
        )
        if ctx.obj.get("debug", False):
            console.print_exception(exc)
    else:
        console.print_exception(exc)
    sys.exit(1)


@click.group(context_settings={"auto_envvar_prefix": "LOCALPIPE"})
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """localpipe: run GitHub Actions, Azure DevOps and CodeMagic pipelines locally."""
    set_console(Console(debug=debug))
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("input_path", default=".", type=click.Path(path_type=Path))
@click.option("-t", "--type", "pipeline_type", type=click.Choice(TYPE_CHOICES), default=None,
              help="Force the pipeline type instead of detecting it")
@click.option("-w", "--workflow", default=None,
              help="Workflow to run (CodeMagic workflow key or GitHub workflow file/name)")
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Show script text and full output of failed steps")
@click.option("--stream", "stream_output", is_flag=True, default=False,
              help="Forward step output live instead of capturing it")
@click.option("--enforce-timeouts", is_flag=True, default=settings.ENFORCE_TIMEOUTS,
              help="Kill steps that exceed their declared timeout")
@click.option("-o", "--output", "output_dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory to write localpipe-report.json into")
@click.pass_context
def run(ctx, input_path, pipeline_type, workflow, verbose, stream_output, enforce_timeouts, output_dir):
    """Run a pipeline file, or the pipeline found in a directory."""
    console = get_console()

    options = RunOptions(
        pipeline_type=_pipeline_type(pipeline_type),
        workflow=workflow,
        verbose=verbose,
        stream_output=stream_output,
        enforce_timeouts=enforce_timeouts,
        output_dir=output_dir,
    )
    try:
        ok = run_pipeline(input_path, options)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        _fail(ctx, e)
    sys.exit(0 if ok else 1)


@cli.command(name="list")
@click.argument("directory", default=".", type=click.Path(path_type=Path))
@click.pass_context
def list_cmd(ctx, directory):
    """List the pipeline files found in a directory."""
    console = get_console()
    try:
        files = list_pipelines(directory)
    except Exception as e:
        _fail(ctx, e)

    if not files:
        console.print_info(f"No pipeline files found in {directory}")
        return
    console.print_header(f"Pipeline files in {directory}")
    for f in files:
        console.print_info(f"  {f.type.value:<15} {f.path}")


@cli.command(name="list-workflows")
@click.argument("path", default=".", type=click.Path(path_type=Path))
@click.option("-t", "--type", "pipeline_type", type=click.Choice(TYPE_CHOICES), default=None,
              help="Force the pipeline type instead of detecting it")
@click.pass_context
def list_workflows_cmd(ctx, path, pipeline_type):
    """List the runnable workflows in a pipeline file or directory."""
    console = get_console()
    try:
        entries = list_workflows(path, _pipeline_type(pipeline_type))
    except Exception as e:
        _fail(ctx, e)

    if not entries:
        console.print_info(f"No workflows found in {path}")
        return
    current = None
    for entry in entries:
        if entry.pipeline_file != current:
            current = entry.pipeline_file
            console.print_header(f"{current.path} ({current.type.value})")
        console.print_info(f"  {entry.key}: {entry.description}")


if __name__ == "__main__":
    cli()
