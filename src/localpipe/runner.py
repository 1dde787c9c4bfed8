# runner.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from . import settings
from .adapters import FormatAdapter, create_adapter
from .detector import PipelineFile, detect_file, find_pipeline_files, project_root
from .engine import ExecutionEngine
from .errors import DetectionError, SchemaError, UnresolvedReferenceError
from .executor import ScriptExecutor
from .loader import load_document
from .model import PipelineType
from .report import write_report
from .selector import Choice, Selector, default_selector
from .ui.console import Console, get_console


@dataclass
class RunOptions:
    pipeline_type: Optional[PipelineType] = None
    workflow: Optional[str] = None
    verbose: bool = False
    stream_output: bool = False
    enforce_timeouts: bool = settings.ENFORCE_TIMEOUTS
    output_dir: Optional[Path] = None


@dataclass(frozen=True)
class WorkflowEntry:
    pipeline_file: PipelineFile
    key: str
    description: str


class _NothingSelected(Exception):
    pass


# ---------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------

def _document_name(path: Path) -> Optional[str]:
    try:
        document = load_document(path)
    except SchemaError:
        return None
    if isinstance(document, dict) and document.get("name"):
        return str(document["name"])
    return None


def _matches_github_workflow(path: Path, name: str) -> bool:
    wanted = name.strip().lower()
    if wanted in (path.stem.lower(), path.name.lower()):
        return True
    doc_name = _document_name(path)
    return doc_name is not None and doc_name.strip().lower() == wanted


def _candidates(directory: Path, options: RunOptions) -> List[PipelineFile]:
    found = find_pipeline_files(directory)
    if options.pipeline_type is not None:
        found = [f for f in found if f.type is options.pipeline_type]

    if not options.workflow or not any(f.type is PipelineType.GITHUB_ACTIONS for f in found):
        return found

    # the name picks a GitHub file or a CodeMagic workflow, never an unrelated file
    named = [
        f for f in found
        if f.type is PipelineType.CODEMAGIC
        or (f.type is PipelineType.GITHUB_ACTIONS and _matches_github_workflow(f.path, options.workflow))
    ]
    if not named:
        raise UnresolvedReferenceError(
            message=f"workflow '{options.workflow}' not found",
            details={"available": ", ".join(f.path.stem for f in found if f.type is PipelineType.GITHUB_ACTIONS)},
            reference=options.workflow,
        )
    github = [f for f in named if f.type is PipelineType.GITHUB_ACTIONS]
    return github or named


def _choose(selector: Selector, prompt: str, choices: List[Choice]) -> Any:
    if len(choices) == 1:
        return choices[0].value
    picked = selector(prompt, choices)
    if picked is None:
        raise _NothingSelected()
    return picked.value


def resolve_pipeline_file(
    input_path: str | Path,
    options: RunOptions,
    selector: Selector,
    console: Console,
) -> PipelineFile:
    """
    Pick the single pipeline file to run.

    Raises DetectionError when nothing usable is found and
    _NothingSelected when the selector declines.
    """
    p = Path(input_path)
    if not p.exists():
        raise DetectionError(message=f"path not found: {p}")

    if p.is_file():
        detected = detect_file(p)
        ptype = options.pipeline_type or detected
        if ptype is PipelineType.UNKNOWN:
            raise DetectionError(
                message=f"could not determine the pipeline type of {p}",
                details={"hint": "pass --type github-actions|azure-devops|codemagic"},
            )
        if options.pipeline_type and detected not in (options.pipeline_type, PipelineType.UNKNOWN):
            console.print_debug(f"{p} looks like {detected.value}, running as {ptype.value}")
        return PipelineFile(ptype, p)

    candidates = _candidates(p, options)
    if not candidates:
        details = {"directory": str(p)}
        if options.pipeline_type is not None:
            details["type"] = options.pipeline_type.value
        raise DetectionError(message="no pipeline files found", details=details)

    choices = [Choice(f"{f.path} ({f.type.value})", f) for f in candidates]
    return _choose(selector, "Multiple pipeline files found:", choices)


def _workflow_key(
    adapter: FormatAdapter,
    document: Any,
    options: RunOptions,
    selector: Selector,
    console: Console,
) -> Optional[str]:
    vendor = adapter.vendor
    if vendor is PipelineType.AZURE_DEVOPS:
        if options.workflow:
            console.print_warning(f"--workflow '{options.workflow}' is ignored for Azure DevOps pipelines")
        return None
    if vendor is not PipelineType.CODEMAGIC:
        return None

    if options.workflow:
        return options.workflow
    descriptions = adapter.describe_workflows(document)
    if not descriptions:
        return None
    choices = [Choice(f"{key} ({desc})", key) for key, desc in descriptions.items()]
    return _choose(selector, "Multiple workflows found:", choices)


# ---------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------

def run_pipeline(
    input_path: str | Path,
    options: Optional[RunOptions] = None,
    selector: Optional[Selector] = None,
    console: Optional[Console] = None,
    executor: Optional[ScriptExecutor] = None,
) -> bool:
    """
    detect -> select -> decode -> normalize -> run -> report.

    Returns overall success. A declined selection is a successful no-op,
    an unknown workflow name is reported and fails the run.
    SchemaError, DetectionError and ProcessLaunchError propagate.
    """
    options = options or RunOptions()
    console = console or Console(debug=get_console().debug, verbose=options.verbose)
    selector = selector or default_selector()
    input_p = Path(input_path)

    try:
        pipeline_file = resolve_pipeline_file(input_p, options, selector, console)
        console.print_debug(f"Selected {pipeline_file.path} ({pipeline_file.type.value})")

        document = load_document(pipeline_file.path)
        root = project_root(pipeline_file.path, input_p)
        adapter = create_adapter(pipeline_file.type, root)
        key = _workflow_key(adapter, document, options, selector, console)
        workflow = adapter.normalize(document, key)
    except _NothingSelected:
        console.print_info("No selection made - nothing to run.")
        return True
    except UnresolvedReferenceError as e:
        console.print_error(
            "Workflow not found",
            e.message,
            details=[f"{k}: {v}" for k, v in e.details.items()],
            suggestion=f"List the available workflows with:\n  localpipe list-workflows {input_p}",
        )
        return False

    console.print_run_started(
        pipeline_file=str(pipeline_file.path),
        vendor=workflow.vendor.value,
        workflow=workflow.display_name,
        working_directory=str(workflow.working_directory),
        unit_count=len(workflow.units),
    )
    console.print_metadata(workflow.metadata)
    console.print_variables(workflow.global_env)

    engine = ExecutionEngine(
        executor,
        stream_output=options.stream_output,
        enforce_timeouts=options.enforce_timeouts,
    )
    result = engine.run(
        workflow,
        on_unit_start=console.print_unit_start,
        on_unit_end=console.print_unit_end,
        on_step_start=console.print_step,
        on_step_end=lambda step_result, index: console.print_step_result(step_result),
    )

    console.print_results(result)
    if options.output_dir is not None:
        path = write_report(options.output_dir, workflow, result, pipeline_file.path)
        console.print_info(f"Report written to {path}")
    return result.succeeded


# ---------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------

def list_pipelines(directory: str | Path) -> List[PipelineFile]:
    d = Path(directory)
    if not d.is_dir():
        raise DetectionError(message=f"not a directory: {d}")
    return find_pipeline_files(d)


def list_workflows(path: str | Path, pipeline_type: Optional[PipelineType] = None) -> List[WorkflowEntry]:
    """Every runnable workflow in a pipeline file, or in every pipeline file of a directory."""
    p = Path(path)
    if p.is_file():
        ptype = pipeline_type or detect_file(p)
        if ptype is PipelineType.UNKNOWN:
            raise DetectionError(message=f"could not determine the pipeline type of {p}")
        files = [PipelineFile(ptype, p)]
    elif p.is_dir():
        files = [f for f in find_pipeline_files(p) if pipeline_type is None or f.type is pipeline_type]
    else:
        raise DetectionError(message=f"path not found: {p}")

    entries: List[WorkflowEntry] = []
    for f in files:
        if f.type is PipelineType.CODEMAGIC:
            adapter = create_adapter(f.type, project_root(f.path))
            for key, desc in adapter.describe_workflows(load_document(f.path)).items():
                entries.append(WorkflowEntry(f, key, desc))
        elif f.type is PipelineType.GITHUB_ACTIONS:
            entries.append(WorkflowEntry(f, f.path.stem, _document_name(f.path) or "Unnamed Workflow"))
        else:
            entries.append(WorkflowEntry(f, "default", _document_name(f.path) or "Unnamed Workflow"))
    return entries
