# report.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from . import settings
from .model import ExecutionResult, Workflow


def build_report(workflow: Workflow, result: ExecutionResult, pipeline_file: Path) -> Dict[str, Any]:
    return {
        "pipeline_file": str(pipeline_file),
        "type": workflow.vendor.value,
        "workflow": workflow.display_name,
        "working_directory": str(workflow.working_directory),
        "finished_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "succeeded": result.succeeded,
        "metadata": {str(k): str(v) for k, v in workflow.metadata.items()},
        "result": result.to_dict(),
    }


def write_report(
    output_dir: str | Path,
    workflow: Workflow,
    result: ExecutionResult,
    pipeline_file: Path,
) -> Path:
    """Write `<output_dir>/localpipe-report.json` and return its path."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    path = out / settings.REPORT_FILENAME
    report = build_report(workflow, result, pipeline_file)
    path.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
    return path
