# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional


@dataclass(eq=False)
class PipelineError(Exception):
    """
    Structured pipeline error with enough context for:
      - clean CLI output
      - the JSON report
      - debugging without full tracebacks
    """
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    kind: ClassVar[str] = "pipeline_error"

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass(eq=False)
class SchemaError(PipelineError):
    """The document does not match any recognized shape for its vendor."""
    kind: ClassVar[str] = "schema_error"


@dataclass(eq=False)
class DetectionError(PipelineError):
    """No pipeline file or vendor could be determined for the input path."""
    kind: ClassVar[str] = "detection_error"


@dataclass(eq=False)
class UnresolvedReferenceError(PipelineError):
    """A named script, template or workflow reference could not be resolved."""
    reference: str = ""

    kind: ClassVar[str] = "reference_error"


@dataclass(eq=False)
class ProcessLaunchError(PipelineError):
    """The shell or interpreter itself could not be started."""
    command: str = ""
    cwd: Optional[str] = None

    kind: ClassVar[str] = "process_launch_error"


@dataclass(eq=False)
class ScriptFailure(PipelineError):
    """A script step ran and exited non-zero. Recorded, never raised by the engine."""
    unit: str = ""
    step: str = ""
    exit_code: Optional[int] = None

    kind: ClassVar[str] = "script_failure"

    def __str__(self) -> str:
        return f"[{self.unit}] step '{self.step}' failed (exit={self.exit_code}): {self.message}"
