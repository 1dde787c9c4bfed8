from .engine import ExecutionEngine
from .errors import (
    DetectionError,
    PipelineError,
    ProcessLaunchError,
    SchemaError,
    ScriptFailure,
    UnresolvedReferenceError,
)
from .executor import ProcessResult, ScriptExecutor
from .model import (
    ExecutionResult,
    ExecutionUnit,
    PipelineType,
    ScopeStack,
    Step,
    StepKind,
    StepResult,
    StepStatus,
    Workflow,
)
from .runner import RunOptions, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "ExecutionEngine",
    "ScriptExecutor",
    "ProcessResult",
    "Workflow",
    "ExecutionUnit",
    "Step",
    "StepKind",
    "StepStatus",
    "StepResult",
    "ExecutionResult",
    "ScopeStack",
    "PipelineType",
    "RunOptions",
    "run_pipeline",
    "PipelineError",
    "SchemaError",
    "DetectionError",
    "UnresolvedReferenceError",
    "ProcessLaunchError",
    "ScriptFailure",
]
