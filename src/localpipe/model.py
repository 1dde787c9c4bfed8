# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union


class PipelineType(str, Enum):
    GITHUB_ACTIONS = "github-actions"
    AZURE_DEVOPS = "azure-devops"
    CODEMAGIC = "codemagic"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "PipelineType":
        if value is None:
            return cls.UNKNOWN
        for member in cls:
            if member.value == value.strip().lower():
                return member
        raise ValueError(
            f"Unknown pipeline type {value!r}. "
            f"Expected one of: {', '.join(t.value for t in cls if t is not cls.UNKNOWN)}"
        )


class StepKind(str, Enum):
    SCRIPT = "script"
    ACTION = "action"
    EMPTY = "empty"


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    SIMULATED = "simulated"


# ---------------------------------------------------------------------
# Step content
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ScriptContent:
    """Shell text run by the Script Executor."""
    text: str
    shell: str | None = None
    working_directory: str | None = None


@dataclass(frozen=True)
class ActionContent:
    """
    A platform action/task with no local equivalent.

    `description` is the simulation message the adapter picked for it
    (e.g. "Simulating Node.js setup (version: 18)").
    """
    identifier: str
    params: Mapping[str, Any] = field(default_factory=dict)
    description: str = ""


_CONTENT_FOR_KIND = {
    StepKind.SCRIPT: ScriptContent,
    StepKind.ACTION: ActionContent,
    StepKind.EMPTY: type(None),
}


@dataclass(frozen=True)
class Step:
    """A single executable item inside a leaf unit."""
    kind: StepKind
    display_name: str
    content: Union[ScriptContent, ActionContent, None] = None
    env: Dict[str, str] = field(default_factory=dict)
    condition: str | None = None
    continue_on_error: bool = False
    timeout_minutes: float | None = None
    warning: str | None = None
    # unresolved reference behind an Empty step
    error: Optional[Exception] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        expected = _CONTENT_FOR_KIND[self.kind]
        if not isinstance(self.content, expected):
            raise TypeError(
                f"Step {self.display_name!r} of kind {self.kind.value!r} "
                f"needs {expected.__name__} content, got {type(self.content).__name__}"
            )

    @classmethod
    def script(cls, display_name: str, text: str, *, shell: str | None = None,
               working_directory: str | None = None, **kwargs: Any) -> "Step":
        content = ScriptContent(text=text, shell=shell, working_directory=working_directory)
        return cls(kind=StepKind.SCRIPT, display_name=display_name, content=content, **kwargs)

    @classmethod
    def action(cls, display_name: str, identifier: str, *, params: Mapping[str, Any] | None = None,
               description: str = "", **kwargs: Any) -> "Step":
        content = ActionContent(
            identifier=identifier,
            params=dict(params or {}),
            description=description or f"Simulating action: {identifier}",
        )
        return cls(kind=StepKind.ACTION, display_name=display_name, content=content, **kwargs)

    @classmethod
    def empty(cls, display_name: str, *, warning: str | None = None,
              error: Exception | None = None, **kwargs: Any) -> "Step":
        if warning is None and error is not None:
            warning = getattr(error, "message", str(error))
        return cls(kind=StepKind.EMPTY, display_name=display_name, content=None,
                   warning=warning, error=error, **kwargs)


# ---------------------------------------------------------------------
# Units / workflow
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ExecutionUnit:
    """
    A stage or a job.

    Composite units hold `children`, leaf units hold `steps`; exactly one
    of the two is set. Both keep declaration order.
    """
    name: str
    display_name: str = ""
    condition: str | None = None
    env: Dict[str, str] = field(default_factory=dict)
    children: Optional[Tuple["ExecutionUnit", ...]] = None
    steps: Optional[Tuple[Step, ...]] = None
    timeout_minutes: float | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if (self.children is None) == (self.steps is None):
            raise ValueError(
                f"Unit {self.name!r} must have exactly one of children or steps"
            )
        if not self.display_name:
            object.__setattr__(self, "display_name", self.name)

    @classmethod
    def leaf(cls, name: str, steps: List[Step] | Tuple[Step, ...], **kwargs: Any) -> "ExecutionUnit":
        return cls(name=name, steps=tuple(steps), **kwargs)

    @classmethod
    def composite(cls, name: str, children: List["ExecutionUnit"] | Tuple["ExecutionUnit", ...],
                  **kwargs: Any) -> "ExecutionUnit":
        return cls(name=name, children=tuple(children), **kwargs)

    @property
    def is_composite(self) -> bool:
        return self.children is not None

    def iter_steps(self) -> Iterator[Step]:
        if self.steps is not None:
            yield from self.steps
        else:
            for child in self.children or ():
                yield from child.iter_steps()


MacroExpander = Callable[[str, Mapping[str, str]], str]


@dataclass(frozen=True)
class Workflow:
    """One normalized, runnable pipeline definition."""
    name: str | None
    vendor: PipelineType
    global_env: Dict[str, str] = field(default_factory=dict)
    units: Tuple[ExecutionUnit, ...] = ()
    working_directory: Path = field(default_factory=Path.cwd)
    metadata: Dict[str, Any] = field(default_factory=dict)
    expand_macros: Optional[MacroExpander] = None

    @property
    def display_name(self) -> str:
        return self.name or "Unnamed Workflow"

    def iter_steps(self) -> Iterator[Step]:
        for unit in self.units:
            yield from unit.iter_steps()


# ---------------------------------------------------------------------
# Environment scope
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ScopeStack:
    """
    Immutable stack of environment layers.

    Later layers override earlier keys. `push` returns a new stack so a
    traversal frame can never leak its layer to a sibling.
    """
    layers: Tuple[Mapping[str, str], ...] = ()

    def push(self, layer: Mapping[str, str] | None) -> "ScopeStack":
        return ScopeStack(self.layers + (dict(layer or {}),))

    def merged(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for layer in self.layers:
            out.update(layer)
        return out

    def environment(self, ambient: Mapping[str, str]) -> Dict[str, str]:
        env = dict(ambient)
        env.update(self.merged())
        return env


# ---------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------

@dataclass
class StepResult:
    step: Step
    status: StepStatus
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    message: str | None = None
    error: Optional[Exception] = None
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is not StepStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status is StepStatus.SKIPPED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.display_name,
            "kind": self.step.kind.value,
            "status": self.status.value,
            "succeeded": self.succeeded,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "message": self.message,
            "error": str(self.error) if self.error is not None else None,
            "duration": round(self.duration, 3),
        }


@dataclass
class ExecutionResult:
    """
    Result of one unit (or of the whole workflow at the root).

    A composite's `succeeded` is the AND of its children, computed while
    traversal short-circuits at the first failing child.
    """
    unit_name: str
    succeeded: bool = True
    skipped: bool = False
    step_results: List[StepResult] = field(default_factory=list)
    children: List["ExecutionResult"] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def all_step_results(self) -> List[StepResult]:
        out = list(self.step_results)
        for child in self.children:
            out.extend(child.all_step_results())
        return out

    def structure(self) -> Tuple[Any, ...]:
        """Unit/step names in execution order, without process output."""
        return (
            self.unit_name,
            tuple(r.step.display_name for r in self.step_results),
            tuple(c.structure() for c in self.children),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.unit_name,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "warnings": list(self.warnings),
            "steps": [r.to_dict() for r in self.step_results],
            "children": [c.to_dict() for c in self.children],
        }
