# adapters/base.py
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import SchemaError
from ..model import PipelineType, Workflow

M = TypeVar("M", bound=BaseModel)

_AZURE_MACRO_RE = re.compile(r"\$\(([^)]+)\)")
_GITHUB_ENV_RE = re.compile(r"\$\{\{\s*env\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def expand_azure_macros(text: str, variables: Mapping[str, str]) -> str:
    """Replace `$(Name)` with the variable's value; unknown names stay verbatim."""
    def repl(m: re.Match) -> str:
        value = variables.get(m.group(1).strip())
        return m.group(0) if value is None else str(value)

    return _AZURE_MACRO_RE.sub(repl, text)


def expand_github_env(text: str, variables: Mapping[str, str]) -> str:
    """Replace `${{ env.NAME }}` with the variable's value; unknown names stay verbatim."""
    def repl(m: re.Match) -> str:
        value = variables.get(m.group(1))
        return m.group(0) if value is None else str(value)

    return _GITHUB_ENV_RE.sub(repl, text)


def as_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "yes", "1")


def as_condition(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value).strip()
    return text or None


def as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def first_line(text: str, limit: int = 60) -> str:
    line = next((ln.strip() for ln in text.splitlines() if ln.strip()), "")
    return line if len(line) <= limit else line[: limit - 3] + "..."


class FormatAdapter(ABC):
    """
    Translates one vendor's decoded document into a normalized Workflow.

    `working_directory` is the project root scripts run in; adapters use
    it for synthesized agent/build variables.
    """
    vendor: PipelineType = PipelineType.UNKNOWN

    def __init__(self, working_directory: str | Path = "."):
        self.working_directory = Path(working_directory).resolve()

    @abstractmethod
    def normalize(self, document: Any, workflow: str | None = None) -> Workflow:
        ...

    def workflow_names(self, document: Any) -> List[str]:
        """Names of the independently runnable workflows in this document."""
        return ["default"]

    def _validate(self, model: Type[M], document: Any, where: str | None = None) -> M:
        """Validate the whole document, or a nested `where` part of it, into `model`."""
        if not isinstance(document, dict):
            raise SchemaError(
                message=f"{where} must be a mapping" if where
                else f"{self.vendor.value} document must be a mapping at the top level",
                details={"got": type(document).__name__},
            )
        try:
            return model.model_validate(document)
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            ]
            raise SchemaError(
                message=f"{where} is not valid" if where else f"document is not a valid {self.vendor.value} pipeline",
                details={"errors": "; ".join(problems)},
            ) from e
