# schemas/__init__.py
"""Typed shapes of the three supported pipeline formats, as decoded from YAML."""
from __future__ import annotations

from typing import Annotated, Any, Dict

from pydantic import BaseModel, BeforeValidator, ConfigDict


def stringify(value: Any) -> str:
    """Render a YAML scalar the way CI systems export it to the environment."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _coerce_str_map(value: Any) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"expected a mapping of names to values, got {type(value).__name__}")
    return {str(k): stringify(v) for k, v in value.items()}


StrMap = Annotated[Dict[str, str], BeforeValidator(_coerce_str_map)]


class SchemaModel(BaseModel):
    # vendors add keys all the time; unknown keys are kept, never rejected
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)


from .github import GitHubJob, GitHubStep, GitHubWorkflowDoc  # noqa: E402
from .azure import AzureJob, AzurePipelineDoc, AzureStage, AzureStep  # noqa: E402
from .codemagic import CodeMagicConfig, CodeMagicScript, CodeMagicWorkflow  # noqa: E402

__all__ = [
    "SchemaModel",
    "StrMap",
    "stringify",
    "GitHubWorkflowDoc",
    "GitHubJob",
    "GitHubStep",
    "AzurePipelineDoc",
    "AzureStage",
    "AzureJob",
    "AzureStep",
    "CodeMagicConfig",
    "CodeMagicWorkflow",
    "CodeMagicScript",
]
