from __future__ import annotations

from pathlib import Path
from typing import Dict, Type

from ..model import PipelineType
from .azure import AzurePipelinesAdapter
from .base import FormatAdapter
from .codemagic import CodeMagicAdapter
from .github import GitHubActionsAdapter

ADAPTERS: Dict[PipelineType, Type[FormatAdapter]] = {
    PipelineType.GITHUB_ACTIONS: GitHubActionsAdapter,
    PipelineType.AZURE_DEVOPS: AzurePipelinesAdapter,
    PipelineType.CODEMAGIC: CodeMagicAdapter,
}


def create_adapter(pipeline_type: PipelineType, working_directory: str | Path = ".") -> FormatAdapter:
    try:
        cls = ADAPTERS[pipeline_type]
    except KeyError:
        raise ValueError(f"No adapter for pipeline type {pipeline_type.value!r}") from None
    return cls(working_directory)


__all__ = [
    "ADAPTERS",
    "FormatAdapter",
    "GitHubActionsAdapter",
    "AzurePipelinesAdapter",
    "CodeMagicAdapter",
    "create_adapter",
]
