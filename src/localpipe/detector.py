# detector.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from .errors import SchemaError
from .loader import load_document
from .model import PipelineType

YAML_SUFFIXES = (".yml", ".yaml")
GITHUB_WORKFLOWS_DIR = Path(".github") / "workflows"
AZURE_FILES = ("azure-pipelines.yml", "azure-pipelines.yaml", ".azure-pipelines.yml")
CODEMAGIC_FILES = ("codemagic.yaml", "codemagic.yml", ".codemagic.yaml", ".codemagic.yml")

_MOBILE_ENV_KEYS = ("flutter", "xcode", "android_signing")


@dataclass(frozen=True)
class PipelineFile:
    type: PipelineType
    path: Path


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in YAML_SUFFIXES


def _is_workflows_dir(directory: Path) -> bool:
    return directory.resolve().parts[-2:] == (".github", "workflows")


def _in_github_workflows(path: Path) -> bool:
    return _is_workflows_dir(path.parent)


def find_github_workflow_files(path: str | Path) -> List[Path]:
    """Workflow files in `<path>/.github/workflows` and `<parent>/.github/workflows`."""
    p = Path(path)
    base = p if p.is_dir() else p.parent
    dirs = [base / GITHUB_WORKFLOWS_DIR]
    if _in_github_workflows(p) or (p.is_dir() and _is_workflows_dir(p)):
        dirs.insert(0, p if p.is_dir() else p.parent)

    files: List[Path] = []
    seen = set()
    for d in dirs:
        if not d.is_dir():
            continue
        for f in sorted(d.iterdir()):
            if f.is_file() and _is_yaml(f) and f.resolve() not in seen:
                seen.add(f.resolve())
                files.append(f)
    return files


def find_pipeline_files(directory: str | Path) -> List[PipelineFile]:
    """Every pipeline file in a directory, GitHub first, then Azure, then CodeMagic."""
    d = Path(directory)
    if not d.is_dir():
        return []

    results = [PipelineFile(PipelineType.GITHUB_ACTIONS, f) for f in find_github_workflow_files(d)]
    for name in AZURE_FILES:
        if (d / name).is_file():
            results.append(PipelineFile(PipelineType.AZURE_DEVOPS, d / name))
    for name in CODEMAGIC_FILES:
        if (d / name).is_file():
            results.append(PipelineFile(PipelineType.CODEMAGIC, d / name))
    return results


def detect_from_content(document: Any) -> PipelineType:
    if not isinstance(document, dict):
        return PipelineType.UNKNOWN

    # PyYAML turns a bare `on:` key into True
    has_on = "on" in document or True in document
    if has_on and "jobs" in document:
        return PipelineType.GITHUB_ACTIONS
    if any(k in document for k in ("trigger", "pr", "pool", "stages")):
        return PipelineType.AZURE_DEVOPS
    if "workflows" in document or "definitions" in document:
        return PipelineType.CODEMAGIC
    env = document.get("environment")
    if isinstance(env, dict) and any(k in env for k in _MOBILE_ENV_KEYS):
        return PipelineType.CODEMAGIC
    if has_on:
        return PipelineType.GITHUB_ACTIONS
    if "jobs" in document or "steps" in document:
        return PipelineType.AZURE_DEVOPS
    return PipelineType.UNKNOWN


def detect_file(path: str | Path) -> PipelineType:
    p = Path(path)
    if not p.is_file():
        return PipelineType.UNKNOWN
    if _in_github_workflows(p):
        return PipelineType.GITHUB_ACTIONS
    if p.name in AZURE_FILES:
        return PipelineType.AZURE_DEVOPS
    if p.name in CODEMAGIC_FILES:
        return PipelineType.CODEMAGIC
    try:
        return detect_from_content(load_document(p))
    except SchemaError:
        return PipelineType.UNKNOWN


def detect(path: str | Path) -> PipelineType:
    """
    File suffix/location heuristics first, then YAML content.

    A directory is classified by the first pipeline file found in it;
    a missing path falls back to its parent directory.
    """
    p = Path(path)
    if _is_yaml(p):
        return detect_file(p)
    if not p.exists() and p.parent.is_dir():
        p = p.parent
    if p.is_dir():
        found = find_pipeline_files(p)
        return found[0].type if found else PipelineType.UNKNOWN
    return PipelineType.UNKNOWN


def project_root(pipeline_file: Path, input_path: Optional[Path] = None) -> Path:
    """Directory scripts run in: the input dir, or the repo root for .github/workflows files."""
    if input_path is not None and input_path.is_dir() and not _is_workflows_dir(input_path):
        return input_path.resolve()
    f = pipeline_file.resolve()
    if _in_github_workflows(f):
        return f.parent.parent.parent
    return f.parent
