# schemas/github.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator, model_validator

from . import SchemaModel, StrMap


class GitHubRunDefaults(SchemaModel):
    shell: Optional[str] = None
    working_directory: Optional[str] = Field(None, alias="working-directory")


class GitHubDefaults(SchemaModel):
    run: Optional[GitHubRunDefaults] = None


class GitHubStep(SchemaModel):
    id: Optional[str] = None
    name: Optional[str] = None
    uses: Optional[str] = None
    run: Optional[str] = None
    with_: Optional[Dict[str, Any]] = Field(None, alias="with")
    env: StrMap = Field(default_factory=dict)
    if_: Optional[Union[bool, str]] = Field(None, alias="if")
    continue_on_error: Union[bool, str] = Field(False, alias="continue-on-error")
    working_directory: Optional[str] = Field(None, alias="working-directory")
    shell: Optional[str] = None
    timeout_minutes: Optional[float] = Field(None, alias="timeout-minutes")


class GitHubJob(SchemaModel):
    name: Optional[str] = None
    runs_on: Any = Field(None, alias="runs-on")
    env: StrMap = Field(default_factory=dict)
    steps: List[GitHubStep] = Field(default_factory=list)
    needs: Union[str, List[str], None] = None
    if_: Optional[Union[bool, str]] = Field(None, alias="if")
    strategy: Optional[Dict[str, Any]] = None
    timeout_minutes: Optional[float] = Field(None, alias="timeout-minutes")
    continue_on_error: Union[bool, str] = Field(False, alias="continue-on-error")
    defaults: Optional[GitHubDefaults] = None
    # reusable workflow call
    uses: Optional[str] = None
    with_: Optional[Dict[str, Any]] = Field(None, alias="with")

    @field_validator("steps", mode="before")
    @classmethod
    def _null_steps(cls, value: Any) -> Any:
        return [] if value is None else value


class GitHubWorkflowDoc(SchemaModel):
    name: Optional[str] = None
    on: Any = None
    env: StrMap = Field(default_factory=dict)
    defaults: Optional[GitHubDefaults] = None
    jobs: Dict[str, GitHubJob]

    @model_validator(mode="before")
    @classmethod
    def _yaml11_on_key(cls, data: Any) -> Any:
        # PyYAML reads a bare `on:` key as boolean True
        if isinstance(data, dict) and True in data and "on" not in data:
            data = dict(data)
            data["on"] = data.pop(True)
        return data

    @field_validator("jobs", mode="before")
    @classmethod
    def _null_jobs(cls, value: Any) -> Any:
        return {} if value is None else value
