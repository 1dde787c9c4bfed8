# schemas/azure.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator

from . import SchemaModel, StrMap

# mapping form, or list of {name, value} / {group} / {template} entries
Variables = Union[Dict[str, Any], List[Dict[str, Any]], None]


class AzureStep(SchemaModel):
    task: Optional[str] = None
    script: Optional[str] = None
    bash: Optional[str] = None
    powershell: Optional[str] = None
    pwsh: Optional[str] = None
    checkout: Optional[str] = None
    template: Optional[str] = None
    name: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    inputs: Dict[str, Any] = Field(default_factory=dict)
    condition: Optional[str] = None
    continue_on_error: bool = Field(False, alias="continueOnError")
    enabled: bool = True
    env: StrMap = Field(default_factory=dict)
    working_directory: Optional[str] = Field(None, alias="workingDirectory")
    timeout_in_minutes: Optional[float] = Field(None, alias="timeoutInMinutes")

    @field_validator("inputs", mode="before")
    @classmethod
    def _null_inputs(cls, value: Any) -> Any:
        return {} if value is None else value


class AzureJob(SchemaModel):
    job: Optional[str] = None
    deployment: Optional[str] = None
    template: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    depends_on: Union[str, List[str], None] = Field(None, alias="dependsOn")
    condition: Optional[str] = None
    pool: Any = None
    variables: Variables = None
    steps: List[AzureStep] = Field(default_factory=list)
    strategy: Any = None
    environment: Any = None
    timeout_in_minutes: Optional[float] = Field(None, alias="timeoutInMinutes")

    @field_validator("steps", mode="before")
    @classmethod
    def _null_steps(cls, value: Any) -> Any:
        return [] if value is None else value


class AzureStage(SchemaModel):
    stage: Optional[str] = None
    template: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    depends_on: Union[str, List[str], None] = Field(None, alias="dependsOn")
    condition: Optional[str] = None
    variables: Variables = None
    pool: Any = None
    jobs: List[AzureJob] = Field(default_factory=list)

    @field_validator("jobs", mode="before")
    @classmethod
    def _null_jobs(cls, value: Any) -> Any:
        return [] if value is None else value


class AzurePipelineDoc(SchemaModel):
    name: Optional[str] = None
    trigger: Any = None
    pr: Any = None
    pool: Any = None
    resources: Any = None
    variables: Variables = None
    stages: Optional[List[AzureStage]] = None
    jobs: Optional[List[AzureJob]] = None
    steps: Optional[List[AzureStep]] = None
