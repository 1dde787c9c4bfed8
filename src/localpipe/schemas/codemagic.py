# schemas/codemagic.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator

from . import SchemaModel, StrMap


class CodeMagicScript(SchemaModel):
    name: Optional[str] = None
    script: str
    working_directory: Optional[str] = None
    ignore_failure: bool = False
    test_report: Optional[str] = None


class CodeMagicEnvironment(SchemaModel):
    groups: List[str] = Field(default_factory=list)
    vars: StrMap = Field(default_factory=dict)
    flutter: Optional[str] = None
    xcode: Optional[str] = None
    cocoapods: Optional[str] = None
    node: Optional[str] = None
    java: Optional[str] = None
    android_signing: Optional[List[str]] = None
    ios_signing: Any = None


class CodeMagicPublishing(SchemaModel):
    email: Any = None
    slack: Any = None
    google_play: Any = None
    app_store_connect: Any = None


class CodeMagicWorkflow(SchemaModel):
    name: Optional[str] = None
    instance_type: Optional[str] = None
    max_build_duration: Optional[int] = None
    environment: Optional[CodeMagicEnvironment] = None
    cache: Any = None
    triggering: Any = None
    # str | script object | list (alias of a list anchor)
    scripts: List[Any] = Field(default_factory=list)
    artifacts: List[str] = Field(default_factory=list)
    publishing: Optional[CodeMagicPublishing] = None
    integrations: Any = None

    @field_validator("scripts", "artifacts", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return [] if value is None else value


class CodeMagicDefinitions(SchemaModel):
    scripts: Union[List[Any], Dict[str, Any]] = Field(default_factory=list)


class CodeMagicConfig(SchemaModel):
    definitions: Optional[CodeMagicDefinitions] = None
    workflows: Dict[str, CodeMagicWorkflow]

    @field_validator("workflows", mode="before")
    @classmethod
    def _null_workflows(cls, value: Any) -> Any:
        return {} if value is None else value
