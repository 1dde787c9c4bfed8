# tests/conftest.py
"""
Shared fixtures.

FakeExecutor stands in for ScriptExecutor so engine and adapter tests
never start a process; tests that need a real shell use /bin/sh.
"""
from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import pytest
import yaml

from localpipe.executor import ProcessResult


@dataclass
class Call:
    command: str
    cwd: Path
    env: Dict[str, str]
    stream_output: bool
    shell: Optional[str]
    timeout: Optional[float]


@dataclass
class FakeExecutor:
    """
    Records every call. A command containing a key of `exit_codes`
    exits with that code; everything else exits 0 and echoes the command.
    """
    exit_codes: Dict[str, int] = field(default_factory=dict)
    calls: List[Call] = field(default_factory=list)

    def run(self, command, cwd, env: Mapping[str, str], stream_output=False, *, shell=None, timeout=None):
        self.calls.append(Call(command, Path(cwd), dict(env), stream_output, shell, timeout))
        for needle, code in self.exit_codes.items():
            if needle in command:
                return ProcessResult(exit_code=code, stdout="", stderr=f"{needle} failed")
        return ProcessResult(exit_code=0, stdout=command)

    @property
    def commands(self) -> List[str]:
        return [c.command for c in self.calls]


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


def load_yaml(text: str):
    return yaml.safe_load(textwrap.dedent(text))


@pytest.fixture
def yaml_doc():
    return load_yaml


@pytest.fixture
def write_file(tmp_path):
    """write_file("a/b.yml", text) -> Path, relative to tmp_path."""
    def _write(relative: str, text: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    return _write
