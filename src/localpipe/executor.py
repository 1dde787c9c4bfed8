# executor.py
from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from .errors import ProcessLaunchError

# exit code reported for a step killed by an enforced timeout (same as GNU timeout)
TIMEOUT_EXIT_CODE = 124

TOOL_HINTS = {
    "bash": "Install bash or fix PATH.",
    "sh": "A POSIX shell is required to run script steps.",
    "pwsh": "Install PowerShell 7 (pwsh) or fix PATH.",
    "powershell": "Install Windows PowerShell or PowerShell 7 (pwsh).",
    "python": "Install Python or fix PATH.",
    "cmd": "cmd is only available on Windows.",
}


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def shell_command(command: str, shell: str | None) -> Optional[List[str]]:
    """
    Turn a script + shell name into an argv.

    Returns None for the platform default shell, in which case the
    command runs through subprocess' own `shell=True`.
    """
    if shell is None or shell in ("", "default"):
        return None

    name = shell.strip()
    if name == "bash":
        return ["bash", "--noprofile", "--norc", "-eo", "pipefail", "-c", command]
    if name == "sh":
        return ["sh", "-e", "-c", command]
    if name in ("pwsh", "powershell"):
        binary = name
        if name == "powershell" and os.name != "nt" and shutil.which("powershell") is None:
            binary = "pwsh"
        return [binary, "-NoLogo", "-NoProfile", "-NonInteractive", "-Command", command]
    if name == "python":
        return ["python", "-c", command]
    if name == "cmd":
        return ["cmd", "/D", "/E:ON", "/V:OFF", "/S", "/C", command]

    # custom shells like "perl {0}" are not supported; fall back to the binary + -c
    return [name.split()[0], "-c", command]


class ScriptExecutor:
    """
    Synchronous external-process invocation.

    A non-zero exit is a normal result. Only a process that cannot be
    started raises (ProcessLaunchError).
    """

    def run(
        self,
        command: str,
        cwd: str | Path,
        env: Mapping[str, str],
        stream_output: bool = False,
        *,
        shell: str | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        cwd_p = Path(cwd)
        if not cwd_p.is_dir():
            raise ProcessLaunchError(
                message=f"working directory not found: {cwd_p}",
                command=command,
                cwd=str(cwd_p),
            )

        argv = shell_command(command, shell)
        try:
            proc = subprocess.run(
                argv if argv is not None else command,
                shell=argv is None,
                cwd=str(cwd_p),
                env=dict(env),
                text=True,
                encoding="utf-8",
                errors="replace",
                capture_output=not stream_output,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            return ProcessResult(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr) + f"\nTimed out after {timeout:.0f}s",
                timed_out=True,
            )
        except OSError as e:
            binary = argv[0] if argv is not None else "sh"
            raise ProcessLaunchError(
                message=f"could not start {binary}: {e.strerror or e}",
                details={"hint": TOOL_HINTS.get(binary, f"Install {binary} or fix PATH.")},
                command=command,
                cwd=str(cwd_p),
            ) from e

        if stream_output:
            return ProcessResult(exit_code=proc.returncode)
        return ProcessResult(
            exit_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )


def _as_text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
