import os
import shutil

import pytest

from localpipe.errors import ProcessLaunchError
from localpipe.executor import TIMEOUT_EXIT_CODE, ScriptExecutor, shell_command

pytestmark = pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")


def env(**extra):
    out = dict(os.environ)
    out.update(extra)
    return out


def test_shell_command_argv():
    assert shell_command("echo hi", None) is None
    assert shell_command("echo hi", "sh") == ["sh", "-e", "-c", "echo hi"]
    assert shell_command("echo hi", "bash")[:2] == ["bash", "--noprofile"]
    assert shell_command("print(1)", "python") == ["python", "-c", "print(1)"]
    assert shell_command("echo hi", "zsh") == ["zsh", "-c", "echo hi"]


def test_captures_stdout_and_stderr(tmp_path):
    result = ScriptExecutor().run("echo out; echo err >&2", tmp_path, env(), shell="sh")
    assert result.ok
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"


def test_non_zero_exit_is_a_result_not_an_error(tmp_path):
    result = ScriptExecutor().run("exit 3", tmp_path, env(), shell="sh")
    assert result.exit_code == 3
    assert not result.ok


def test_runs_in_cwd_with_env(tmp_path):
    result = ScriptExecutor().run('pwd; echo "$GREETING"', tmp_path, env(GREETING="hello"), shell="sh")
    lines = result.stdout.split()
    assert os.path.realpath(lines[0]) == os.path.realpath(tmp_path)
    assert lines[1] == "hello"


def test_default_shell(tmp_path):
    result = ScriptExecutor().run("echo default", tmp_path, env())
    assert result.stdout.strip() == "default"


def test_stream_output_returns_empty_buffers(tmp_path):
    result = ScriptExecutor().run("echo streamed", tmp_path, env(), stream_output=True, shell="sh")
    assert result.ok
    assert result.stdout == ""
    assert result.stderr == ""


def test_missing_working_directory_is_a_launch_error(tmp_path):
    with pytest.raises(ProcessLaunchError) as info:
        ScriptExecutor().run("true", tmp_path / "missing", env(), shell="sh")
    assert "working directory not found" in info.value.message


def test_missing_shell_is_a_launch_error(tmp_path):
    with pytest.raises(ProcessLaunchError) as info:
        ScriptExecutor().run("true", tmp_path, env(), shell="definitely-not-a-shell-xyz")
    assert info.value.details["hint"]


def test_timeout(tmp_path):
    result = ScriptExecutor().run("sleep 5", tmp_path, env(), shell="sh", timeout=0.2)
    assert result.timed_out
    assert result.exit_code == TIMEOUT_EXIT_CODE


def test_output_that_is_not_utf8_is_replaced(tmp_path):
    result = ScriptExecutor().run(r"printf '\377\376ok'", tmp_path, env(), shell="sh")
    assert result.exit_code == 0
    assert result.stdout.endswith("ok")
    assert "\ufffd" in result.stdout
