import json

import pytest

from localpipe.errors import DetectionError, SchemaError
from localpipe.model import PipelineType
from localpipe.runner import RunOptions, list_pipelines, list_workflows, run_pipeline
from localpipe.selector import first_selector, no_selector
from localpipe.ui.console import Console

GITHUB_CI = """
name: CI
on: push
env:
  GREETING: hello
jobs:
  build:
    steps:
      - uses: actions/checkout@v4
      - run: echo ${{ env.GREETING }}
"""

GITHUB_RELEASE = """
name: Release
on: push
jobs:
  publish:
    steps:
      - run: ./publish.sh
"""

CODEMAGIC = """
workflows:
  android:
    name: Android
    scripts:
      - ./gradlew build
  ios:
    name: iOS
    scripts:
      - xcodebuild
"""


def run(path, fake_executor, selector=no_selector, **options):
    return run_pipeline(path, RunOptions(**options), selector=selector, console=Console(), executor=fake_executor)


def test_runs_single_github_file(tmp_path, write_file, fake_executor):
    path = write_file(".github/workflows/ci.yml", GITHUB_CI)

    assert run(path, fake_executor) is True
    assert fake_executor.commands == ["echo hello"]
    assert fake_executor.calls[0].cwd == tmp_path.resolve()
    assert fake_executor.calls[0].shell == "bash"


def test_failing_pipeline_returns_false(write_file, fake_executor):
    fake_executor.exit_codes["publish"] = 1
    path = write_file(".github/workflows/release.yml", GITHUB_RELEASE)
    assert run(path, fake_executor) is False


def test_multiple_files_and_no_selection_is_a_noop(tmp_path, write_file, fake_executor):
    write_file(".github/workflows/ci.yml", GITHUB_CI)
    write_file(".github/workflows/release.yml", GITHUB_RELEASE)

    assert run(tmp_path, fake_executor, selector=no_selector) is True
    assert fake_executor.calls == []


def test_selector_picks_the_file(tmp_path, write_file, fake_executor):
    write_file(".github/workflows/ci.yml", GITHUB_CI)
    write_file(".github/workflows/release.yml", GITHUB_RELEASE)

    assert run(tmp_path, fake_executor, selector=first_selector) is True
    assert fake_executor.commands == ["echo hello"]


@pytest.mark.parametrize("name", ["release", "Release", "release.yml"])
def test_github_workflow_option_selects_file(tmp_path, write_file, fake_executor, name):
    write_file(".github/workflows/ci.yml", GITHUB_CI)
    write_file(".github/workflows/release.yml", GITHUB_RELEASE)

    run(tmp_path, fake_executor, workflow=name)
    assert fake_executor.commands == ["./publish.sh"]


def test_forced_type_filters_candidates(tmp_path, write_file, fake_executor):
    write_file(".github/workflows/ci.yml", GITHUB_CI)
    write_file("azure-pipelines.yml", "steps:\n  - script: echo azure\n")

    assert run(tmp_path, fake_executor, pipeline_type=PipelineType.AZURE_DEVOPS) is True
    assert fake_executor.commands == ["echo azure"]


def test_codemagic_workflow_option(tmp_path, write_file, fake_executor):
    write_file("codemagic.yaml", CODEMAGIC)

    assert run(tmp_path, fake_executor, workflow="ios") is True
    assert fake_executor.commands == ["xcodebuild"]


def test_codemagic_workflow_selector(tmp_path, write_file, fake_executor):
    write_file("codemagic.yaml", CODEMAGIC)

    assert run(tmp_path, fake_executor, selector=first_selector) is True
    assert fake_executor.commands == ["./gradlew build"]


def test_codemagic_unknown_workflow_fails(tmp_path, write_file, fake_executor, capsys):
    write_file("codemagic.yaml", CODEMAGIC)

    assert run(tmp_path, fake_executor, workflow="windows") is False
    assert fake_executor.calls == []
    assert "windows" in capsys.readouterr().err


def test_azure_ignores_workflow_option(tmp_path, write_file, fake_executor, capsys):
    write_file("azure-pipelines.yml", "steps:\n  - script: echo $(Build.Repository.Name)\n")

    assert run(tmp_path, fake_executor, workflow="anything") is True
    assert fake_executor.commands == [f"echo {tmp_path.resolve().name}"]
    assert "ignored" in capsys.readouterr().out


def test_no_pipeline_files_is_detection_error(tmp_path, fake_executor):
    with pytest.raises(DetectionError):
        run(tmp_path, fake_executor)


def test_missing_path_is_detection_error(tmp_path, fake_executor):
    with pytest.raises(DetectionError):
        run(tmp_path / "nope.yml", fake_executor)


def test_unknown_file_type_is_detection_error(write_file, fake_executor):
    path = write_file("random.yml", "name: hello\n")
    with pytest.raises(DetectionError):
        run(path, fake_executor)


def test_invalid_document_is_schema_error(write_file, fake_executor):
    path = write_file("azure-pipelines.yml", "trigger: none\n")
    with pytest.raises(SchemaError):
        run(path, fake_executor)


def test_report_is_written(tmp_path, write_file, fake_executor):
    path = write_file(".github/workflows/ci.yml", GITHUB_CI)
    out = tmp_path / "out"

    run(path, fake_executor, output_dir=out)
    report = json.loads((out / "localpipe-report.json").read_text())

    assert report["succeeded"] is True
    assert report["type"] == "github-actions"
    assert report["workflow"] == "CI"
    job = report["result"]["children"][0]
    assert [s["status"] for s in job["steps"]] == ["simulated", "succeeded"]


def test_list_pipelines(tmp_path, write_file):
    write_file("codemagic.yaml", CODEMAGIC)
    assert [f.type for f in list_pipelines(tmp_path)] == [PipelineType.CODEMAGIC]
    with pytest.raises(DetectionError):
        list_pipelines(tmp_path / "missing")


def test_list_workflows(tmp_path, write_file):
    write_file(".github/workflows/ci.yml", GITHUB_CI)
    write_file("codemagic.yaml", CODEMAGIC)

    entries = [(e.key, e.description) for e in list_workflows(tmp_path)]
    assert entries == [("ci", "CI"), ("android", "Android"), ("ios", "iOS")]

    only_codemagic = list_workflows(tmp_path, PipelineType.CODEMAGIC)
    assert [e.key for e in only_codemagic] == ["android", "ios"]


def test_github_workflow_option_without_match_fails(tmp_path, write_file, fake_executor, capsys):
    write_file(".github/workflows/ci.yml", GITHUB_CI)

    assert run(tmp_path, fake_executor, workflow="deploy") is False
    assert fake_executor.calls == []
    assert "deploy" in capsys.readouterr().err


def test_workflow_option_falls_through_to_codemagic(tmp_path, write_file, fake_executor):
    write_file(".github/workflows/ci.yml", GITHUB_CI)
    write_file("codemagic.yaml", CODEMAGIC)

    assert run(tmp_path, fake_executor, workflow="ios") is True
    assert fake_executor.commands == ["xcodebuild"]


def test_verbose_option_builds_a_verbose_console(write_file, fake_executor, capsys):
    path = write_file(".github/workflows/ci.yml", GITHUB_CI)

    run_pipeline(path, RunOptions(verbose=True), selector=no_selector, executor=fake_executor)
    assert "| echo ${{ env.GREETING }}" in capsys.readouterr().out
