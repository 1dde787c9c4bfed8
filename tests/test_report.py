import json

from localpipe.model import ExecutionResult, ExecutionUnit, PipelineType, Step, StepResult, StepStatus, Workflow
from localpipe.report import build_report, write_report


def make():
    step = Step.script("build", "make")
    wf = Workflow(
        name="CI",
        vendor=PipelineType.CODEMAGIC,
        units=(ExecutionUnit.leaf("job", [step]),),
        metadata={"Instance Type": "linux"},
    )
    result = ExecutionResult("CI", children=[
        ExecutionResult("job", succeeded=False, step_results=[
            StepResult(step, StepStatus.FAILED, exit_code=2, stderr="boom"),
        ]),
    ], succeeded=False)
    return wf, result


def test_build_report(tmp_path):
    wf, result = make()
    report = build_report(wf, result, tmp_path / "codemagic.yaml")

    assert report["type"] == "codemagic"
    assert report["succeeded"] is False
    assert report["metadata"] == {"Instance Type": "linux"}
    step = report["result"]["children"][0]["steps"][0]
    assert step["exit_code"] == 2
    assert step["stderr"] == "boom"


def test_write_report_creates_directory(tmp_path):
    wf, result = make()
    path = write_report(tmp_path / "nested" / "out", wf, result, tmp_path / "codemagic.yaml")

    assert path.name == "localpipe-report.json"
    assert json.loads(path.read_text())["workflow"] == "CI"
