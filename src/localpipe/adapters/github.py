# adapters/github.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..model import ExecutionUnit, PipelineType, Step, Workflow
from ..schemas.github import GitHubDefaults, GitHubJob, GitHubStep, GitHubWorkflowDoc
from .base import FormatAdapter, as_condition, as_flag, as_list, expand_github_env, first_line


def describe_action(action: str, params: Dict[str, Any]) -> str:
    """Simulation message for a `uses:` reference."""
    if action.startswith("actions/checkout"):
        return "Simulating checkout action"
    if action.startswith("actions/setup-node"):
        return f"Simulating Node.js setup (version: {params.get('node-version') or '18'})"
    if action.startswith("actions/setup-python"):
        return f"Simulating Python setup (version: {params.get('python-version') or '3.x'})"
    return f"Simulating action: {action}"


def _run_defaults(defaults: Optional[GitHubDefaults]) -> Dict[str, Optional[str]]:
    run = defaults.run if defaults is not None else None
    if run is None:
        return {}
    return {"shell": run.shell, "working_directory": run.working_directory}


class GitHubActionsAdapter(FormatAdapter):
    """
    GitHub Actions: `jobs` map -> one leaf unit per job, in declaration
    order. `needs` is kept as metadata only; jobs always run sequentially.
    """
    vendor = PipelineType.GITHUB_ACTIONS

    def normalize(self, document: Any, workflow: str | None = None) -> Workflow:
        doc = self._validate(GitHubWorkflowDoc, document)

        global_env = {
            "CI": "true",
            "GITHUB_WORKSPACE": str(self.working_directory),
        }
        global_env.update(doc.env)

        workflow_defaults = _run_defaults(doc.defaults)
        units = [
            self._job_unit(job_id, job, workflow_defaults)
            for job_id, job in doc.jobs.items()
        ]

        return Workflow(
            name=doc.name,
            vendor=self.vendor,
            global_env=global_env,
            units=tuple(units),
            working_directory=self.working_directory,
            metadata={"Jobs": ", ".join(doc.jobs) or "none"},
            expand_macros=expand_github_env,
        )

    def _job_unit(self, job_id: str, job: GitHubJob, workflow_defaults: Dict[str, Optional[str]]) -> ExecutionUnit:
        defaults = dict(workflow_defaults)
        defaults.update({k: v for k, v in _run_defaults(job.defaults).items() if v is not None})

        metadata: Dict[str, Any] = {}
        if job.runs_on is not None:
            metadata["Running on"] = ", ".join(as_list(job.runs_on))
        needs = as_list(job.needs)
        if needs:
            metadata["Needs (not enforced)"] = ", ".join(needs)
        if job.strategy:
            metadata["Strategy (not expanded)"] = ", ".join(job.strategy)

        if job.uses:
            steps = [
                Step.action(
                    job.name or job.uses,
                    job.uses,
                    params=job.with_ or {},
                    description=f"Simulating reusable workflow: {job.uses}",
                )
            ]
        else:
            steps = [self._step(s, defaults) for s in job.steps]

        return ExecutionUnit.leaf(
            job_id,
            steps,
            display_name=job.name or job_id,
            condition=as_condition(job.if_),
            env=dict(job.env),
            timeout_minutes=job.timeout_minutes,
            metadata=metadata,
        )

    def _step(self, step: GitHubStep, defaults: Dict[str, Optional[str]]) -> Step:
        common = dict(
            env=dict(step.env),
            condition=as_condition(step.if_),
            continue_on_error=as_flag(step.continue_on_error),
            timeout_minutes=step.timeout_minutes,
        )

        if step.uses:
            params = step.with_ or {}
            return Step.action(
                step.name or step.uses,
                step.uses,
                params=params,
                description=describe_action(step.uses, params),
                **common,
            )

        if step.run:
            return Step.script(
                step.name or first_line(step.run) or "Unnamed step",
                step.run,
                shell=step.shell or defaults.get("shell") or "bash",
                working_directory=step.working_directory or defaults.get("working_directory"),
                **common,
            )

        return Step.empty(
            step.name or "Unnamed step",
            warning="Step has no 'uses' or 'run' - skipping",
            **common,
        )
