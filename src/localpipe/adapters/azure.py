# adapters/azure.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..errors import SchemaError, UnresolvedReferenceError
from ..model import ExecutionUnit, PipelineType, Step, Workflow
from ..schemas import stringify
from ..schemas.azure import AzureJob, AzurePipelineDoc, AzureStage, AzureStep, Variables
from .base import FormatAdapter, as_list, expand_azure_macros, first_line

DEFAULT_STAGE = "__default"
DEFAULT_JOB = "Job"


def agent_name(variable: str) -> str:
    """Build.SourcesDirectory -> BUILD_SOURCESDIRECTORY"""
    return variable.replace(".", "_").upper()


def describe_task(task: str, inputs: Dict[str, Any]) -> str:
    name = task.split("@", 1)[0]
    if name == "NodeTool":
        return f"Simulating Node.js setup (version: {inputs.get('versionSpec') or '18.x'})"
    if name == "UsePythonVersion":
        return f"Simulating Python setup (version: {inputs.get('versionSpec') or '3.x'})"
    if name == "PublishBuildArtifacts":
        return f"Simulating artifact publication: {inputs.get('ArtifactName') or 'drop'}"
    if name == "DownloadBuildArtifacts":
        return f"Simulating artifact download: {inputs.get('artifactName') or 'drop'}"
    return f"Simulating task: {task}"


def _dig(data: Any, *keys: str) -> Any:
    """data[k1][k2]... where every level must be a mapping; None when a key is absent."""
    path = []
    for key in keys:
        if data is None:
            return None
        if not isinstance(data, dict):
            raise SchemaError(
                message=f"{'.'.join(path) or 'strategy'} must be a mapping",
                details={"got": type(data).__name__},
            )
        data = data.get(key)
        path.append(key)
    return data


def pool_name(pool: Any) -> Optional[str]:
    if pool is None:
        return None
    if isinstance(pool, dict):
        return pool.get("vmImage") or pool.get("name") or "default"
    return str(pool)


class AzurePipelinesAdapter(FormatAdapter):
    """
    Azure DevOps: a root with `stages`, `jobs` or bare `steps` always
    normalizes to stage -> job -> steps, with implicit `__default` stage
    and `Job` job where the document leaves them out.
    """
    vendor = PipelineType.AZURE_DEVOPS

    def __init__(self, working_directory="."):
        super().__init__(working_directory)
        self.warnings: List[str] = []

    def normalize(self, document: Any, workflow: str | None = None) -> Workflow:
        doc = self._validate(AzurePipelineDoc, document)
        self.warnings = []

        present = [k for k in ("stages", "jobs", "steps") if getattr(doc, k) is not None]
        if not present:
            raise SchemaError(message="Azure pipeline has no stages, jobs or steps")
        if len(present) > 1:
            raise SchemaError(
                message="Azure pipeline root may only have one of stages, jobs or steps",
                details={"found": ", ".join(present)},
            )

        global_env = self._variables(doc.variables)
        global_env.update(self._agent_variables())
        global_env = self._with_agent_names(global_env)

        if doc.stages is not None:
            units = [self._stage_unit(i, s) for i, s in enumerate(doc.stages)]
        elif doc.jobs is not None:
            units = [ExecutionUnit.composite(
                DEFAULT_STAGE,
                [self._job_unit(i, j) for i, j in enumerate(doc.jobs)],
            )]
        else:
            units = [ExecutionUnit.composite(
                DEFAULT_STAGE,
                [ExecutionUnit.leaf(DEFAULT_JOB, [self._step(s) for s in doc.steps])],
            )]

        metadata: Dict[str, Any] = {}
        pool = pool_name(doc.pool)
        if pool:
            metadata["Agent Pool"] = pool
        if self.warnings:
            metadata["Warnings"] = "; ".join(self.warnings)

        return Workflow(
            name=doc.name,
            vendor=self.vendor,
            global_env=global_env,
            units=tuple(units),
            working_directory=self.working_directory,
            metadata=metadata,
            expand_macros=expand_azure_macros,
        )

    # ---------------------------------------------------------------------
    # Variables
    # ---------------------------------------------------------------------

    def _agent_variables(self) -> Dict[str, str]:
        wd = str(self.working_directory)
        return {
            "Build.SourcesDirectory": wd,
            "Build.Repository.Name": self.working_directory.name,
            "Agent.BuildDirectory": wd,
            "System.DefaultWorkingDirectory": wd,
        }

    @staticmethod
    def _with_agent_names(variables: Dict[str, str]) -> Dict[str, str]:
        out = dict(variables)
        for name, value in variables.items():
            if "." in name:
                out.setdefault(agent_name(name), value)
        return out

    def _variables(self, variables: Variables) -> Dict[str, str]:
        if not variables:
            return {}
        if isinstance(variables, dict):
            return {str(k): stringify(v) for k, v in variables.items()}

        out: Dict[str, str] = {}
        for entry in variables:
            if "name" in entry:
                out[str(entry["name"])] = stringify(entry.get("value"))
            elif "group" in entry or "template" in entry:
                kind = "group" if "group" in entry else "template"
                self.warnings.append(
                    f"variable {kind} '{entry[kind]}' cannot be resolved locally - skipping"
                )
            else:
                out.update({str(k): stringify(v) for k, v in entry.items()})
        return out

    # ---------------------------------------------------------------------
    # Units
    # ---------------------------------------------------------------------

    def _stage_unit(self, index: int, stage: AzureStage) -> ExecutionUnit:
        name = stage.stage or stage.template or f"stage{index + 1}"
        metadata: Dict[str, Any] = {}
        depends = as_list(stage.depends_on)
        if depends:
            metadata["Depends on (not enforced)"] = ", ".join(depends)
        if stage.template:
            self.warnings.append(f"stage template '{stage.template}' cannot be resolved locally - skipping")

        return ExecutionUnit.composite(
            name,
            [self._job_unit(i, j) for i, j in enumerate(stage.jobs)],
            display_name=stage.display_name or name,
            condition=stage.condition,
            env=self._with_agent_names(self._variables(stage.variables)),
            metadata=metadata,
        )

    def _job_unit(self, index: int, job: AzureJob) -> ExecutionUnit:
        name = job.job or job.deployment or job.template or f"job{index + 1}"
        metadata: Dict[str, Any] = {}
        pool = pool_name(job.pool)
        if pool:
            metadata["Agent Pool"] = pool
        depends = as_list(job.depends_on)
        if depends:
            metadata["Depends on (not enforced)"] = ", ".join(depends)

        steps, note = self._job_steps(job)
        if note:
            metadata["Note"] = note

        return ExecutionUnit.leaf(
            name,
            [self._step(s) for s in steps],
            display_name=job.display_name or name,
            condition=job.condition,
            env=self._with_agent_names(self._variables(job.variables)),
            timeout_minutes=job.timeout_in_minutes,
            metadata=metadata,
        )

    def _job_steps(self, job: AzureJob) -> Tuple[List[AzureStep], Optional[str]]:
        if job.template:
            return [], f"job template '{job.template}' cannot be resolved locally"
        if job.deployment and not job.steps:
            raw = _dig(job.strategy, "runOnce", "deploy", "steps") or []
            if not isinstance(raw, list):
                raise SchemaError(
                    message=f"deployment '{job.deployment}' runOnce.deploy.steps must be a list",
                    details={"got": type(raw).__name__},
                )
            steps = [
                self._validate(AzureStep, s, where=f"deployment '{job.deployment}' step #{i + 1}")
                for i, s in enumerate(raw)
            ]
            return steps, "deployment job (runOnce strategy)"
        return list(job.steps), None

    # ---------------------------------------------------------------------
    # Steps
    # ---------------------------------------------------------------------

    def _step(self, step: AzureStep) -> Step:
        common = dict(
            env=dict(step.env),
            condition="false" if not step.enabled else step.condition,
            continue_on_error=step.continue_on_error,
            timeout_minutes=step.timeout_in_minutes,
        )

        if step.task:
            return Step.action(
                step.display_name or step.task,
                step.task,
                params=step.inputs,
                description=describe_task(step.task, step.inputs),
                **common,
            )

        script, shell = self._script(step)
        if script is not None:
            return Step.script(
                step.display_name or first_line(script) or "Script",
                script,
                shell=shell,
                working_directory=step.working_directory,
                **common,
            )

        if step.checkout:
            return Step.action(
                step.display_name or f"Checkout {step.checkout}",
                "checkout",
                params={"repository": step.checkout},
                description=f"Simulating checkout: {step.checkout}",
                **common,
            )

        if step.template:
            err = UnresolvedReferenceError(
                message=f"step template '{step.template}' cannot be resolved locally - skipping",
                reference=step.template,
            )
            return Step.empty(step.display_name or step.template, error=err, **common)

        return Step.empty(
            step.display_name or "Unnamed step",
            warning="Step has no task or script - skipping",
            **common,
        )

    @staticmethod
    def _script(step: AzureStep) -> Tuple[Optional[str], Optional[str]]:
        if step.script is not None:
            return step.script, "bash"
        if step.bash is not None:
            return step.bash, "bash"
        if step.powershell is not None:
            return step.powershell, "powershell"
        if step.pwsh is not None:
            return step.pwsh, "pwsh"
        return None, None
