# engine.py
from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from .conditions import ConditionContext, check_condition
from .errors import ProcessLaunchError, ScriptFailure
from .executor import ScriptExecutor
from .model import (
    ExecutionResult,
    ExecutionUnit,
    ScopeStack,
    Step,
    StepKind,
    StepResult,
    StepStatus,
    Workflow,
)

UnitStartHook = Callable[[ExecutionUnit, int], None]
UnitEndHook = Callable[[ExecutionUnit, ExecutionResult, int], None]
StepStartHook = Callable[[Step, int], None]
StepEndHook = Callable[[StepResult, int], None]


@dataclass(frozen=True)
class _Hooks:
    on_unit_start: Optional[UnitStartHook] = None
    on_unit_end: Optional[UnitEndHook] = None
    on_step_start: Optional[StepStartHook] = None
    on_step_end: Optional[StepEndHook] = None


class ExecutionEngine:
    """
    Walks a Workflow strictly in declaration order.

    - a failing step halts its unit unless it is continue_on_error
    - a failing unit halts its parent (and the workflow)
    - a false condition skips the unit/step and counts as success
    - ProcessLaunchError is fatal and propagates to the caller
    """

    def __init__(
        self,
        executor: ScriptExecutor | None = None,
        *,
        stream_output: bool = False,
        enforce_timeouts: bool = False,
        ambient_env: Mapping[str, str] | None = None,
    ):
        self.executor = executor or ScriptExecutor()
        self.stream_output = stream_output
        self.enforce_timeouts = enforce_timeouts
        self.ambient_env = ambient_env

    def run(
        self,
        workflow: Workflow,
        on_unit_start: UnitStartHook | None = None,
        on_unit_end: UnitEndHook | None = None,
        on_step_start: StepStartHook | None = None,
        on_step_end: StepEndHook | None = None,
    ) -> ExecutionResult:
        hooks = _Hooks(on_unit_start, on_unit_end, on_step_start, on_step_end)
        ambient = dict(os.environ if self.ambient_env is None else self.ambient_env)

        root = ExecutionResult(unit_name=workflow.display_name)
        scope = ScopeStack().push(workflow.global_env)

        for unit in workflow.units:
            child = self._run_unit(workflow, unit, scope, ambient, hooks, depth=0)
            root.children.append(child)
            if not child.succeeded:
                root.succeeded = False
                break

        return root

    # ---------------------------------------------------------------------
    # Units
    # ---------------------------------------------------------------------

    def _run_unit(
        self,
        workflow: Workflow,
        unit: ExecutionUnit,
        parent_scope: ScopeStack,
        ambient: Dict[str, str],
        hooks: _Hooks,
        depth: int,
    ) -> ExecutionResult:
        scope = parent_scope.push(unit.env)
        result = ExecutionResult(unit_name=unit.name)

        if hooks.on_unit_start:
            hooks.on_unit_start(unit, depth)

        should_run, warning = self._condition(unit.condition, scope.merged(), failed=False)
        if warning:
            result.warnings.append(warning)

        if not should_run:
            result.skipped = True
        elif unit.is_composite:
            for child in unit.children:
                child_result = self._run_unit(workflow, child, scope, ambient, hooks, depth + 1)
                result.children.append(child_result)
                if not child_result.succeeded:
                    result.succeeded = False
                    break
        else:
            for index, step in enumerate(unit.steps):
                if hooks.on_step_start:
                    hooks.on_step_start(step, index)
                step_result = self._run_step(
                    workflow, unit, step, scope, ambient, failed=not result.succeeded,
                )
                result.step_results.append(step_result)
                if hooks.on_step_end:
                    hooks.on_step_end(step_result, index)

                if not step_result.succeeded:
                    result.succeeded = False
                    if not step.continue_on_error:
                        break

        if hooks.on_unit_end:
            hooks.on_unit_end(unit, result, depth)
        return result

    # ---------------------------------------------------------------------
    # Steps
    # ---------------------------------------------------------------------

    def _run_step(
        self,
        workflow: Workflow,
        unit: ExecutionUnit,
        step: Step,
        unit_scope: ScopeStack,
        ambient: Dict[str, str],
        failed: bool,
    ) -> StepResult:
        variables = unit_scope.merged()
        step_env = {k: self._expand(workflow, v, variables) for k, v in step.env.items()}
        scope = unit_scope.push(step_env)
        variables = scope.merged()

        should_run, warning = self._condition(step.condition, variables, failed=failed)
        if not should_run:
            return StepResult(
                step=step,
                status=StepStatus.SKIPPED,
                message=f"condition '{step.condition}' is false - skipping",
            )

        if step.kind is StepKind.EMPTY:
            return StepResult(
                step=step,
                status=StepStatus.SKIPPED,
                message=step.warning or warning,
                error=step.error,
            )

        if step.kind is StepKind.ACTION:
            return StepResult(step=step, status=StepStatus.SIMULATED, message=step.content.description)

        content = step.content
        command = self._expand(workflow, content.text, variables)
        cwd = self._working_directory(workflow, content.working_directory, variables)
        timeout = self._timeout_seconds(unit, step)

        started = time.monotonic()
        try:
            proc = self.executor.run(
                command,
                cwd,
                scope.environment(ambient),
                self.stream_output,
                shell=content.shell,
                timeout=timeout,
            )
        except ProcessLaunchError as e:
            e.details.setdefault("unit", unit.name)
            e.details.setdefault("step", step.display_name)
            raise
        duration = time.monotonic() - started

        if proc.exit_code == 0:
            return StepResult(
                step=step,
                status=StepStatus.SUCCEEDED,
                exit_code=0,
                stdout=proc.stdout,
                stderr=proc.stderr,
                message=warning,
                duration=duration,
            )

        failure = ScriptFailure(
            message="timed out" if proc.timed_out else f"script exited with code {proc.exit_code}",
            details={"cwd": str(cwd)},
            unit=unit.name,
            step=step.display_name,
            exit_code=proc.exit_code,
        )
        return StepResult(
            step=step,
            status=StepStatus.FAILED,
            exit_code=proc.exit_code,
            stdout=proc.stdout,
            stderr=proc.stderr,
            message="continuing (continue on error)" if step.continue_on_error else warning,
            error=failure,
            duration=duration,
        )

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------

    @staticmethod
    def _expand(workflow: Workflow, text: str, variables: Mapping[str, str]) -> str:
        if workflow.expand_macros is None or not text:
            return text
        return workflow.expand_macros(text, variables)

    @staticmethod
    def _condition(condition: str | None, variables: Mapping[str, str], failed: bool):
        # $(Name) and ${{ env.NAME }} are resolved by the condition parser itself
        if condition is None:
            return True, None
        return check_condition(condition, ConditionContext(variables=variables, failed=failed))

    def _working_directory(self, workflow: Workflow, wd: str | None, variables: Mapping[str, str]) -> Path:
        if not wd:
            return workflow.working_directory
        path = Path(self._expand(workflow, wd, variables)).expanduser()
        if not path.is_absolute():
            path = workflow.working_directory / path
        return path

    def _timeout_seconds(self, unit: ExecutionUnit, step: Step) -> float | None:
        if not self.enforce_timeouts:
            return None
        minutes = step.timeout_minutes or unit.timeout_minutes
        return float(minutes) * 60 if minutes else None
