# adapters/codemagic.py
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from ..errors import SchemaError, UnresolvedReferenceError
from ..model import ExecutionUnit, PipelineType, Step, Workflow
from ..schemas.codemagic import CodeMagicConfig, CodeMagicScript, CodeMagicWorkflow
from .base import FormatAdapter, first_line

REFERENCE_SIGIL = "*"


def definition_key(name: str) -> str:
    """'Build Android' -> 'build_android'"""
    return re.sub(r"\s+", "_", name.strip().lower())


def _flatten(entries: Iterable[Any]) -> List[Any]:
    # an alias of a list anchor decodes as a nested list
    out: List[Any] = []
    for entry in entries:
        if isinstance(entry, list):
            out.extend(_flatten(entry))
        else:
            out.append(entry)
    return out


class CodeMagicAdapter(FormatAdapter):
    """
    CodeMagic: `workflows` map, each entry an independently selectable
    workflow with one leaf unit built from its `scripts`.
    """
    vendor = PipelineType.CODEMAGIC

    def workflow_names(self, document: Any) -> List[str]:
        return list(self._validate(CodeMagicConfig, document).workflows)

    def describe_workflows(self, document: Any) -> Dict[str, str]:
        config = self._validate(CodeMagicConfig, document)
        return {key: wf.name or "No description" for key, wf in config.workflows.items()}

    def normalize(self, document: Any, workflow: str | None = None) -> Workflow:
        config = self._validate(CodeMagicConfig, document)
        names = list(config.workflows)

        if workflow is None:
            if len(names) > 1:
                raise SchemaError(
                    message="document defines several workflows; one must be selected",
                    details={"available": ", ".join(names)},
                )
            if not names:
                return Workflow(
                    name=None,
                    vendor=self.vendor,
                    working_directory=self.working_directory,
                    metadata={"Workflows": "none"},
                )
            workflow = names[0]

        if workflow not in config.workflows:
            raise UnresolvedReferenceError(
                message=f"workflow '{workflow}' not found",
                details={"available": ", ".join(names)},
                reference=workflow,
            )

        definitions = self.script_definitions(config)
        return self._workflow(workflow, config.workflows[workflow], definitions)

    # ---------------------------------------------------------------------
    # Definitions
    # ---------------------------------------------------------------------

    def script_definitions(self, config: CodeMagicConfig) -> Dict[str, CodeMagicScript]:
        """Reference table built once per document from `definitions.scripts`."""
        if config.definitions is None:
            return {}
        raw = config.definitions.scripts
        entries = list(raw.values()) if isinstance(raw, dict) else list(raw)

        table: Dict[str, CodeMagicScript] = {}
        for entry in _flatten(entries):
            if isinstance(entry, dict) and entry.get("name") and entry.get("script"):
                script = self._validate(CodeMagicScript, entry, where=f"script definition '{entry['name']}'")
                table[definition_key(script.name)] = script
        if isinstance(raw, dict):
            # keyed definitions are also reachable by their key
            for key, entry in raw.items():
                if isinstance(entry, dict) and entry.get("script"):
                    script = self._validate(CodeMagicScript, entry, where=f"script definition '{key}'")
                    table.setdefault(definition_key(str(key)), script)
        return table

    # ---------------------------------------------------------------------
    # Workflow
    # ---------------------------------------------------------------------

    def _workflow(self, key: str, wf: CodeMagicWorkflow, definitions: Dict[str, CodeMagicScript]) -> Workflow:
        wd = self.working_directory
        global_env: Dict[str, str] = {}
        if wf.environment is not None:
            global_env.update(wf.environment.vars)
        global_env.update({
            "CM_BUILD_DIR": str(wd),
            "CM_BUILD_OUTPUT_DIR": str(wd / "build"),
            "FCI_BUILD_DIR": str(wd),
        })

        steps = [self._step(i, entry, definitions) for i, entry in enumerate(_flatten(wf.scripts))]
        steps.extend(self._artifact_steps(wf))
        steps.extend(self._publishing_steps(wf))

        unit = ExecutionUnit.leaf(
            key,
            steps,
            display_name=wf.name or key,
            timeout_minutes=wf.max_build_duration,
        )
        return Workflow(
            name=wf.name or key,
            vendor=self.vendor,
            global_env=global_env,
            units=(unit,),
            working_directory=wd,
            metadata=self._metadata(wf),
        )

    @staticmethod
    def _metadata(wf: CodeMagicWorkflow) -> Dict[str, Any]:
        # informational only, none of this reaches the process environment
        meta: Dict[str, Any] = {"Instance Type": wf.instance_type or "linux"}
        if wf.max_build_duration:
            meta["Max Build Duration"] = f"{wf.max_build_duration} minutes (not enforced)"
        env = wf.environment
        if env is None:
            return meta
        if env.flutter:
            meta["Flutter version"] = env.flutter
        if env.xcode:
            meta["Xcode version"] = env.xcode
        if env.cocoapods:
            meta["CocoaPods version"] = env.cocoapods
        if env.android_signing:
            meta["Android signing"] = ", ".join(env.android_signing)
        if env.ios_signing:
            meta["iOS signing"] = "configured"
        if env.groups:
            meta["Environment groups (not loaded)"] = ", ".join(env.groups)
        return meta

    def _step(self, index: int, entry: Any, definitions: Dict[str, CodeMagicScript]) -> Step:
        if isinstance(entry, str):
            if entry.startswith(REFERENCE_SIGIL):
                ref = entry[len(REFERENCE_SIGIL):].strip()
                script = definitions.get(definition_key(ref))
                if script is None:
                    err = UnresolvedReferenceError(
                        message=f"Unknown script reference '{entry}' - skipping",
                        reference=ref,
                    )
                    return Step.empty(f"Step {index + 1}: {entry}", error=err)
                return self._script_step(script, referenced=True)
            return Step.script(first_line(entry) or f"Step {index + 1}", entry)

        if isinstance(entry, dict):
            return self._script_step(self._validate(CodeMagicScript, entry, where=f"script #{index + 1}"))

        raise SchemaError(
            message=f"script #{index + 1} must be a string or a script object",
            details={"got": type(entry).__name__},
        )

    def _script_step(self, script: CodeMagicScript, referenced: bool = False) -> Step:
        name = script.name or first_line(script.script) or "Script"
        if referenced:
            name = f"{name} (referenced)"
        working_directory: Optional[str] = None
        if script.working_directory:
            working_directory = str((self.working_directory / script.working_directory).resolve())
        return Step.script(
            name,
            script.script,
            working_directory=working_directory,
            continue_on_error=script.ignore_failure,
        )

    @staticmethod
    def _artifact_steps(wf: CodeMagicWorkflow) -> List[Step]:
        if not wf.artifacts:
            return []
        return [Step.action(
            "Collect artifacts",
            "artifacts",
            params={"paths": list(wf.artifacts)},
            description="Simulating artifact collection: " + ", ".join(wf.artifacts),
        )]

    @staticmethod
    def _publishing_steps(wf: CodeMagicWorkflow) -> List[Step]:
        pub = wf.publishing
        if pub is None:
            return []
        targets = [
            ("email", "Email notifications"),
            ("slack", "Slack notifications"),
            ("google_play", "Google Play Store publishing"),
            ("app_store_connect", "App Store Connect publishing"),
        ]
        steps: List[Step] = []
        for attr, label in targets:
            if getattr(pub, attr):
                steps.append(Step.action(
                    f"Publish: {label}",
                    f"publishing.{attr}",
                    description=f"Simulating publishing: {label} configured",
                ))
        return steps
