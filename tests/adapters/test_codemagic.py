import pytest

from localpipe.adapters import CodeMagicAdapter
from localpipe.adapters.codemagic import definition_key
from localpipe.errors import SchemaError, UnresolvedReferenceError
from localpipe.model import PipelineType, StepKind

CONFIG = """
definitions:
  scripts:
    - &get_packages
      name: Get packages
      script: flutter pub get
    - &run_tests
      name: Run tests
      script: flutter test
      ignore_failure: true
  common: &common_scripts
    - name: Analyze
      script: flutter analyze

workflows:
  android:
    name: Android build
    instance_type: mac_mini_m1
    max_build_duration: 60
    environment:
      flutter: stable
      android_signing:
        - keystore
      groups:
        - google_play
      vars:
        PACKAGE: com.example.app
        BUILD_NUMBER: 42
    scripts:
      - *get_packages
      - *common_scripts
      - "*Run tests"
      - "*does not exist"
      - echo "inline $PACKAGE"
      - name: Build apk
        script: flutter build apk
        working_directory: android
    artifacts:
      - build/**/outputs/**/*.apk
    publishing:
      email:
        recipients:
          - dev@example.com
  ios:
    scripts:
      - flutter build ios
"""


@pytest.fixture
def adapter(tmp_path):
    return CodeMagicAdapter(tmp_path)


def test_workflow_names(adapter, yaml_doc):
    doc = yaml_doc(CONFIG)
    assert adapter.workflow_names(doc) == ["android", "ios"]
    assert adapter.describe_workflows(doc) == {"android": "Android build", "ios": "No description"}


def test_several_workflows_need_a_selection(adapter, yaml_doc):
    with pytest.raises(SchemaError):
        adapter.normalize(yaml_doc(CONFIG))


def test_unknown_workflow_is_reference_error(adapter, yaml_doc):
    with pytest.raises(UnresolvedReferenceError) as info:
        adapter.normalize(yaml_doc(CONFIG), "windows")
    assert info.value.reference == "windows"


def test_single_leaf_unit_with_scripts(adapter, yaml_doc):
    wf = adapter.normalize(yaml_doc(CONFIG), "android")

    assert wf.vendor is PipelineType.CODEMAGIC
    assert wf.name == "Android build"
    (unit,) = wf.units
    assert unit.name == "android"
    assert unit.timeout_minutes == 60
    assert [s.display_name for s in unit.steps] == [
        "Get packages",
        "Analyze",
        "Run tests (referenced)",
        "Step 4: *does not exist",
        'echo "inline $PACKAGE"',
        "Build apk",
        "Collect artifacts",
        "Publish: Email notifications",
    ]


def test_unresolved_reference_is_an_empty_step(adapter, yaml_doc):
    steps = adapter.normalize(yaml_doc(CONFIG), "android").units[0].steps
    missing = steps[3]
    assert missing.kind is StepKind.EMPTY
    assert "Unknown script reference" in missing.warning


def test_ignore_failure_and_working_directory(adapter, yaml_doc, tmp_path):
    steps = adapter.normalize(yaml_doc(CONFIG), "android").units[0].steps
    assert steps[2].continue_on_error is True
    assert steps[5].content.working_directory == str((tmp_path / "android").resolve())


def test_environment_vars_and_build_dirs(adapter, yaml_doc, tmp_path):
    wf = adapter.normalize(yaml_doc(CONFIG), "android")
    root = tmp_path.resolve()

    assert wf.global_env["PACKAGE"] == "com.example.app"
    assert wf.global_env["BUILD_NUMBER"] == "42"
    assert wf.global_env["CM_BUILD_DIR"] == str(root)
    assert wf.global_env["CM_BUILD_OUTPUT_DIR"] == str(root / "build")
    assert wf.global_env["FCI_BUILD_DIR"] == str(root)


def test_toolchain_fields_are_metadata_only(adapter, yaml_doc):
    wf = adapter.normalize(yaml_doc(CONFIG), "android")

    assert wf.metadata["Flutter version"] == "stable"
    assert wf.metadata["Android signing"] == "keystore"
    assert wf.metadata["Instance Type"] == "mac_mini_m1"
    assert "flutter" not in wf.global_env


def test_artifacts_and_publishing_are_simulated(adapter, yaml_doc):
    steps = adapter.normalize(yaml_doc(CONFIG), "android").units[0].steps
    artifacts, email = steps[-2:]
    assert artifacts.kind is StepKind.ACTION
    assert "build/**/outputs/**/*.apk" in artifacts.content.description
    assert email.kind is StepKind.ACTION


def test_single_workflow_is_selected_implicitly(adapter, yaml_doc):
    wf = adapter.normalize(yaml_doc("""
        workflows:
          only:
            scripts:
              - make
    """))
    assert wf.name == "only"
    assert wf.units[0].steps[0].content.text == "make"


def test_no_workflows_is_an_empty_run(adapter, yaml_doc):
    wf = adapter.normalize(yaml_doc("workflows: {}\n"))
    assert wf.units == ()


def test_missing_workflows_key_is_schema_error(adapter, yaml_doc):
    with pytest.raises(SchemaError):
        adapter.normalize(yaml_doc("definitions: {}\n"))


def test_invalid_script_object_is_schema_error(adapter, yaml_doc):
    with pytest.raises(SchemaError):
        adapter.normalize(yaml_doc("""
            workflows:
              broken:
                scripts:
                  - name: no script body
        """))


def test_definition_key():
    assert definition_key("  Build Android App ") == "build_android_app"


@pytest.mark.parametrize(
    "definitions",
    [
        "  scripts:\n    - name: Flaky\n      script: make\n      ignore_failure: maybe\n",
        "  scripts:\n    flaky:\n      script: make\n      ignore_failure: maybe\n",
    ],
)
def test_invalid_script_definition_is_schema_error(adapter, yaml_doc, definitions):
    doc = yaml_doc("definitions:\n" + definitions + "workflows:\n  w:\n    scripts: []\n")
    with pytest.raises(SchemaError):
        adapter.normalize(doc)


def test_unresolved_reference_keeps_the_error(adapter, yaml_doc):
    step = adapter.normalize(yaml_doc(CONFIG), "android").units[0].steps[3]
    assert isinstance(step.error, UnresolvedReferenceError)
    assert step.error.reference == "does not exist"
