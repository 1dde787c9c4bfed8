import pytest

from localpipe.conditions import ConditionContext, ConditionError, check_condition, evaluate, strip_wrappers


def ctx(failed=False, **variables):
    return ConditionContext(variables=variables, failed=failed)


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("true", True),
        ("false", False),
        ("", True),
        ("always()", True),
        ("succeeded()", True),
        ("failure()", False),
        ("eq(variables['Mode'], 'release')", True),
        ("eq(variables.Mode, 'RELEASE')", True),
        ("ne($(Mode), 'debug')", True),
        ("and(succeeded(), eq(variables['Build.Reason'], 'Manual'))", True),
        ("or(false, contains($(Branch), 'feature'))", True),
        ("startsWith(variables['Branch'], 'refs/heads/')", True),
        ("in($(Mode), 'debug', 'release')", True),
        ("notIn($(Mode), 'debug', 'profile')", True),
        ("env.Mode == 'release' && !failure()", True),
        ("env.Missing == ''", True),
        ("${{ env.Mode != 'release' }}", False),
        ("eq(1, '1.0')", True),
    ],
)
def test_evaluate(expression, expected):
    context = ctx(Mode="release", Branch="refs/heads/feature/x", **{"Build.Reason": "Manual"})
    assert evaluate(expression, context) is expected


def test_status_functions_follow_failed_flag():
    assert evaluate("failure()", ctx(failed=True)) is True
    assert evaluate("success()", ctx(failed=True)) is False
    assert evaluate("succeededOrFailed()", ctx(failed=True)) is True
    assert evaluate("cancelled()", ctx(failed=True)) is False


def test_strip_wrappers():
    assert strip_wrappers("${{ github.ref == 'main' }}") == "(github.ref == 'main')"


def test_unsupported_expression_raises():
    with pytest.raises(ConditionError):
        evaluate("hashFiles('**/*.lock')", ctx())
    with pytest.raises(ConditionError):
        evaluate("eq(1)", ctx())


def test_check_condition_runs_unsupported_expressions_with_warning():
    should_run, warning = check_condition("fromJSON(x)", ctx())
    assert should_run is True
    assert "not supported" in warning


def test_check_condition_passthrough():
    assert check_condition(None, ctx()) == (True, None)
    assert check_condition(False, ctx()) == (False, None)
    assert check_condition("false", ctx()) == (False, None)
