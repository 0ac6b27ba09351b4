from __future__ import annotations

import pytest

from relflow.core.result import Err, Ok
from relflow.services.pipeline.expressions import (
    Call,
    Const,
    EvalContext,
    Variable,
    evaluate_condition,
    parse_condition,
)
from relflow.services.pipeline.expressions import DependencyResult

DEVELOP = {"Build.SourceBranch": "refs/heads/develop", "Release.Version": "1.4.0-SNAPSHOT"}


def _eval(
    source: str,
    variables: dict[str, str] | None = None,
    deps: dict[str, DependencyResult] | None = None,
) -> bool:
    ctx = EvalContext(variables=variables or DEVELOP, dependencies=deps or {})
    result = evaluate_condition(source, ctx)
    assert isinstance(result, Ok), result
    return result.value


class TestParse:
    def test_ast(self) -> None:
        result = parse_condition("eq(variables['Build.SourceBranch'], 'refs/heads/main')")
        assert result == Ok(
            Call("eq", (Variable("Build.SourceBranch"), Const("refs/heads/main")))
        )

    def test_dotted_variable_and_escaped_quote(self) -> None:
        result = parse_condition("ne(variables.Reason, 'it''s')")
        assert result == Ok(Call("ne", (Variable("Reason"), Const("it's"))))

    def test_function_names_are_case_insensitive(self) -> None:
        assert isinstance(parse_condition("StartsWith('a', 'A')"), Ok)

    @pytest.mark.parametrize(
        ("source", "fragment"),
        [
            ("eq('a')", "takes 2 argument(s)"),
            ("frobnicate()", "unknown function"),
            ("eq('a', 'b'", "expected ')'"),
            ("'open", "unterminated string"),
            ("eq('a', 'b') x", "after expression"),
            ("variables[Build]", "quoted name"),
            ("always(", "unexpected"),
            ("succeeded(1)", "stage names"),
        ],
    )
    def test_errors(self, source: str, fragment: str) -> None:
        result = parse_condition(source)
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_condition"
        assert fragment in result.error.message

    def test_error_reports_column(self) -> None:
        result = parse_condition("and(true, ?)")
        assert isinstance(result, Err)
        assert "column 11" in result.error.message


class TestEvaluate:
    def test_branch_gate(self) -> None:
        cond = "and(succeeded(), eq(variables['Build.SourceBranch'], 'refs/heads/develop'))"
        assert _eval(cond) is True
        assert _eval(cond, {"Build.SourceBranch": "refs/heads/main"}) is False

    def test_string_comparison_ignores_case(self) -> None:
        assert _eval("eq(variables['build.sourcebranch'], 'REFS/HEADS/DEVELOP')")
        assert _eval("startsWith(variables['Build.SourceBranch'], 'refs/heads/dev')")
        assert _eval("endsWith(variables['Release.Version'], '-snapshot')")
        assert _eval("contains(variables['Release.Version'], 'SNAP')")

    def test_in_and_notin(self) -> None:
        assert _eval("in(variables['Build.SourceBranch'], 'refs/heads/main', 'refs/heads/develop')")
        assert _eval("notIn('x', 'a', 'b')")

    def test_numbers(self) -> None:
        assert _eval("gt(10, 9)")
        assert _eval("le('2', 2)")
        assert _eval("eq(1.0, '1')")

    def test_logic(self) -> None:
        assert _eval("not(false)")
        assert _eval("xor(true, false)")
        assert not _eval("or(false, eq('a', 'b'))")
        assert _eval("always()")
        assert not _eval("canceled()")

    def test_missing_variable_is_empty(self) -> None:
        assert _eval("eq(variables['Nope'], '')")
        assert not _eval("variables['Nope']")

    def test_dependency_functions(self) -> None:
        ok: dict[str, DependencyResult] = {"Build": "succeeded"}
        bad: dict[str, DependencyResult] = {"Build": "failed"}
        skipped: dict[str, DependencyResult] = {"Build": "skipped"}
        assert _eval("succeeded()", deps=ok)
        assert not _eval("succeeded()", deps=bad)
        assert not _eval("succeeded()", deps=skipped)
        assert _eval("failed()", deps=bad)
        assert _eval("failed('Build')", deps=bad)
        assert _eval("succeededOrFailed()", deps=bad)
        assert not _eval("succeededOrFailed()", deps=skipped)

    def test_succeeded_without_dependencies(self) -> None:
        assert _eval("succeeded()")
