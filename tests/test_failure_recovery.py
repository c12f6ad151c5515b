import pytest

from models.task_model import FailureCategory, RetryAction
from orchestrator import FixPromptGenerator, analyze_failure, classify_failure
from orchestrator.retry_strategy import max_attempts_for


@pytest.mark.parametrize(
    "errors, expected",
    [
        (["Cannot find module 'x'"], FailureCategory.DEPENDENCY),
        (["Unexpected token"], FailureCategory.SYNTAX),
        (["ENOENT: no such file"], FailureCategory.ENVIRONMENT),
        (["Something broke"], FailureCategory.UNKNOWN),
        (["Dependency cycle detected: circular import"], FailureCategory.DEPENDENCY),
        (["Warning: circular reference between screens"], FailureCategory.ARCHITECTURE),
    ],
)
def test_classify_failure(errors, expected):
    assert classify_failure(errors) == expected


def test_classify_uses_stderr():
    assert classify_failure([], "Error: EACCES: permission denied, open '/app'") == FailureCategory.ENVIRONMENT


def test_max_attempts_table():
    assert max_attempts_for(FailureCategory.DEPENDENCY) == 2
    assert max_attempts_for(FailureCategory.SYNTAX) == 3
    assert max_attempts_for(FailureCategory.ARCHITECTURE) == 2
    assert max_attempts_for(FailureCategory.ENVIRONMENT) == 1
    assert max_attempts_for(FailureCategory.UNKNOWN) == 2


def test_environment_first_attempt_aborts():
    analysis = analyze_failure(["ENOENT: no such file"], None, "Build home screen", 1)

    assert analysis.category == FailureCategory.ENVIRONMENT
    assert analysis.retry_strategy.max_attempts == 1
    assert analysis.should_escalate is True
    assert analysis.retry_strategy.action == RetryAction.ABORT


def test_syntax_first_attempt_retries_with_template():
    analysis = analyze_failure(["Unexpected token", "src/App.tsx(3,5): error"], None, "Build home screen", 1)

    assert analysis.retry_strategy.action == RetryAction.RETRY
    assert analysis.retry_strategy.max_attempts == 3
    assert analysis.should_escalate is False
    assert analysis.suggested_prompt.startswith("Fix the TypeScript/syntax error")
    assert "Unexpected token src/App.tsx(3,5): error" in analysis.suggested_prompt


def test_syntax_escalates_at_budget():
    analysis = analyze_failure(["Unexpected token"], None, "Build home screen", 3)

    assert analysis.retry_strategy.action == RetryAction.ESCALATE
    assert analysis.suggested_prompt is None


def test_dependency_second_attempt_escalates():
    assert analyze_failure(["Cannot find module 'react'"], None, "p", 1).retry_strategy.action == RetryAction.RETRY
    assert analyze_failure(["Cannot find module 'react'"], None, "p", 2).retry_strategy.action == RetryAction.ESCALATE


def test_architecture_retry_has_no_template():
    analysis = analyze_failure(["Invalid hook call"], None, "p", 1)

    assert analysis.category == FailureCategory.ARCHITECTURE
    assert analysis.retry_strategy.action == RetryAction.RETRY
    assert analysis.suggested_prompt is None


def test_fix_prompt_uses_suggested_prompt():
    analysis = analyze_failure(["Cannot find module 'x'"], None, "Build list", 1)
    prompt = FixPromptGenerator().generate(["Cannot find module 'x'"], "Build list", analysis)
    assert prompt == analysis.suggested_prompt


def test_fix_prompt_fallback_template():
    analysis = analyze_failure(["Something broke"], None, "Build list screen", 1)

    prompt = FixPromptGenerator().generate(
        ["Something broke"], "Build list screen", analysis, stderr="trace line\n", memory_context="- old attempt"
    )

    assert "Task:\nBuild list screen" in prompt
    assert "- Something broke" in prompt
    assert "stderr (tail):\ntrace line" in prompt
    assert "Fixes already attempted:\n- old attempt" in prompt
    assert analysis.root_cause_hint in prompt


def test_fix_prompt_without_analysis():
    prompt = FixPromptGenerator().generate([], "Build list screen")
    assert "Errors:" not in prompt
    assert prompt.endswith("Fix only what is needed so that install, lint and tests pass.")
