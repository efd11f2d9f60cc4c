import pytest

from poolshift.errors import BackendError, MissingExecutableError, StepFailed
from poolshift.orchestrator import Step, WorkflowResult, run_steps


def test_run_steps_in_order():
    seen = []
    steps = [Step(name, lambda name=name: seen.append(name)) for name in ("a", "b", "c")]

    result = run_steps(steps)

    assert seen == ["a", "b", "c"]
    assert result.ok
    assert result.completed == ["a", "b", "c"]
    result.raise_for_failure()


def test_run_steps_stops_at_first_failure():
    seen = []

    def boom():
        raise BackendError("quota exceeded")

    steps = [
        Step("a", lambda: seen.append("a")),
        Step("b", boom),
        Step("c", lambda: seen.append("c")),
    ]

    result = run_steps(steps)

    assert seen == ["a"]
    assert not result.ok
    assert result.completed == ["a"]
    assert result.failed_step == "b"
    assert "quota exceeded" in str(result.error)


def test_raise_for_failure_carries_step_and_exit_code():
    result = WorkflowResult(
        completed=[], failed_step="create", error=MissingExecutableError("gcloud is not installed!")
    )

    with pytest.raises(StepFailed) as exc:
        result.raise_for_failure()

    assert exc.value.step == "create"
    assert exc.value.exit_code == 2
    assert "Step 'create' failed" in str(exc.value)


def test_unexpected_exceptions_propagate():
    def bug():
        raise KeyError("oops")

    with pytest.raises(KeyError):
        run_steps([Step("a", bug)])
