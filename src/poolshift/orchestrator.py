"""
Runs a workflow as an ordered list of named steps.

The first failing step stops the run; later steps, validation included, are
skipped and nothing already applied is rolled back.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .errors import PoolshiftError, StepFailed
from .logger import logger


@dataclass(frozen=True)
class Step:
    name: str
    action: Callable[[], object]
    description: str = ""


@dataclass
class WorkflowResult:
    completed: list[str] = field(default_factory=list)
    failed_step: str | None = None
    error: PoolshiftError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise StepFailed(self.failed_step or "?", self.error) from self.error


def run_steps(steps: Sequence[Step]) -> WorkflowResult:
    result = WorkflowResult()
    for step in steps:
        logger.info(f"[bold yellow]▶[/bold yellow] {step.description or step.name}")
        try:
            step.action()
        except PoolshiftError as e:
            logger.error(f"[red]✗[/red] Step '{step.name}' failed: {e}")
            result.failed_step = step.name
            result.error = e
            return result
        result.completed.append(step.name)
        logger.debug(f"Completed: {step.name}")
    return result
