"""
Step Runner for Multi-Call Mutations

Runs an ordered list of upstream calls and reports exactly which ones
completed. There is no automatic compensation: a failed step aborts the
run, earlier steps stay applied, and the report tells the caller (or a
retry) what is left to redo.
"""

from typing import Any
from typing import Awaitable
from typing import Callable
from typing import List
from typing import Optional

from loguru import logger
from pydantic import BaseModel
from pydantic import Field

from espec_api.client.cancel import CancelToken
from espec_api.client.exceptions import SpecApiError


class StepResult(BaseModel):
    """Outcome of one completed step."""

    name: str
    result: Any = None


class SagaReport(BaseModel):
    """What a multi-step run did."""

    operation: str
    completed: List[StepResult] = Field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    pending_steps: List[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.failed_step is None

    def result_of(self, name: str) -> Any:
        return next((s.result for s in self.completed if s.name == name), None)


StepAction = Callable[[], Awaitable[Any]]


class Saga:
    """
    Ordered list of named async steps.

    Steps may be appended while the saga runs (a step can add follow-up steps
    that depend on its result, e.g. materials of a freshly created environment).
    """

    def __init__(self, operation: str, cancel_token: Optional[CancelToken] = None):
        self.operation = operation
        self.cancel_token = cancel_token
        self._steps: List[tuple] = []
        self.report = SagaReport(operation=operation)

    def add_step(self, name: str, action: StepAction) -> None:
        self._steps.append((name, action))

    async def run(self) -> SagaReport:
        """Run steps in order, stopping at the first SpecApiError."""
        index = 0
        while index < len(self._steps):
            name, action = self._steps[index]
            try:
                if self.cancel_token:
                    self.cancel_token.raise_if_cancelled()
                result = await action()
            except SpecApiError as e:
                self.report.failed_step = name
                self.report.error = str(e)
                self.report.error_type = type(e).__name__
                self.report.pending_steps = [n for n, _ in self._steps[index + 1 :]]
                logger.warning(
                    f"[{self.operation}] step failed, aborting without rollback",
                    step=name,
                    completed_steps=[s.name for s in self.report.completed],
                    pending_steps=self.report.pending_steps,
                    error=str(e),
                )
                return self.report
            self.report.completed.append(StepResult(name=name, result=result))
            logger.debug(f"[{self.operation}] step completed", step=name)
            index += 1

        logger.info(f"[{self.operation}] all steps completed", steps=len(self.report.completed))
        return self.report
