"""
Minimal saga runner for writes that span both stores.

A saga is an ordered list of steps. Each step has a forward action, an
optional compensating action and the error type raised when the forward
action fails. Steps run in order; on the first failure every completed
step is compensated in reverse order, best effort, and the failing step's
error is raised. Compensation failures are logged and attached to that
error but never replace it.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from identity_sync.exceptions import StoreError, CompensationFailure

logger = logging.getLogger(__name__)


@dataclass
class SagaStep:
    name: str
    action: Callable[[Dict[str, Any]], Any]
    compensation: Optional[Callable[[Dict[str, Any]], None]]
    error_class: Type[StoreError]


class Saga:

    def __init__(self, operation: str, uid: Optional[str] = None):
        self.operation = operation
        self.uid = uid
        self.steps: List[SagaStep] = []
        self.results: Dict[str, Any] = {}
        self.completed: List[SagaStep] = []
        self.compensation_failures: List[CompensationFailure] = []

    def step(self, name, action, compensation=None, error_class=StoreError):
        """Append a step. `action` and `compensation` receive the results dict."""
        self.steps.append(SagaStep(name, action, compensation, error_class))
        return self

    def run(self) -> Dict[str, Any]:
        for step in self.steps:
            try:
                self.results[step.name] = step.action(self.results)
            except Exception as exc:
                logger.error(f"[{self.operation}] step '{step.name}' failed for {self._subject()}: {exc}")
                error = step.error_class(exc, step=step.name)
                self._unwind()
                error.compensation_failures = list(self.compensation_failures)
                raise error from exc
            self.completed.append(step)
        return self.results

    def _unwind(self):
        for step in reversed(self.completed):
            if step.compensation is None:
                continue
            try:
                step.compensation(self.results)
            except Exception as exc:
                failure = CompensationFailure(step.name, exc)
                self.compensation_failures.append(failure)
                logger.error(
                    f"[{self.operation}] rollback of '{step.name}' failed for {self._subject()}: {exc}. "
                    f"Stores may be out of sync; run the sync audit"
                )
            else:
                logger.warning(f"[{self.operation}] rolled back '{step.name}' for {self._subject()}")

    def _subject(self):
        return self.uid or "new user"
