"""Multi-step remote operations with compensating actions.

Each step registers its undo action. When a later step fails, the undo actions
run in reverse order and every outcome (including failed undos) is recorded in
a SagaResult instead of being lost in the log.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from app.core.exceptions import SagaFailedError, ServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StepOutcome:
    name: str
    status: str  # completed | failed | compensated | compensation_failed
    error: Optional[str] = None


@dataclass
class SagaResult:
    name: str
    success: bool = True
    failed_step: Optional[str] = None
    error: Optional[str] = None
    steps: List[StepOutcome] = field(default_factory=list)
    compensations: List[StepOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class Saga:
    def __init__(self, name: str) -> None:
        self.result = SagaResult(name=name)
        self._undo: List[Tuple[str, Callable[[], Awaitable[Any]]]] = []

    async def step(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        compensate: Optional[Callable[[T], Awaitable[Any]]] = None,
    ) -> T:
        """Run one step. On ServiceError, unwind earlier steps and raise SagaFailedError."""
        try:
            value = await action()
        except ServiceError as exc:
            self.result.steps.append(StepOutcome(name=name, status="failed", error=exc.message))
            self.result.success = False
            self.result.failed_step = name
            self.result.error = exc.message
            logger.warning("saga %s: step %s failed: %s", self.result.name, name, exc.message)
            await self._unwind()
            raise SagaFailedError(exc.message, self.result, exc.status_code) from exc

        self.result.steps.append(StepOutcome(name=name, status="completed"))
        if compensate is not None:
            self._undo.append((name, lambda: compensate(value)))
        return value

    async def _unwind(self) -> None:
        while self._undo:
            name, undo = self._undo.pop()
            try:
                await undo()
            except ServiceError as exc:
                logger.error("saga %s: compensation for %s failed: %s", self.result.name, name, exc.message)
                self.result.compensations.append(
                    StepOutcome(name=name, status="compensation_failed", error=exc.message)
                )
                continue
            self.result.compensations.append(StepOutcome(name=name, status="compensated"))
