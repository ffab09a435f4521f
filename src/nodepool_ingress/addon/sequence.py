"""
Ordered, fail-fast execution of multi-step addon operations.

A sequence stops at the first failing step. Nothing already done is rolled
back; re-running the sequence is the recovery path.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from ..errors import AddonError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    description: str
    action: Callable[[], Any]


@dataclass
class SequenceResult:
    total: int
    completed: int = 0
    error: Optional[AddonError] = None
    failed_step: Optional[Step] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Sequence:
    def __init__(self, name: str, steps: List[Step], logger: logging.Logger = logger):
        self.name = name
        self.steps = list(steps)
        self.logger = logger

    def run(self) -> SequenceResult:
        """Run the steps in order, returning how far the sequence got."""
        total = len(self.steps)
        for index, step in enumerate(self.steps):
            try:
                step.action()
            except AddonError as e:
                self.logger.error(
                    f"{self.name}: step {index + 1}/{total} '{step.description}' failed: {e}"
                )
                return SequenceResult(total, completed=index, error=e, failed_step=step)
        self.logger.info(f"{self.name}: completed {total} step(s).")
        return SequenceResult(total, completed=total)

    def execute(self) -> SequenceResult:
        """Like ``run`` but re-raises the first step error unchanged."""
        result = self.run()
        if result.error is not None:
            raise result.error
        return result
