"""
Step Runner Module

A provisioning run is an ordered list of steps. Each step reports a
``StepResult``; the runner stops at the first failure and runs that
step's compensating action, if it recorded one.

License: MIT
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from .run_state import RunContext


@dataclass
class StepResult:
    """Outcome of one provisioning step."""
    success: bool
    message: str = ""
    compensate: Optional[Callable[[], None]] = None


@dataclass
class Step:
    name: str
    description: str
    action: Callable[[], Union[StepResult, bool]]


class StepRunner:
    """Executes steps strictly in order, halting on the first failure."""

    def __init__(
        self,
        steps: List[Step],
        state: RunContext,
        logger: logging.Logger,
        on_start: Optional[Callable[[int, int, Step], None]] = None,
        on_failure: Optional[Callable[[Step, str], None]] = None
    ):
        self.steps = steps
        self.state = state
        self.logger = logger
        self.on_start = on_start or self._log_start
        self.on_failure = on_failure or self._log_failure
        self.failed_step: Optional[Step] = None

    def _log_start(self, index: int, total: int, step: Step) -> None:
        self.logger.info(f"[{index}/{total}] {step.description}...")

    def _log_failure(self, step: Step, message: str) -> None:
        self.logger.error(message)

    @staticmethod
    def _normalize(outcome: Union[StepResult, bool]) -> StepResult:
        if isinstance(outcome, StepResult):
            return outcome
        return StepResult(bool(outcome))

    def _compensate(self, step: Step, result: StepResult) -> None:
        if result.compensate is None:
            return
        self.logger.info(f"Rolling back {step.name}...")
        try:
            result.compensate()
        except OSError as e:
            self.logger.error(f"Rollback of {step.name} failed: {e}")

    def run(self) -> bool:
        """
        Run every step in order.

        Returns:
            bool: True if all steps succeeded
        """
        total = len(self.steps)

        for index, step in enumerate(self.steps, start=1):
            self.on_start(index, total, step)

            try:
                result = self._normalize(step.action())
            except Exception as e:
                self.logger.exception(f"Exception in step {step.name}")
                result = StepResult(False, f"Error in {step.description}: {e}")

            if not result.success:
                self.failed_step = step
                self.on_failure(step, result.message or f"{step.description} failed")
                self._compensate(step, result)
                self.state.save_emergency_state(step.name, result.message)
                return False

            self.state.mark_step_completed(step.name)
            if result.message:
                self.logger.debug(result.message)

        return True
