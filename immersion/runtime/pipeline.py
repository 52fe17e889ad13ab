"""
Transition Pipelines - Ordered fallible steps with declared compensations.

A pipeline is the saga for one mode transition:

    steps:        s1 ──▶ s2 ──▶ s3 ──▶ ... ──▶ sN
    compensation: c1 ◀── c2 ◀── c3 (run in reverse on failure)

Semantics:
    - Steps run strictly in declaration order, each awaited before the next
    - run() stops at the first failing step and reports it
    - rollback() runs the compensations of every step up to and including
      the failed one, newest first; the failed step may have half-applied
    - Compensations are idempotent and best-effort: a failing compensation
      is logged and recorded, and the remaining ones still run
    - run_best_effort() runs every step regardless of failures (used for
      restorative pipelines where each step is itself a compensation)

Steps may be plain callables or coroutine functions.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence, Union

from .errors import PipelineStepFailure

logger = logging.getLogger(__name__)


StepAction = Callable[[], Union[Any, Awaitable[Any]]]


async def maybe_await(value: Any) -> Any:
    """Await `value` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(frozen=True)
class PipelineStep:
    """One step of a transition.

    Fields:
        name: Stable identifier used in logs and results.
        action: Performs the step.
        compensate: Undoes the step. Must be safe to call even when the
            step never ran or only partly ran.
    """
    name: str
    action: StepAction
    compensate: StepAction | None = None


@dataclass
class PipelineResult:
    """Outcome of running (and possibly rolling back) a pipeline."""
    pipeline: str
    completed: list[str] = field(default_factory=list)
    failures: list[PipelineStepFailure] = field(default_factory=list)
    failed_index: int | None = None
    compensated: list[str] = field(default_factory=list)
    rolled_back: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_step(self) -> str | None:
        if not self.failures:
            return None
        return self.failures[0].step

    def caused_by(self, error_type: type[BaseException]) -> bool:
        """True if any recorded failure was caused by `error_type`."""
        return any(isinstance(f.cause, error_type) for f in self.failures)


class Pipeline:
    """
    Ordered list of steps for one transition.

    Usage:
        pipeline = Pipeline("enter_media", [
            PipelineStep("fade_out", audio.stop_exploration_audio,
                         compensate=audio.start_exploration_audio),
            PipelineStep("play", media.play, compensate=media.pause),
        ])

        result = await pipeline.run()
        if not result.ok:
            await pipeline.rollback(result)
    """

    def __init__(self, name: str, steps: Sequence[PipelineStep]):
        self.name = name
        self.steps = list(steps)

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]

    async def run(self) -> PipelineResult:
        """Run steps in order, stopping at the first failure."""
        result = PipelineResult(pipeline=self.name)

        for index, step in enumerate(self.steps):
            try:
                await maybe_await(step.action())
            except Exception as e:
                failure = PipelineStepFailure(self.name, step.name, e)
                logger.error(failure.message, exc_info=e)
                result.failures.append(failure)
                result.failed_index = index
                return result
            result.completed.append(step.name)

        return result

    async def run_best_effort(self) -> PipelineResult:
        """Run every step; failures are recorded but never stop the run."""
        result = PipelineResult(pipeline=self.name)

        for index, step in enumerate(self.steps):
            try:
                await maybe_await(step.action())
            except Exception as e:
                failure = PipelineStepFailure(self.name, step.name, e)
                logger.error(failure.message, exc_info=e)
                result.failures.append(failure)
                if result.failed_index is None:
                    result.failed_index = index
                continue
            result.completed.append(step.name)

        return result

    async def rollback(self, result: PipelineResult) -> PipelineResult:
        """
        Compensate a failed run.

        Args:
            result: Result returned by run(); updated in place.

        Returns:
            The same result, with `compensated` and `rolled_back` filled in.
            Compensation failures are appended to `failures`; they are not
            retried.
        """
        last = result.failed_index
        if last is None:
            last = len(result.completed) - 1

        for step in reversed(self.steps[: last + 1]):
            if step.compensate is None:
                continue
            try:
                await maybe_await(step.compensate())
            except Exception as e:
                failure = PipelineStepFailure(f"{self.name}:rollback", step.name, e)
                logger.error(failure.message, exc_info=e)
                result.failures.append(failure)
                continue
            result.compensated.append(step.name)

        result.rolled_back = True
        return result
