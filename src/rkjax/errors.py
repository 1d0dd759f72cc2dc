"""Exceptions raised by the rkjax stepping engine and driver.

Construction problems (``MalformedTableauError``) are fatal and never
retried.  Per-step failures (``NewtonNonConvergenceError``,
``StepRejectionLimitExceeded``) carry the state the step started from and
the step size that was attempted.  The driver wraps either of them in a
``StepFailureError`` that also holds the partial trajectory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from jax import Array

    from rkjax.problem import Solution


class RungeKuttaError(Exception):
    """Base class for all rkjax errors."""


class MalformedTableauError(RungeKuttaError, ValueError):
    """A Butcher tableau has inconsistent dimensions or invalid entries."""


class NewtonNonConvergenceError(RungeKuttaError):
    """The implicit stage equations did not converge within the iteration cap.

    Attributes:
        t: Time at the start of the failed step.
        y: State at the start of the failed step.
        h: Step size that was attempted.
        iterations: Number of Newton iterations performed.
        correction_norm: Maximum-component norm of the last Newton
            correction (``nan`` or ``inf`` if the iteration blew up).
    """

    def __init__(self, t: float, y: Array, h: float, iterations: int, correction_norm: float):
        self.t = t
        self.y = y
        self.h = h
        self.iterations = iterations
        self.correction_norm = correction_norm
        super().__init__(
            f"Newton iteration did not converge after {iterations} iterations "
            f"(t={t:.6g}, h={h:.6g}, last correction norm {correction_norm:.3e})"
        )


class StepRejectionLimitExceeded(RungeKuttaError):
    """Adaptive explicit stepping rejected too many consecutive attempts.

    Attributes:
        t: Time at the start of the failed step.
        y: State at the start of the failed step.
        h: Last step size that was attempted.
        rejections: Number of rejected attempts.
        attempted_steps: Every step size tried, in order.
    """

    def __init__(
        self,
        t: float,
        y: Array,
        h: float,
        rejections: int,
        attempted_steps: Sequence[float] = (),
        message: str | None = None,
    ):
        self.t = t
        self.y = y
        self.h = h
        self.rejections = rejections
        self.attempted_steps = tuple(attempted_steps)
        if message is None:
            message = (
                f"Step rejected {rejections} consecutive times "
                f"(t={t:.6g}, last h={h:.6g})"
            )
        super().__init__(message)


class StepSizeUnderflowError(StepRejectionLimitExceeded):
    """A rejected step could not be retried with a strictly smaller step."""


class StepFailureError(RungeKuttaError):
    """The driver could not complete a step.

    The triggering ``NewtonNonConvergenceError`` or
    ``StepRejectionLimitExceeded`` is available as ``cause`` (and as
    ``__cause__``).

    Attributes:
        solution: Trajectory accumulated before the failure.
        t: Time of the last accepted sample.
        y: State of the last accepted sample.
        h: Step size of the failed attempt.
        cause: The underlying per-step error.
    """

    def __init__(self, solution: Solution, t: float, y: Array, h: float, cause: RungeKuttaError):
        self.solution = solution
        self.t = t
        self.y = y
        self.h = h
        self.cause = cause
        super().__init__(
            f"Integration failed at t={t:.6g} with h={h:.6g} after "
            f"{len(solution)} samples: {cause}"
        )
