"""Integration driver.

:func:`integrate` walks a solver across the time span of an
:class:`~rkjax.problem.InitialValueProblem`, one atomic step at a time,
and collects the accepted samples in a :class:`~rkjax.problem.Solution`.

The running step size belongs to the run: it starts from the solver's
``stepsize``, follows the controller's ``dt_next`` for adaptive solvers,
and is shortened on the final step so the trajectory lands exactly on
``tf``.  Implicit solvers are seeded with the previous step's stages.

Budgets (``max_steps``, ``max_wall_time``) are checked between steps only;
a step in progress is never interrupted.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Union

from rkjax.errors import (
    NewtonNonConvergenceError,
    StepFailureError,
    StepRejectionLimitExceeded,
)
from rkjax.integrators.explicit import ExplicitRungeKuttaSolver
from rkjax.integrators.implicit import ImplicitRungeKuttaSolver
from rkjax.problem import InitialValueProblem, Solution, SolverStatus

logger = logging.getLogger(__name__)

RungeKuttaSolver = Union[ExplicitRungeKuttaSolver, ImplicitRungeKuttaSolver]

# Relative slack within which a step is stretched to land on tf.
_END_SNAP = 1e-8


def integrate(
    problem: InitialValueProblem,
    solver: RungeKuttaSolver,
    *,
    max_steps: int | None = None,
    max_wall_time: float | None = None,
) -> Solution:
    """Integrate *problem* with *solver*.

    Args:
        problem: The initial value problem.
        solver: An explicit or implicit Runge-Kutta solver.
        max_steps: Stop after this many accepted steps.
        max_wall_time: Stop after this many seconds of wall-clock time.

    Returns:
        Solution: Accepted samples, starting with ``(t0, y0)``. ``status``
        tells whether ``tf`` was reached or a budget stopped the run.

    Raises:
        ValueError: If the problem has no final time and no budget is
            given, or a budget is not positive.
        StepFailureError: If a step fails. The partial trajectory is
            available as ``error.solution`` and the per-step error as
            ``error.cause``.

    Examples:
        ```python
        import jax.numpy as jnp
        from rkjax import InitialValueProblem, integrate
        from rkjax.methods import backward_euler
        problem = InitialValueProblem(lambda t, y: -y, jnp.array([1.0]), 0.0, 1.0)
        solution = integrate(problem, backward_euler(0.1))
        solution.final  # (1.0, ~[0.3855])
        ```
    """
    if max_steps is not None and max_steps < 1:
        raise ValueError(f"max_steps must be >= 1, got {max_steps}")
    if max_wall_time is not None and not max_wall_time > 0.0:
        raise ValueError(f"max_wall_time must be positive, got {max_wall_time}")
    if not problem.is_bounded and max_steps is None and max_wall_time is None:
        raise ValueError(
            "An open-ended problem (tf=None) needs max_steps or max_wall_time"
        )

    dynamics = problem.dynamics
    t = problem.t0
    tf = problem.tf
    state = problem.y0

    direction = 1.0 if tf is None or tf >= t else -1.0
    h = direction * solver.stepsize.h
    stages = None

    solution = Solution()
    solution.append(t, state)

    logger.info(
        "Integrating from t=%.6g to t=%s with %s (h=%.6g)",
        t, "open" if tf is None else f"{tf:.6g}", type(solver).__name__, h,
    )
    start = time.monotonic()

    while tf is None or (tf - t) * direction > 0.0:
        if max_steps is not None and solution.accepted_steps >= max_steps:
            solution.status = SolverStatus.MAX_STEPS
            break
        if max_wall_time is not None and time.monotonic() - start >= max_wall_time:
            solution.status = SolverStatus.MAX_WALL_TIME
            break

        h_try = h
        landing = False
        if tf is not None:
            remaining = tf - t
            if abs(h_try) >= abs(remaining) * (1.0 - _END_SNAP):
                h_try = remaining
                landing = True

        try:
            result = solver.step(dynamics, t, state, h_try, stages)
        except (NewtonNonConvergenceError, StepRejectionLimitExceeded) as exc:
            # Adaptive failures report the last attempt, not the requested step.
            h_failed = exc.h if isinstance(exc, StepRejectionLimitExceeded) else float(h_try)
            logger.error("Step from t=%.6g with h=%.6g failed: %s", t, h_failed, exc)
            raise StepFailureError(solution, t, state, h_failed, exc) from exc

        state = result.state
        stages = result.stages
        dt_used = float(result.dt_used)
        # A landing step shrunk by rejections falls short of tf; keep stepping.
        t = tf if landing and result.rejections == 0 else t + dt_used

        solution.append(t, state)
        solution.accepted_steps += 1
        solution.rejected_steps += result.rejections
        solution.newton_iterations += result.iterations

        if solver.is_adaptive:
            h = float(result.dt_next)
            if not math.isfinite(h) or h == 0.0:
                h = dt_used

    if solution.status is not SolverStatus.COMPLETED and tf is not None:
        logger.warning(
            "Integration stopped at t=%.6g before tf=%.6g (%s)",
            t, tf, solution.status.value,
        )
    logger.info(
        "Integration finished at t=%.6g: %d accepted, %d rejected steps, "
        "%d Newton iterations",
        t, solution.accepted_steps, solution.rejected_steps, solution.newton_iterations,
    )
    return solution
