"""Implicit Runge-Kutta solver.

The stages of an implicit method are mutually coupled through a full
coupling matrix and are found together by
:func:`~rkjax.integrators._newton.newton_stage_solve`.  Once the stages
converge, the step is finalized exactly like an explicit one:
``y' = y + h * sum_i b_i k_i``.

The Newton kernel is compiled with ``jax.jit``, keyed on the derivative
function, the tableau and the Newton parameters, so repeated steps of one
integration reuse a single compiled solve.  Derivative functions that
cannot be hashed (e.g. plain dataclass instances with ``__call__``) fall
back to the eager kernel.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from rkjax.config import get_dtype
from rkjax.errors import NewtonNonConvergenceError
from rkjax.integrators._newton import newton_stage_solve
from rkjax.integrators._types import NewtonParameters, StepResult, StepSize
from rkjax.tableau import ButcherTableau

logger = logging.getLogger(__name__)

_newton_stage_solve_jit = jax.jit(
    newton_stage_solve, static_argnames=("dynamics", "tableau", "newton")
)


def _stage_solver(dynamics):
    """Return the compiled Newton kernel, or the eager one for unhashable *dynamics*.

    The compiled kernel keys its cache on the derivative function, so it
    only accepts hashable callables.
    """
    try:
        hash(dynamics)
    except TypeError:
        return newton_stage_solve
    return _newton_stage_solve_jit


@dataclass(frozen=True)
class ImplicitRungeKuttaSolver:
    """Implicit Runge-Kutta solver with a fixed step.

    Args:
        tableau: Butcher tableau. Any tableau is accepted; explicit ones
            simply converge in a single Newton iteration.
        stepsize: Step length. Bare numbers are wrapped in a
            :class:`StepSize`.
        newton: Newton solve configuration.

    Examples:
        ```python
        import jax.numpy as jnp
        from rkjax.integrators import ImplicitRungeKuttaSolver, NewtonParameters
        from rkjax.methods import get_tableau
        solver = ImplicitRungeKuttaSolver(
            get_tableau("GaussLegendre4"), 0.5, NewtonParameters(tolerance=1e-10)
        )
        result = solver.step(lambda t, y: -y, 0.0, jnp.array([1.0]), 0.5)
        result.state  # ~[exp(-0.5)]
        ```
    """

    tableau: ButcherTableau
    stepsize: StepSize
    newton: NewtonParameters = field(default_factory=NewtonParameters)

    def __post_init__(self) -> None:
        object.__setattr__(self, "stepsize", StepSize.coerce(self.stepsize))

    @property
    def is_adaptive(self) -> bool:
        """Implicit solvers always use a fixed step."""
        return False

    def __call__(self, problem, **kwargs):
        """Integrate *problem*; see :func:`rkjax.driver.integrate`."""
        from rkjax.driver import integrate

        return integrate(problem, self, **kwargs)

    def step(
        self,
        dynamics: Callable[[ArrayLike, ArrayLike], Array],
        t: ArrayLike,
        state: ArrayLike,
        h: ArrayLike,
        stages: ArrayLike | None = None,
    ) -> StepResult:
        """Advance ``state`` from ``t`` by ``h``.

        Args:
            dynamics: ODE right-hand side ``f(t, y) -> dy/dt``. Must be
                traceable by JAX. Hashable callables reuse one compiled
                Newton solve across steps; others run it eagerly.
            t: Current time.
            state: Current state vector.
            h: Step size. May be negative for backward integration.
            stages: Optional Newton seed, normally the ``stages`` of the
                previous :class:`StepResult`.

        Returns:
            StepResult: The step, with ``iterations`` set to the number of
            Newton iterations used.

        Raises:
            NewtonNonConvergenceError: If the stage equations do not
                converge within ``newton.max_iterations`` iterations.
        """
        dtype = get_dtype()
        t = jnp.asarray(t, dtype=dtype)
        state = jnp.asarray(state, dtype=dtype)
        h = jnp.asarray(h, dtype=dtype)

        result = _stage_solver(dynamics)(
            dynamics, self.tableau, t, state, h, self.newton, stages
        )
        iterations = int(result.iterations)
        if not bool(result.converged):
            logger.debug(
                "Newton iteration failed at t=%.6g with h=%.6g after %d iterations",
                float(t), float(h), iterations,
            )
            raise NewtonNonConvergenceError(
                float(t), state, float(h), iterations, float(result.correction_norm)
            )

        b = jnp.asarray(self.tableau.b, dtype=dtype)
        return StepResult(
            t=t + h,
            state=state + h * (b @ result.stages),
            dt_used=h,
            error_estimate=jnp.asarray(0.0, dtype=dtype),
            dt_next=h,
            stages=result.stages,
            iterations=iterations,
        )


IRK = ImplicitRungeKuttaSolver
