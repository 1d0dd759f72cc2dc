"""Explicit Runge-Kutta solver.

Explicit methods have a strictly lower-triangular coupling matrix, so each
stage is a closed-form evaluation of the previous ones:

.. math::

    k_i = f\\Big(t + c_i h,\\; y + h \\sum_{j<i} a_{ij} k_j\\Big), \\qquad
    y' = y + h \\sum_i b_i k_i.

With :class:`~rkjax.integrators._types.AdaptiveParameters` attached, every
step is wrapped in an accept/reject loop.  Embedded tableaux estimate the
local error from their second weight vector; any other explicit tableau
falls back to step doubling.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from rkjax.config import get_dtype
from rkjax.errors import StepRejectionLimitExceeded, StepSizeUnderflowError
from rkjax.integrators._adaptive import (
    compute_error_norm,
    compute_next_step_size,
    embedded_error,
    richardson_error,
)
from rkjax.integrators._types import AdaptiveParameters, StepResult, StepSize
from rkjax.tableau import ButcherTableau

logger = logging.getLogger(__name__)


def explicit_stages(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    tableau: ButcherTableau,
    t: ArrayLike,
    state: ArrayLike,
    h: ArrayLike,
) -> Array:
    """Evaluate the stage derivatives of an explicit tableau.

    Zero coefficients are skipped, so sparse tableaux cost no extra work.

    Args:
        dynamics: ODE right-hand side ``f(t, y) -> dy/dt``.
        tableau: Strictly lower-triangular tableau.
        t: Time at the start of the step.
        state: State at the start of the step.
        h: Step size.

    Returns:
        jax.Array: Stage derivatives, shape ``(stages, n)``.
    """
    k = []
    for i in range(tableau.stages):
        increment = _weighted_sum(tableau.a[i][:i], k)
        stage_state = state if increment is None else state + h * increment
        k.append(jnp.asarray(dynamics(t + tableau.c[i] * h, stage_state), dtype=state.dtype))
    return jnp.stack(k)


def _weighted_sum(weights, k):
    total = None
    for w, kj in zip(weights, k):
        if w == 0.0:
            continue
        total = w * kj if total is None else total + w * kj
    return total


def _combine(state, h, weights, k):
    increment = _weighted_sum(weights, k)
    if increment is None:
        return state
    return state + h * increment


@dataclass(frozen=True)
class ExplicitRungeKuttaSolver:
    """Explicit Runge-Kutta solver with optional adaptive step control.

    Args:
        tableau: Strictly lower-triangular Butcher tableau.
        stepsize: Fixed step length, or the initial step when *adaptive* is
            given. Bare numbers are wrapped in a :class:`StepSize`.
        adaptive: Optional error-control configuration.

    Raises:
        ValueError: If *tableau* is not explicit or *stepsize* is invalid.

    Examples:
        ```python
        import jax.numpy as jnp
        from rkjax.integrators import ExplicitRungeKuttaSolver
        from rkjax.methods import get_tableau
        solver = ExplicitRungeKuttaSolver(get_tableau("RK4"), 0.1)
        result = solver.step(lambda t, y: -y, 0.0, jnp.array([1.0]), 0.1)
        result.state  # ~[exp(-0.1)]
        ```
    """

    tableau: ButcherTableau
    stepsize: StepSize
    adaptive: AdaptiveParameters | None = None

    def __post_init__(self) -> None:
        if not self.tableau.is_explicit:
            raise ValueError(
                "ExplicitRungeKuttaSolver needs a strictly lower-triangular tableau; "
                "use ImplicitRungeKuttaSolver instead"
            )
        object.__setattr__(self, "stepsize", StepSize.coerce(self.stepsize))

    @property
    def is_adaptive(self) -> bool:
        """Whether steps are subject to error control."""
        return self.adaptive is not None

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
        """Advance ``state`` from ``t`` by (up to) ``h``.

        Without error control the step is a single deterministic pass. With
        error control the step is retried with a smaller ``h`` until the
        normalized error is <= 1.

        Args:
            dynamics: ODE right-hand side ``f(t, y) -> dy/dt``.
            t: Current time.
            state: Current state vector.
            h: Requested step. May be negative for backward integration.
            stages: Ignored; accepted so that both solver kinds share one
                ``step`` signature.

        Returns:
            StepResult: The accepted step.

        Raises:
            StepRejectionLimitExceeded: If more than
                ``adaptive.max_rejections`` consecutive attempts are
                rejected.
            StepSizeUnderflowError: If a rejected step cannot be retried
                with a strictly smaller step size.
        """
        dtype = get_dtype()
        t = jnp.asarray(t, dtype=dtype)
        state = jnp.asarray(state, dtype=dtype)
        h = jnp.asarray(h, dtype=dtype)

        if self.adaptive is None:
            k = explicit_stages(dynamics, self.tableau, t, state, h)
            return StepResult(
                t=t + h,
                state=_combine(state, h, self.tableau.b, k),
                dt_used=h,
                error_estimate=jnp.asarray(0.0, dtype=dtype),
                dt_next=h,
                stages=k,
            )
        return self._adaptive_step(dynamics, t, state, h)

    def _attempt(self, dynamics, t, state, h):
        """Compute one trial step and its unnormalized error estimate."""
        tableau = self.tableau
        k = explicit_stages(dynamics, tableau, t, state, h)
        state_full = _combine(state, h, tableau.b, k)
        if tableau.is_embedded:
            return state_full, embedded_error(h, tableau.b, tableau.b_hat, k), k

        half = 0.5 * h
        state_mid = _combine(state, half, tableau.b, explicit_stages(dynamics, tableau, t, state, half))
        k_mid = explicit_stages(dynamics, tableau, t + half, state_mid, half)
        state_half = _combine(state_mid, half, tableau.b, k_mid)
        return state_half, richardson_error(state_full, state_half, tableau.order), k

    def _adaptive_step(self, dynamics, t, state, h):
        config = self.adaptive
        order = self.tableau.error_order
        attempted = []

        while True:
            attempted.append(float(h))
            state_new, error_vec, k = self._attempt(dynamics, t, state, h)
            error = compute_error_norm(error_vec, state_new, state, config.abs_tol, config.rel_tol)
            if not math.isfinite(float(error)):
                error = jnp.asarray(jnp.inf, dtype=state.dtype)

            h_proposed = compute_next_step_size(
                error, h, order, config.safety_factor,
                config.min_scale_factor, config.max_scale_factor,
                config.min_step, config.max_step,
            )

            if float(error) <= 1.0:
                return StepResult(
                    t=t + h,
                    state=state_new,
                    dt_used=h,
                    error_estimate=error,
                    dt_next=h_proposed,
                    stages=k,
                    rejections=len(attempted) - 1,
                )

            rejections = len(attempted)
            logger.debug(
                "Rejected step at t=%.6g with h=%.6g (error norm %.3e)",
                float(t), float(h), float(error),
            )
            if abs(float(h_proposed)) >= abs(float(h)):
                raise StepSizeUnderflowError(
                    float(t), state, float(h), rejections, attempted,
                    message=(
                        f"Step rejected at t={float(t):.6g} but h={float(h):.6g} "
                        f"cannot shrink below min_step={config.min_step:.3g}"
                    ),
                )
            if rejections > config.max_rejections:
                raise StepRejectionLimitExceeded(float(t), state, float(h), rejections, attempted)
            h = h_proposed


ERK = ExplicitRungeKuttaSolver
