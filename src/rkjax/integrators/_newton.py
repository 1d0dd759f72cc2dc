"""Newton solve of the coupled stage equations of implicit Runge-Kutta methods.

For an *s*-stage tableau the stage derivatives ``K = (k_1, ..., k_s)`` of a
step from ``(t, y)`` with size ``h`` satisfy

.. math::

    k_i = f\\Big(t + c_i h,\\; y + h \\sum_j a_{ij} k_j\\Big),
    \\qquad i = 1, \\dots, s,

a nonlinear system of dimension ``s * n``.  It is solved by a simplified
Newton iteration on the residual ``R(K) = K - F(K)``:

1. Seed ``K`` with the previous step's converged stages when available,
   otherwise with ``f(t, y)`` in every stage.
2. Approximate ``J = df/dy`` at ``(t, y)`` by forward differences, once per
   step.
3. LU-factor the iteration matrix ``M = I - h (A kron J)`` once per step.
4. Iterate ``K <- K + dK`` with ``M dK = -R(K)`` until the
   maximum-component norm of ``dK`` drops below the tolerance, or the
   iteration cap is reached.

The solve never raises: convergence is reported in the returned
:class:`NewtonResult`, so the kernel is compatible with ``jax.jit`` and
``jax.vmap``.  :class:`~rkjax.integrators.implicit.ImplicitRungeKuttaSolver`
turns a non-converged result into a
:class:`~rkjax.errors.NewtonNonConvergenceError`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

import jax
import jax.numpy as jnp
from jax import Array
from jax.scipy.linalg import lu_factor, lu_solve
from jax.typing import ArrayLike

from rkjax.config import get_dtype, get_jacobian_epsilon
from rkjax.integrators._types import NewtonParameters
from rkjax.tableau import ButcherTableau


class NewtonResult(NamedTuple):
    """Outcome of a Newton stage solve.

    Attributes:
        stages: Final stage derivatives, shape ``(stages, n)``.
        iterations: Number of Newton iterations performed.
        converged: Whether the last correction met the tolerance.
        correction_norm: Maximum-component norm of the last correction.
    """

    stages: Array
    iterations: Array
    converged: Array
    correction_norm: Array


def finite_difference_jacobian(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    f0: ArrayLike | None = None,
) -> Array:
    """Approximate ``df/dy`` at ``(t, state)`` by forward differences.

    Column *j* is ``(f(t, y + d_j e_j) - f(t, y)) / d_j`` with
    ``d_j = eps * max(1, |y_j|)`` and ``eps`` from
    :func:`~rkjax.config.get_jacobian_epsilon`.  The perturbed evaluations
    are batched with ``jax.vmap``.

    Args:
        dynamics: ODE right-hand side ``f(t, y) -> dy/dt``.
        t: Evaluation time.
        state: Evaluation state, shape ``(n,)``.
        f0: ``f(t, state)`` if already known.

    Returns:
        jax.Array: Jacobian approximation, shape ``(n, n)``.
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    if f0 is None:
        f0 = dynamics(t, state)
    f0 = jnp.asarray(f0, dtype=dtype)

    delta = get_jacobian_epsilon() * jnp.maximum(1.0, jnp.abs(state))
    # Use the representable perturbation actually applied to y.
    delta = (state + delta) - state
    perturbations = jnp.diag(delta)

    f_perturbed = jax.vmap(lambda dy: dynamics(t, state + dy))(perturbations)
    return ((f_perturbed - f0) / delta[:, None]).T


def stage_residual(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    tableau: ButcherTableau,
    t: ArrayLike,
    state: ArrayLike,
    h: ArrayLike,
    stages: ArrayLike,
) -> Array:
    """Evaluate ``R(K) = K - F(K)`` for stage derivatives *stages*.

    Args:
        dynamics: ODE right-hand side ``f(t, y) -> dy/dt``.
        tableau: Method coefficients.
        t: Time at the start of the step.
        state: State at the start of the step, shape ``(n,)``.
        h: Step size.
        stages: Stage derivatives, shape ``(stages, n)``.

    Returns:
        jax.Array: Residual, shape ``(stages, n)``.
    """
    a, _, c = tableau.as_arrays()
    stage_states = state + h * (a @ stages)
    evaluated = jnp.stack(
        [dynamics(t + c[i] * h, stage_states[i]) for i in range(tableau.stages)]
    )
    return stages - evaluated


def newton_stage_solve(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    tableau: ButcherTableau,
    t: ArrayLike,
    state: ArrayLike,
    h: ArrayLike,
    newton: NewtonParameters | None = None,
    stages0: ArrayLike | None = None,
) -> NewtonResult:
    """Solve the implicit stage equations of one step.

    Args:
        dynamics: ODE right-hand side ``f(t, y) -> dy/dt``.
        tableau: Method coefficients.
        t: Time at the start of the step.
        state: State at the start of the step, shape ``(n,)``.
        h: Step size. May be negative for backward integration.
        newton: Tolerance and iteration cap. Uses default
            :class:`NewtonParameters` if ``None``.
        stages0: Optional seed, shape ``(stages, n)``, typically the
            converged stages of the previous step. Ignored if its shape does
            not match.

    Returns:
        NewtonResult: Named tuple with the final stages, the iteration
        count, the convergence flag and the last correction norm.

    Examples:
        ```python
        import jax.numpy as jnp
        from rkjax.integrators import newton_stage_solve
        from rkjax.methods import get_tableau
        result = newton_stage_solve(
            lambda t, y: -y, get_tableau("BackwardEuler"), 0.0, jnp.array([1.0]), 0.1
        )
        result.stages  # ~[[-1/1.1]]
        ```
    """
    if newton is None:
        newton = NewtonParameters()

    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    h = jnp.asarray(h, dtype=dtype)

    s = tableau.stages
    n = state.shape[0]
    a, _, _ = tableau.as_arrays()

    f0 = jnp.asarray(dynamics(t, state), dtype=dtype)
    if stages0 is not None and jnp.shape(stages0) == (s, n):
        k0 = jnp.asarray(stages0, dtype=dtype)
    else:
        k0 = jnp.tile(f0, (s, 1))

    jac = finite_difference_jacobian(dynamics, t, state, f0)
    iteration_matrix = jnp.eye(s * n, dtype=dtype) - h * jnp.kron(a, jac)
    lu_and_piv = lu_factor(iteration_matrix)

    tolerance = jnp.asarray(newton.tolerance, dtype=dtype)

    def cond_fn(carry):
        _k, iterations, converged, _norm = carry
        return (~converged) & (iterations < newton.max_iterations)

    def body_fn(carry):
        k, iterations, _converged, _norm = carry
        residual = stage_residual(dynamics, tableau, t, state, h, k)
        dk = lu_solve(lu_and_piv, -residual.reshape(s * n)).reshape(s, n)
        norm = jnp.max(jnp.abs(dk))
        # NaN compares False, so a blown-up iteration runs to the cap.
        return (k + dk, iterations + 1, norm < tolerance, norm)

    init_carry = (
        k0,
        jnp.asarray(0, dtype=jnp.int32),
        jnp.asarray(False),
        jnp.asarray(jnp.inf, dtype=dtype),
    )
    stages, iterations, converged, norm = jax.lax.while_loop(cond_fn, body_fn, init_carry)

    return NewtonResult(
        stages=stages,
        iterations=iterations,
        converged=converged,
        correction_norm=norm,
    )
