"""Local error estimation and step-size control for explicit solvers.

Error control follows the usual embedded Runge-Kutta recipe:

1. Estimate the local error of the step, either from the embedded weights
   (:func:`embedded_error`) or by step doubling (:func:`richardson_error`).
2. Normalize it with mixed absolute/relative tolerances
   (:func:`compute_error_norm`); the step is accepted if the norm is <= 1.
3. Propose the next step from the norm and the controller order
   (:func:`compute_next_step_size`).
"""

from __future__ import annotations

from collections.abc import Sequence

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from rkjax.config import get_dtype


def embedded_error(
    h: ArrayLike,
    b: Sequence[float],
    b_hat: Sequence[float],
    stages: ArrayLike,
) -> Array:
    """Local error estimate ``h * sum_i (b_i - b_hat_i) k_i`` of an embedded pair.

    Args:
        h: Step size.
        b: Weights of the propagated solution.
        b_hat: Embedded weights.
        stages: Stage derivatives, shape ``(stages, n)``.

    Returns:
        jax.Array: Error vector, shape ``(n,)``.
    """
    stages = jnp.asarray(stages, dtype=get_dtype())
    weights = jnp.asarray(b, dtype=get_dtype()) - jnp.asarray(b_hat, dtype=get_dtype())
    return h * (weights @ stages)


def richardson_error(state_full: ArrayLike, state_half: ArrayLike, order: int) -> Array:
    """Local error estimate of two half steps compared with one full step.

    For a method of order *p* the error of the two-half-step solution is
    approximately ``(y_half - y_full) / (2**p - 1)``.

    Args:
        state_full: Result of one step of size ``h``.
        state_half: Result of two steps of size ``h / 2``.
        order: Order *p* of the method.

    Returns:
        jax.Array: Error vector of ``state_half``.
    """
    state_full = jnp.asarray(state_full, dtype=get_dtype())
    state_half = jnp.asarray(state_half, dtype=get_dtype())
    return (state_half - state_full) / (2.0**order - 1.0)


def compute_error_norm(
    error_vec: ArrayLike,
    state_new: ArrayLike,
    state_old: ArrayLike,
    abs_tol: float,
    rel_tol: float,
) -> Array:
    """Scale a local error vector by its tolerances and return the worst component.

    Component *i* may carry an error of
    ``abs_tol + rel_tol * max(|y_new_i|, |y_old_i|)``; the result is the
    largest ratio of actual to allowed error, so a step passes when it is
    at most 1.

    Args:
        error_vec: Local error estimate of the step.
        state_new: Propagated solution.
        state_old: State at the beginning of the step.
        abs_tol: Absolute error tolerance.
        rel_tol: Relative error tolerance.

    Returns:
        jax.Array: Scalar error ratio.
    """
    dtype = get_dtype()
    magnitude = jnp.maximum(
        jnp.abs(jnp.asarray(state_new, dtype=dtype)),
        jnp.abs(jnp.asarray(state_old, dtype=dtype)),
    )
    allowed = abs_tol + rel_tol * magnitude
    return jnp.max(jnp.abs(jnp.asarray(error_vec, dtype=dtype)) / allowed)


def compute_next_step_size(
    error: ArrayLike,
    h: ArrayLike,
    order: float,
    safety_factor: float,
    min_scale_factor: float,
    max_scale_factor: float,
    min_step: float,
    max_step: float,
) -> Array:
    """Propose the step to try after an attempt with error ratio *error*.

    The local error of a controller of order *q* behaves like ``h**(q+1)``,
    so the step that would just meet the tolerance is
    ``|h| * error**(-1/(q+1))``.  That factor is damped by *safety_factor*
    and bounded to ``[min_scale_factor, max_scale_factor]``, and the
    resulting magnitude to ``[min_step, max_step]``.  Zero error grows the
    step by the maximum factor; infinite or NaN error shrinks it by the
    minimum factor.  The sign of *h* is kept.

    Args:
        error: Error ratio from :func:`compute_error_norm`.
        h: Step of the attempt. Negative for backward integration.
        order: Controller order *q*.
        safety_factor: Damping applied to the predicted factor.
        min_scale_factor: Smallest allowed ``|h_next| / |h|``.
        max_scale_factor: Largest allowed ``|h_next| / |h|``.
        min_step: Smallest allowed ``|h_next|``.
        max_step: Largest allowed ``|h_next|``.

    Returns:
        jax.Array: Proposed step with the sign of *h*.
    """
    dtype = get_dtype()
    error = jnp.asarray(error, dtype=dtype)
    h = jnp.asarray(h, dtype=dtype)

    predicted = jnp.where(
        error > 0.0, error ** (-1.0 / (order + 1.0)), max_scale_factor / safety_factor
    )
    # NaN fails every comparison above; treat it as an unbounded error.
    predicted = jnp.where(jnp.isnan(error), 0.0, predicted)
    factor = jnp.clip(safety_factor * predicted, min_scale_factor, max_scale_factor)
    return jnp.sign(h) * jnp.clip(jnp.abs(h) * factor, min_step, max_step)
