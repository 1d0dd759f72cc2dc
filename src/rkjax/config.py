"""Precision configuration shared by every rkjax module.

All arrays created by rkjax (states, stage derivatives, tableau
coefficients, error norms) use the dtype returned by :func:`get_dtype`.
The default is ``jnp.float32``, which runs everywhere JAX does; selecting
``jnp.float64`` turns on ``jax_enable_x64`` as a side effect.

Choose the dtype once, before the first step is compiled.  The implicit
solver's Newton kernel is traced under ``jax.jit`` and captures the dtype
that was active at trace time.

Tight Newton tolerances and order-of-convergence studies generally need
``float64``; in ``float32`` the finite-difference Jacobian and the stage
corrections bottom out near ``1e-4`` relative accuracy.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_SUPPORTED = (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64)

_dtype = jnp.float32


def set_dtype(dtype) -> None:
    """Select the float dtype used by rkjax.

    Args:
        dtype: ``jnp.float16``, ``jnp.bfloat16``, ``jnp.float32`` or
            ``jnp.float64``. The last one also enables JAX's 64-bit mode.

    Raises:
        ValueError: If *dtype* is not one of the supported float types.

    Examples:
        ```python
        import jax.numpy as jnp
        from rkjax import set_dtype
        set_dtype(jnp.float64)
        ```
    """
    global _dtype
    if dtype not in _SUPPORTED:
        raise ValueError(
            f"Unsupported dtype {dtype}; expected one of "
            f"jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the float dtype selected with :func:`set_dtype`."""
    return _dtype


def get_jacobian_epsilon() -> float:
    """Return the relative perturbation used for finite-difference Jacobians.

    The value is the square root of the machine epsilon of the configured
    float dtype, which balances truncation against cancellation error in a
    forward difference:

    - ``float64``:  ~1.5e-8
    - ``float32``:  ~3.5e-4
    - ``float16``:  ~3.1e-2
    - ``bfloat16``: ~8.8e-2

    Returns:
        float: Relative perturbation size.
    """
    return float(jnp.finfo(_dtype).eps) ** 0.5
