"""Type definitions for the Runge-Kutta steppers.

Provides the core data types shared by the explicit and implicit solvers:

- :class:`StepResult`: Output of every ``step`` call, containing the new
  time and state, the step actually taken, the error estimate, the suggested
  next step and the converged stage derivatives.
- :class:`NewtonParameters`: Convergence tolerance and iteration cap of the
  implicit stage solve.
- :class:`AdaptiveParameters`: Configuration for embedded-tableau error
  control in explicit solvers.
- :class:`StepSize`: The initial (or fixed) step length of a solver.

:class:`StepResult` is a :class:`~typing.NamedTuple`, which JAX treats as a
pytree automatically.  The configuration types are frozen dataclasses that
validate their fields on construction.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple

from jax import Array


class StepResult(NamedTuple):
    """Result of a single accepted integrator step.

    For fixed-step solvers ``error_estimate`` is always 0.0 and ``dt_next``
    equals ``dt_used``.

    Attributes:
        t: Time at the end of the step, ``t + dt_used``.
        state: State vector at ``t``.
        dt_used: Actual timestep taken. For adaptive solvers this may be
            smaller than the requested ``h`` if attempts were rejected.
        error_estimate: Normalized error estimate. A value <= 1.0 means the
            step met the tolerance. Always 0.0 without error control.
        dt_next: Suggested timestep for the next step.
        stages: Stage derivatives ``k`` of the accepted step, shape
            ``(stages, n)``. Implicit solvers accept them back as the Newton
            seed of the following step.
        iterations: Newton iterations spent on the step (0 for explicit
            solvers).
        rejections: Attempts rejected before this step was accepted.
    """

    t: Array
    state: Array
    dt_used: Array
    error_estimate: Array
    dt_next: Array
    stages: Array
    iterations: int = 0
    rejections: int = 0


@dataclass(frozen=True)
class NewtonParameters:
    """Configuration of the Newton solve of implicit stage equations.

    Args:
        tolerance: Convergence threshold on the maximum-component norm of
            the Newton correction, taken over every stage and state
            component.
        max_iterations: Maximum number of Newton iterations per step.

    Raises:
        ValueError: If *tolerance* is not positive or *max_iterations* is
            not a positive integer.
    """

    tolerance: float = 1e-3
    max_iterations: int = 10

    def __post_init__(self) -> None:
        if not self.tolerance > 0.0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance!r}")
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise ValueError(
                f"max_iterations must be an integer, got {self.max_iterations!r}"
            )
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")


@dataclass(frozen=True)
class AdaptiveParameters:
    """Configuration for adaptive step-size control.

    Used by :class:`~rkjax.integrators.explicit.ExplicitRungeKuttaSolver` to
    accept, reject and rescale steps.

    Attributes:
        abs_tol: Absolute error tolerance per component. Components with
            magnitude near zero are controlled by this tolerance.
        rel_tol: Relative error tolerance per component. Components with
            large magnitude are controlled by this tolerance.
        safety_factor: Multiplicative safety factor applied to step-size
            predictions. Must lie in ``(0, 1]`` so that rejected steps
            always shrink.
        min_scale_factor: Minimum allowed ratio ``dt_next / dt_used``.
        max_scale_factor: Maximum allowed ratio ``dt_next / dt_used``.
        min_step: Absolute minimum allowed step size. A rejected step that
            cannot shrink below its current size fails instead of being
            accepted.
        max_step: Absolute maximum allowed step size.
        max_rejections: Maximum number of consecutive rejected attempts
            before the step fails.
    """

    abs_tol: float = 1e-6
    rel_tol: float = 1e-3
    safety_factor: float = 0.9
    min_scale_factor: float = 0.2
    max_scale_factor: float = 10.0
    min_step: float = 1e-12
    max_step: float = math.inf
    max_rejections: int = 10

    def __post_init__(self) -> None:
        if self.abs_tol < 0.0 or self.rel_tol < 0.0 or self.abs_tol + self.rel_tol <= 0.0:
            raise ValueError(
                f"abs_tol and rel_tol must be non-negative and not both zero, "
                f"got abs_tol={self.abs_tol}, rel_tol={self.rel_tol}"
            )
        if not 0.0 < self.safety_factor <= 1.0:
            raise ValueError(f"safety_factor must be in (0, 1], got {self.safety_factor}")
        if not 0.0 < self.min_scale_factor < 1.0:
            raise ValueError(
                f"min_scale_factor must be in (0, 1), got {self.min_scale_factor}"
            )
        if not self.max_scale_factor > 1.0:
            raise ValueError(f"max_scale_factor must be > 1, got {self.max_scale_factor}")
        if not 0.0 < self.min_step <= self.max_step:
            raise ValueError(
                f"Need 0 < min_step <= max_step, got min_step={self.min_step}, "
                f"max_step={self.max_step}"
            )
        if self.max_rejections < 0:
            raise ValueError(f"max_rejections must be >= 0, got {self.max_rejections}")


@dataclass(frozen=True)
class StepSize:
    """Initial step length of a solver.

    Fixed-step solvers use ``h`` for every step. Adaptive solvers start from
    ``h`` and let the controller propose each following step; the running
    value belongs to the integration run, never to the solver.

    Args:
        h: Positive, finite step length. The driver applies the sign of the
            integration direction.

    Raises:
        ValueError: If *h* is not a positive finite number.
    """

    h: float

    def __post_init__(self) -> None:
        h = float(self.h)
        if not (math.isfinite(h) and h > 0.0):
            raise ValueError(f"Step size must be a positive finite number, got {self.h!r}")
        object.__setattr__(self, "h", h)

    @classmethod
    def coerce(cls, value: StepSize | float) -> StepSize:
        """Return *value* as a :class:`StepSize`, wrapping bare numbers."""
        if isinstance(value, StepSize):
            return value
        return cls(value)
