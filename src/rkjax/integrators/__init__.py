"""Runge-Kutta steppers.

Provides one explicit and one implicit solver, both driven by a
:class:`~rkjax.tableau.ButcherTableau` and sharing a common step contract::

    result = solver.step(dynamics, t, state, h, stages)

where ``dynamics(t, y) -> dy/dt`` defines the ODE right-hand side and the
result is a :class:`StepResult` named tuple.

- :class:`ExplicitRungeKuttaSolver` -- direct stage substitution, with
  optional embedded error control (:class:`AdaptiveParameters`)
- :class:`ImplicitRungeKuttaSolver` -- simplified Newton solve of the
  coupled stages (:class:`NewtonParameters`)
"""

from rkjax.integrators._adaptive import compute_error_norm, compute_next_step_size
from rkjax.integrators._newton import (
    NewtonResult,
    finite_difference_jacobian,
    newton_stage_solve,
    stage_residual,
)
from rkjax.integrators._types import (
    AdaptiveParameters,
    NewtonParameters,
    StepResult,
    StepSize,
)
from rkjax.integrators.explicit import ERK, ExplicitRungeKuttaSolver, explicit_stages
from rkjax.integrators.implicit import IRK, ImplicitRungeKuttaSolver

__all__ = [
    "AdaptiveParameters",
    "NewtonParameters",
    "StepResult",
    "StepSize",
    "NewtonResult",
    "ExplicitRungeKuttaSolver",
    "ImplicitRungeKuttaSolver",
    "ERK",
    "IRK",
    "explicit_stages",
    "newton_stage_solve",
    "stage_residual",
    "finite_difference_jacobian",
    "compute_error_norm",
    "compute_next_step_size",
]
