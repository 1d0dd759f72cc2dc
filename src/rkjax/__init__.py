"""
rkjax is a small Runge-Kutta integration library for initial value problems, implemented in JAX.
"""

from .config import set_dtype, get_dtype

from .errors import (
    RungeKuttaError,
    MalformedTableauError,
    NewtonNonConvergenceError,
    StepRejectionLimitExceeded,
    StepSizeUnderflowError,
    StepFailureError,
)

from .tableau import ButcherTableau

from .integrators import (
    AdaptiveParameters,
    NewtonParameters,
    StepResult,
    StepSize,
    ExplicitRungeKuttaSolver,
    ImplicitRungeKuttaSolver,
    ERK,
    IRK,
)

from .problem import InitialValueProblem, Solution, SolverStatus
from .driver import integrate

from .methods import create_solver, get_tableau, available_methods
