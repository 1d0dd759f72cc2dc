"""Initial value problems and their solution trajectories."""

from __future__ import annotations

import enum
import math
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from rkjax.config import get_dtype


@dataclass(frozen=True, eq=False)
class InitialValueProblem:
    """An ODE ``dy/dt = f(t, y)`` with ``y(t0) = y0``.

    Args:
        dynamics: Derivative function ``f(t, y) -> dy/dt``. It is called
            many times per step and must be free of side effects.
        y0: Initial state. Scalars are promoted to 1-element vectors.
        t0: Initial time.
        tf: Final time. May be smaller than *t0* for backward integration,
            or ``None`` for an open-ended integration bounded only by the
            driver's step or wall-clock budget.

    Raises:
        ValueError: If *y0* is not a scalar or a vector, or a time is not
            finite.

    Examples:
        ```python
        import jax.numpy as jnp
        from rkjax.problem import InitialValueProblem
        problem = InitialValueProblem(lambda t, y: -y, jnp.array([1.0]), 0.0, 1.0)
        ```
    """

    dynamics: Callable[[ArrayLike, ArrayLike], Array]
    y0: Array
    t0: float = 0.0
    tf: float | None = None

    def __post_init__(self) -> None:
        y0 = jnp.atleast_1d(jnp.asarray(self.y0, dtype=get_dtype()))
        if y0.ndim != 1:
            raise ValueError(f"y0 must be a scalar or a vector, got shape {y0.shape}")
        t0 = float(self.t0)
        if not math.isfinite(t0):
            raise ValueError(f"t0 must be finite, got {self.t0!r}")
        tf = None if self.tf is None else float(self.tf)
        if tf is not None and not math.isfinite(tf):
            raise ValueError(f"tf must be finite or None, got {self.tf!r}")
        object.__setattr__(self, "y0", y0)
        object.__setattr__(self, "t0", t0)
        object.__setattr__(self, "tf", tf)

    @property
    def is_bounded(self) -> bool:
        """Whether the problem has a final time."""
        return self.tf is not None


class SolverStatus(enum.Enum):
    """Why an integration run stopped."""

    COMPLETED = "completed"
    MAX_STEPS = "max_steps"
    MAX_WALL_TIME = "max_wall_time"


@dataclass
class Solution:
    """Trajectory of accepted ``(time, state)`` samples.

    Samples are appended in integration order and never removed.  Run
    statistics are accumulated by the driver alongside.

    Attributes:
        times: Sample times.
        states: Sample states.
        status: Why the run stopped.
        accepted_steps: Number of accepted steps.
        rejected_steps: Number of rejected adaptive attempts.
        newton_iterations: Total Newton iterations of implicit steps.
    """

    times: list[float] = field(default_factory=list)
    states: list[Array] = field(default_factory=list)
    status: SolverStatus = SolverStatus.COMPLETED
    accepted_steps: int = 0
    rejected_steps: int = 0
    newton_iterations: int = 0

    def append(self, t: float, state: Array) -> None:
        """Add a sample at the end of the trajectory."""
        self.times.append(float(t))
        self.states.append(state)

    def __len__(self) -> int:
        return len(self.times)

    def __iter__(self) -> Iterator[tuple[float, Array]]:
        return iter(zip(self.times, self.states))

    @property
    def t(self) -> Array:
        """Sample times as an array, shape ``(len(self),)``."""
        return jnp.asarray(self.times, dtype=get_dtype())

    @property
    def y(self) -> Array:
        """Sample states stacked into an array, shape ``(len(self), n)``."""
        if not self.states:
            return jnp.zeros((0, 0), dtype=get_dtype())
        return jnp.stack(self.states)

    @property
    def final(self) -> tuple[float, Array]:
        """The last ``(time, state)`` sample.

        Raises:
            IndexError: If the trajectory is empty.
        """
        return self.times[-1], self.states[-1]
