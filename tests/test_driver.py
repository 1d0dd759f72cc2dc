"""Tests for the integration driver and the problem/solution types."""

import logging
import math
from dataclasses import dataclass

import jax.numpy as jnp
import pytest

from rkjax import (
    AdaptiveParameters,
    InitialValueProblem,
    NewtonNonConvergenceError,
    Solution,
    SolverStatus,
    StepFailureError,
    StepRejectionLimitExceeded,
    integrate,
)
from rkjax.methods import (
    backward_euler,
    dormand_prince54,
    gauss_legendre4,
    heun_euler21,
    radau_iia5,
    rk4,
)


def _exponential_decay(t, x):
    return -x


def _square(t, x):
    return x**2


def _decay_problem(t0=0.0, tf=1.0):
    return InitialValueProblem(_exponential_decay, jnp.array([1.0]), t0, tf)


@dataclass
class _ScaledDecay:
    """Parametrized y' = -rate * y. Dataclass instances are unhashable."""

    rate: float

    def __call__(self, t, y):
        return -self.rate * y


# ──────────────────────────────────────────────
# Problem and solution types
# ──────────────────────────────────────────────

class TestProblem:
    def test_scalar_state_promoted(self):
        problem = InitialValueProblem(_exponential_decay, 2.0, 0.0, 1.0)
        assert problem.y0.shape == (1,)
        assert problem.y0.dtype == jnp.float64

    def test_times_become_floats(self):
        problem = InitialValueProblem(_exponential_decay, jnp.array([1.0]), 0, 2)
        assert isinstance(problem.t0, float)
        assert isinstance(problem.tf, float)
        assert problem.is_bounded

    def test_open_ended(self):
        problem = InitialValueProblem(_exponential_decay, jnp.array([1.0]))
        assert problem.tf is None
        assert not problem.is_bounded

    def test_matrix_state_rejected(self):
        with pytest.raises(ValueError, match="scalar or a vector"):
            InitialValueProblem(_exponential_decay, jnp.ones((2, 2)), 0.0, 1.0)

    @pytest.mark.parametrize("kwargs", [{"t0": math.inf}, {"tf": math.nan}])
    def test_non_finite_time_rejected(self, kwargs):
        with pytest.raises(ValueError, match="finite"):
            InitialValueProblem(_exponential_decay, jnp.array([1.0]), **kwargs)


class TestSolution:
    def test_empty(self):
        solution = Solution()
        assert len(solution) == 0
        assert solution.status is SolverStatus.COMPLETED
        assert solution.y.shape == (0, 0)
        with pytest.raises(IndexError):
            solution.final

    def test_append_and_views(self):
        solution = Solution()
        solution.append(0.0, jnp.array([1.0, 2.0]))
        solution.append(0.5, jnp.array([3.0, 4.0]))
        assert len(solution) == 2
        assert solution.t.shape == (2,)
        assert solution.y.shape == (2, 2)
        assert [t for t, _ in solution] == [0.0, 0.5]
        t, y = solution.final
        assert t == 0.5
        assert jnp.allclose(y, jnp.array([3.0, 4.0]))


# ──────────────────────────────────────────────
# Fixed-step integration
# ──────────────────────────────────────────────

class TestFixedStep:
    def test_backward_euler_decay(self):
        """Backward Euler on y' = -y reproduces (1/1.1)^n on the grid."""
        solution = integrate(_decay_problem(), backward_euler(0.1))
        assert len(solution) == 11
        assert solution.status is SolverStatus.COMPLETED
        assert solution.accepted_steps == 10
        assert solution.times[-1] == 1.0
        assert jnp.allclose(solution.t, jnp.linspace(0.0, 1.0, 11), atol=1e-12)

        y = solution.y[:, 0]
        assert jnp.all(jnp.diff(y) < 0.0)
        assert jnp.all(y > 0.0)
        assert float(y[-1]) == pytest.approx((1.0 / 1.1) ** 10, abs=1e-8)
        assert abs(float(y[-1]) - math.exp(-1.0)) < 0.02

    def test_backward_euler_first_order(self):
        """Halving the step roughly halves the global error."""
        errors = []
        for h in (0.1, 0.05):
            _, y = integrate(_decay_problem(), backward_euler(h, tolerance=1e-10)).final
            errors.append(abs(float(y[0]) - math.exp(-1.0)))
        assert errors[0] / errors[1] == pytest.approx(2.0, abs=0.2)

    def test_gauss_legendre_large_step(self):
        solution = integrate(_decay_problem(), gauss_legendre4(0.5))
        assert len(solution) == 3
        assert abs(float(solution.y[-1, 0]) - math.exp(-1.0)) < 1e-4

    def test_newton_statistics(self):
        solution = integrate(_decay_problem(), backward_euler(0.1))
        assert solution.rejected_steps == 0
        assert solution.newton_iterations >= solution.accepted_steps

    def test_explicit_fixed_step(self):
        solution = integrate(_decay_problem(), rk4(0.1))
        assert len(solution) == 11
        assert solution.newton_iterations == 0
        assert float(solution.y[-1, 0]) == pytest.approx(math.exp(-1.0), abs=1e-6)

    def test_last_step_shortened(self):
        """A step that does not divide the span is cut short at tf."""
        solution = integrate(_decay_problem(tf=1.0), rk4(0.3))
        assert solution.times[-1] == 1.0
        assert solution.times[-2] == pytest.approx(0.9)
        assert len(solution) == 5

    def test_backward_in_time(self):
        problem = InitialValueProblem(_exponential_decay, jnp.array([math.exp(-1.0)]), 1.0, 0.0)
        solution = integrate(problem, gauss_legendre4(0.1, tolerance=1e-10))
        assert solution.times[-1] == 0.0
        assert all(later < earlier for earlier, later in zip(solution.times, solution.times[1:]))
        assert float(solution.y[-1, 0]) == pytest.approx(1.0, abs=1e-6)

    def test_zero_length_span(self):
        solution = integrate(_decay_problem(tf=0.0), backward_euler(0.1))
        assert len(solution) == 1
        assert solution.accepted_steps == 0
        assert solution.status is SolverStatus.COMPLETED

    def test_solver_is_callable(self):
        problem = _decay_problem()
        by_call = backward_euler(0.25)(problem)
        by_function = integrate(problem, backward_euler(0.25))
        assert by_call.times == by_function.times
        assert jnp.allclose(by_call.y, by_function.y)


# ──────────────────────────────────────────────
# Adaptive integration
# ──────────────────────────────────────────────

class TestAdaptive:
    def test_lands_on_final_time(self):
        config = AdaptiveParameters(abs_tol=1e-10, rel_tol=1e-10)
        solution = integrate(_decay_problem(tf=2.0), dormand_prince54(0.5, adaptive=config))
        assert solution.times[-1] == 2.0
        assert all(later > earlier for earlier, later in zip(solution.times, solution.times[1:]))
        assert float(solution.y[-1, 0]) == pytest.approx(math.exp(-2.0), abs=1e-8)

    def test_counts_rejections(self):
        config = AdaptiveParameters(abs_tol=1e-10, rel_tol=1e-10)
        solution = integrate(_decay_problem(), dormand_prince54(1.0, adaptive=config))
        assert solution.rejected_steps > 0
        assert solution.newton_iterations == 0

    def test_step_size_grows(self):
        """A loose tolerance lets the controller take few steps."""
        config = AdaptiveParameters(abs_tol=1e-4, rel_tol=1e-4)
        solution = integrate(_decay_problem(tf=10.0), dormand_prince54(0.01, adaptive=config))
        assert solution.accepted_steps < 100

    def test_backward_in_time(self):
        problem = InitialValueProblem(_exponential_decay, jnp.array([math.exp(-1.0)]), 1.0, 0.0)
        config = AdaptiveParameters(abs_tol=1e-10, rel_tol=1e-10)
        solution = integrate(problem, dormand_prince54(0.1, adaptive=config))
        assert solution.times[-1] == 0.0
        assert float(solution.y[-1, 0]) == pytest.approx(1.0, abs=1e-8)

    def test_shrunk_final_step_does_not_snap(self):
        """A landing step shortened by a rejection is followed by one more step."""
        def ramp(t, y):
            return 2.00002 * t * jnp.ones_like(y)

        # Error ratio of the first attempt is 1.00001, so the retry is only
        # a few millionths shorter than the remaining span.
        config = AdaptiveParameters(abs_tol=1.0, rel_tol=0.0, safety_factor=1.0)
        problem = InitialValueProblem(ramp, jnp.array([0.0]), 0.0, 1.0)
        solution = integrate(problem, heun_euler21(1.0, adaptive=config))

        assert solution.rejected_steps == 1
        assert len(solution) == 3
        assert 0.99 < solution.times[1] < 1.0
        assert solution.times[-1] == 1.0
        # Heun is exact for a linear ramp: y(t) = 1.00001 t^2.
        assert float(solution.y[1, 0]) == pytest.approx(1.00001 * solution.times[1] ** 2, abs=1e-10)
        assert float(solution.y[-1, 0]) == pytest.approx(1.00001, abs=1e-10)


# ──────────────────────────────────────────────
# Failures
# ──────────────────────────────────────────────

class TestFailures:
    def test_newton_failure_keeps_partial_trajectory(self):
        """Backward Euler on y' = y^2 has no stage solution once y > 1/4."""
        problem = InitialValueProblem(_square, jnp.array([0.1]), 0.0, 20.0)
        solver = backward_euler(1.0, tolerance=1e-10, max_iterations=50)
        with pytest.raises(StepFailureError) as excinfo:
            integrate(problem, solver)
        error = excinfo.value

        assert isinstance(error.cause, NewtonNonConvergenceError)
        assert error.__cause__ is error.cause
        assert error.cause.iterations == 50

        solution = error.solution
        assert 2 <= len(solution) < 21
        assert solution.times == [float(i) for i in range(len(solution))]
        assert error.t == solution.times[-1]
        assert error.h == 1.0
        assert jnp.allclose(error.y, solution.states[-1])
        # Every accepted state still admits a real stage solution.
        assert all(float(y[0]) <= 0.25 for y in solution.states[:-1])

    def test_rejection_failure(self):
        config = AdaptiveParameters(abs_tol=1e-300, rel_tol=1e-300, max_rejections=2)
        with pytest.raises(StepFailureError) as excinfo:
            integrate(_decay_problem(), dormand_prince54(0.5, adaptive=config))
        error = excinfo.value
        assert isinstance(error.cause, StepRejectionLimitExceeded)
        assert len(error.solution) == 1
        assert error.t == 0.0
        # The reported step is the last rejected attempt, not the requested one.
        assert error.h == error.cause.attempted_steps[-1]
        assert error.h < 0.5

    def test_failure_is_logged(self, caplog):
        config = AdaptiveParameters(abs_tol=1e-300, rel_tol=1e-300, max_rejections=0)
        with caplog.at_level(logging.ERROR, logger="rkjax.driver"):
            with pytest.raises(StepFailureError):
                integrate(_decay_problem(), dormand_prince54(0.5, adaptive=config))
        assert any("failed" in record.getMessage() for record in caplog.records)


# ──────────────────────────────────────────────
# Budgets
# ──────────────────────────────────────────────

class TestBudgets:
    def test_max_steps(self, caplog):
        with caplog.at_level(logging.WARNING, logger="rkjax.driver"):
            solution = integrate(_decay_problem(tf=10.0), rk4(0.1), max_steps=5)
        assert solution.status is SolverStatus.MAX_STEPS
        assert len(solution) == 6
        assert solution.times[-1] == pytest.approx(0.5)
        assert any("stopped" in record.getMessage() for record in caplog.records)

    def test_budget_not_reached(self):
        solution = integrate(_decay_problem(), rk4(0.1), max_steps=100)
        assert solution.status is SolverStatus.COMPLETED
        assert len(solution) == 11

    def test_open_ended_with_step_budget(self):
        problem = InitialValueProblem(_exponential_decay, jnp.array([1.0]))
        solution = integrate(problem, backward_euler(0.1), max_steps=3)
        assert solution.status is SolverStatus.MAX_STEPS
        assert solution.times[-1] == pytest.approx(0.3)

    def test_open_ended_without_budget(self):
        problem = InitialValueProblem(_exponential_decay, jnp.array([1.0]))
        with pytest.raises(ValueError, match="open-ended"):
            integrate(problem, backward_euler(0.1))

    def test_wall_time(self):
        solution = integrate(_decay_problem(tf=1e6), rk4(0.1), max_wall_time=1e-9)
        assert solution.status is SolverStatus.MAX_WALL_TIME
        assert len(solution) <= 2

    @pytest.mark.parametrize("kwargs", [{"max_steps": 0}, {"max_wall_time": 0.0}, {"max_wall_time": -1.0}])
    def test_invalid_budget(self, kwargs):
        with pytest.raises(ValueError):
            integrate(_decay_problem(), rk4(0.1), **kwargs)


# ──────────────────────────────────────────────
# Parametrized derivative objects
# ──────────────────────────────────────────────

class TestCallableDynamics:
    def test_unhashable_dynamics_implicit(self):
        """Implicit solvers accept derivative objects that cannot be hashed."""
        dynamics = _ScaledDecay(rate=2.0)
        with pytest.raises(TypeError):
            hash(dynamics)
        problem = InitialValueProblem(dynamics, jnp.array([1.0]), 0.0, 1.0)
        solution = integrate(problem, backward_euler(0.1, tolerance=1e-10))
        assert solution.times[-1] == 1.0
        assert float(solution.y[-1, 0]) == pytest.approx((1.0 / 1.2) ** 10, abs=1e-8)

    def test_unhashable_dynamics_matches_function(self):
        problem = InitialValueProblem(_ScaledDecay(rate=1.0), jnp.array([1.0]), 0.0, 1.0)
        by_object = integrate(problem, radau_iia5(0.25, tolerance=1e-10))
        by_function = integrate(_decay_problem(), radau_iia5(0.25, tolerance=1e-10))
        assert jnp.allclose(by_object.y, by_function.y, atol=1e-12)

    def test_unhashable_dynamics_explicit(self):
        problem = InitialValueProblem(_ScaledDecay(rate=1.0), jnp.array([1.0]), 0.0, 1.0)
        solution = integrate(problem, rk4(0.1))
        assert float(solution.y[-1, 0]) == pytest.approx(math.exp(-1.0), abs=1e-6)
