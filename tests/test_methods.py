"""Tests for the method catalog.

Every built-in method is checked for its convergence order on a smooth
nonlinear, non-autonomous problem; implicit methods are also run on a
stiff problem.
"""

import math

import jax.numpy as jnp
import pytest

from rkjax import (
    ExplicitRungeKuttaSolver,
    ImplicitRungeKuttaSolver,
    InitialValueProblem,
    NewtonParameters,
    integrate,
)
from rkjax import methods
from rkjax.methods import (
    ALIASES,
    EXPLICIT_TABLES,
    IMPLICIT_TABLES,
    available_methods,
    create_solver,
    get_tableau,
)


def _rational_dynamics(t, y):
    """y' = -2 t y^2. Solution with y(0) = 1: y(t) = 1 / (1 + t^2)."""
    return -2.0 * t * y**2


def _stiff_decay(t, y):
    return -1000.0 * y


def _stiff_forced(t, y):
    """y' = -50 (y - cos t), a stiff mode relaxing onto a slow forced solution."""
    return -50.0 * (y - jnp.cos(t))


def _stiff_forced_exact(t):
    """Solution of :func:`_stiff_forced` with y(0) = 0."""
    return (2500.0 * math.cos(t) + 50.0 * math.sin(t) - 2500.0 * math.exp(-50.0 * t)) / 2501.0


def _global_error(name, h):
    problem = InitialValueProblem(_rational_dynamics, jnp.array([1.0]), 0.0, 1.0)
    if name in IMPLICIT_TABLES:
        solver = create_solver(name, h, tolerance=1e-12, max_iterations=50)
    else:
        solver = create_solver(name, h)
    _, y = integrate(problem, solver).final
    return abs(float(y[0]) - 0.5)


_IMPLICIT_CONSTRUCTORS = {
    "backward_euler": "BackwardEuler",
    "implicit_euler": "BackwardEuler",
    "implicit_midpoint": "ImplicitMidpoint",
    "crank_nicolson": "CrankNicolson",
    "sdirk3": "SDIRK3",
    "gauss_legendre4": "GaussLegendre4",
    "gauss_legendre6": "GaussLegendre6",
    "lobatto_iiia4": "LobattoIIIA4",
    "lobatto_iiib2": "LobattoIIIB2",
    "lobatto_iiib4": "LobattoIIIB4",
    "lobatto_iiic2": "LobattoIIIC2",
    "lobatto_iiic4": "LobattoIIIC4",
    "radau_ia3": "RadauIA3",
    "radau_ia5": "RadauIA5",
    "radau_iia3": "RadauIIA3",
    "radau_iia5": "RadauIIA5",
}

_EXPLICIT_CONSTRUCTORS = {
    "forward_euler": "ForwardEuler",
    "explicit_midpoint": "ExplicitMidpoint",
    "heun2": "Heun2",
    "ralston2": "Ralston2",
    "kutta3": "Kutta3",
    "ssprk3": "SSPRK3",
    "rk4": "RK4",
    "rk38": "RK38",
    "heun_euler21": "HeunEuler21",
    "bogacki_shampine32": "BogackiShampine32",
    "fehlberg45": "Fehlberg45",
    "cash_karp54": "CashKarp54",
    "dormand_prince54": "DormandPrince54",
}


# ──────────────────────────────────────────────
# Registry
# ──────────────────────────────────────────────

class TestRegistry:
    def test_available_methods(self):
        names = available_methods()
        assert names == sorted(names)
        assert len(names) == len(EXPLICIT_TABLES) + len(IMPLICIT_TABLES) == 28
        assert not set(ALIASES) & set(names)

    def test_constructors_cover_catalog(self):
        assert set(_IMPLICIT_CONSTRUCTORS.values()) == set(IMPLICIT_TABLES)
        assert set(_EXPLICIT_CONSTRUCTORS.values()) == set(EXPLICIT_TABLES)

    @pytest.mark.parametrize("alias,name", sorted(ALIASES.items()))
    def test_aliases(self, alias, name):
        assert get_tableau(alias) == get_tableau(name)

    def test_unknown_method(self):
        with pytest.raises(KeyError, match="Unknown method"):
            get_tableau("RK99")
        with pytest.raises(KeyError):
            create_solver("RK99", 0.1)

    @pytest.mark.parametrize("name", sorted(EXPLICIT_TABLES))
    def test_explicit_catalog_is_explicit(self, name):
        assert get_tableau(name).is_explicit

    @pytest.mark.parametrize("name", sorted(IMPLICIT_TABLES))
    def test_implicit_catalog_is_implicit(self, name):
        assert not get_tableau(name).is_explicit

    def test_embedded_pairs(self):
        dopri = get_tableau("DormandPrince54")
        assert dopri.order == 5
        assert dopri.embedded_order == 4
        assert dopri.error_order == 4
        assert get_tableau("HeunEuler21").error_order == 1
        assert not get_tableau("RK4").is_embedded

    @pytest.mark.parametrize("function,name", sorted(_IMPLICIT_CONSTRUCTORS.items()))
    def test_implicit_constructors(self, function, name):
        solver = getattr(methods, function)(0.1)
        assert isinstance(solver, ImplicitRungeKuttaSolver)
        assert solver.tableau == get_tableau(name)
        assert solver.stepsize.h == 0.1
        assert solver.newton == NewtonParameters(tolerance=1e-3, max_iterations=10)

    @pytest.mark.parametrize("function,name", sorted(_EXPLICIT_CONSTRUCTORS.items()))
    def test_explicit_constructors(self, function, name):
        solver = getattr(methods, function)(0.1)
        assert isinstance(solver, ExplicitRungeKuttaSolver)
        assert solver.tableau == get_tableau(name)
        assert solver.adaptive is None

    def test_create_solver_options(self):
        solver = create_solver("GL4", 0.5, tolerance=1e-8, max_iterations=25)
        assert solver.tableau == get_tableau("GaussLegendre4")
        assert solver.newton.tolerance == 1e-8
        assert solver.newton.max_iterations == 25

    def test_create_solver_rejects_foreign_option(self):
        with pytest.raises(TypeError):
            create_solver("RK4", 0.1, tolerance=1e-6)
        with pytest.raises(TypeError):
            create_solver("BackwardEuler", 0.1, adaptive=None)

    def test_invalid_step(self):
        with pytest.raises(ValueError):
            create_solver("RadauIIA5", 0.0)


# ──────────────────────────────────────────────
# Convergence order
# ──────────────────────────────────────────────

class TestConvergenceOrder:
    @pytest.mark.parametrize("name", available_methods())
    def test_observed_order(self, name):
        """Halving h divides the global error by about 2**order."""
        order = get_tableau(name).order
        h = 0.2 if order >= 5 else 0.1
        ratio = _global_error(name, h) / _global_error(name, h / 2.0)
        observed = math.log2(ratio)
        assert order - 0.5 < observed < order + 1.0


# ──────────────────────────────────────────────
# Stiff problems
# ──────────────────────────────────────────────

class TestStiff:
    @pytest.mark.parametrize("name,bound", [
        ("BackwardEuler", 1e-6),
        ("RadauIIA5", 1e-6),
        ("GaussLegendre4", 1.0),
    ])
    def test_implicit_methods_stay_bounded(self, name, bound):
        problem = InitialValueProblem(_stiff_decay, jnp.array([1.0]), 0.0, 1.0)
        solver = create_solver(name, 0.1)
        solution = integrate(problem, solver)
        assert solution.newton_iterations <= 10 * solution.accepted_steps
        assert float(jnp.max(jnp.abs(solution.y))) <= 1.0
        assert abs(float(solution.y[-1, 0])) <= bound

    def test_explicit_method_diverges(self):
        problem = InitialValueProblem(_stiff_decay, jnp.array([1.0]), 0.0, 1.0)
        solution = integrate(problem, create_solver("RK4", 0.1))
        assert not float(jnp.abs(solution.y[-1, 0])) < 1e6

    @pytest.mark.parametrize("name", ["BackwardEuler", "RadauIIA3"])
    def test_order_on_stiff_problem(self, name):
        """Stiffly accurate methods keep their order past the explicit limit.

        With h = 0.1 the stiff eigenvalue gives h * lambda = -5, outside the
        RK4 stability interval.
        """
        order = get_tableau(name).order
        errors = []
        for h in (0.1, 0.05):
            problem = InitialValueProblem(_stiff_forced, jnp.array([0.0]), 0.0, 1.0)
            solution = integrate(problem, create_solver(name, h, tolerance=1e-12, max_iterations=50))
            errors.append(abs(float(solution.y[-1, 0]) - _stiff_forced_exact(1.0)))
            assert solution.newton_iterations <= 10 * solution.accepted_steps
        observed = math.log2(errors[0] / errors[1])
        assert order - 0.5 < observed < order + 1.0
