"""Catalog of named Runge-Kutta methods.

Methods are pure data: each name maps to one packed coefficient table in
:data:`EXPLICIT_TABLES` or :data:`IMPLICIT_TABLES`.  The constructors below
only unpack the table and attach the default solver configuration, so every
method runs through the same stepping code.

Implicit constructors take ``(h, *, tolerance=1e-3, max_iterations=10)``
and return an :class:`~rkjax.integrators.ImplicitRungeKuttaSolver`.
Explicit constructors take ``(h, *, adaptive=None)`` and return an
:class:`~rkjax.integrators.ExplicitRungeKuttaSolver`.

Examples:
    ```python
    from rkjax.methods import create_solver, gauss_legendre4
    solver = gauss_legendre4(0.5)
    same = create_solver("GL4", 0.5)
    ```
"""

from __future__ import annotations

from functools import lru_cache

from rkjax.integrators import (
    AdaptiveParameters,
    ExplicitRungeKuttaSolver,
    ImplicitRungeKuttaSolver,
    NewtonParameters,
)
from rkjax.methods._tables import EXPLICIT_TABLES, IMPLICIT_TABLES
from rkjax.tableau import ButcherTableau

ALIASES = {
    "ImplicitEuler": "BackwardEuler",
    "GL4": "GaussLegendre4",
    "GL6": "GaussLegendre6",
    "RKF45": "Fehlberg45",
    "DOPRI5": "DormandPrince54",
}


def available_methods() -> list[str]:
    """Return the names of all built-in methods, aliases excluded."""
    return sorted([*EXPLICIT_TABLES, *IMPLICIT_TABLES])


def _resolve(name: str) -> str:
    name = ALIASES.get(name, name)
    if name not in EXPLICIT_TABLES and name not in IMPLICIT_TABLES:
        raise KeyError(
            f"Unknown method {name!r}. Available: {', '.join(available_methods())}"
        )
    return name


@lru_cache(maxsize=None)
def get_tableau(name: str) -> ButcherTableau:
    """Return the Butcher tableau of a built-in method.

    Args:
        name: Method name or alias, e.g. ``"RadauIIA5"`` or ``"GL4"``.

    Returns:
        ButcherTableau: The unpacked tableau.

    Raises:
        KeyError: If *name* is not a built-in method.
    """
    name = _resolve(name)
    table = EXPLICIT_TABLES.get(name) or IMPLICIT_TABLES[name]
    return ButcherTableau.from_table(table)


def create_solver(name: str, h: float, **options):
    """Create a solver for a built-in method by name.

    Args:
        name: Method name or alias.
        h: Step size (initial step size for adaptive explicit solvers).
        **options: ``tolerance`` and ``max_iterations`` for implicit
            methods, ``adaptive`` for explicit methods.

    Returns:
        ExplicitRungeKuttaSolver | ImplicitRungeKuttaSolver: The solver.

    Raises:
        KeyError: If *name* is not a built-in method.
        TypeError: If an option does not apply to the method kind.
    """
    name = _resolve(name)
    if name in IMPLICIT_TABLES:
        return _implicit(name, h, **options)
    return _explicit(name, h, **options)


def _implicit(name, h, tolerance=1e-3, max_iterations=10):
    newton = NewtonParameters(tolerance=tolerance, max_iterations=max_iterations)
    return ImplicitRungeKuttaSolver(get_tableau(name), h, newton)


def _explicit(name, h, adaptive: AdaptiveParameters | None = None):
    return ExplicitRungeKuttaSolver(get_tableau(name), h, adaptive)


# ──────────────────────────────────────────────
# Implicit methods
# ──────────────────────────────────────────────

def backward_euler(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """1st-order backward (implicit) Euler method."""
    return _implicit("BackwardEuler", h, tolerance, max_iterations)


implicit_euler = backward_euler


def implicit_midpoint(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """2nd-order implicit midpoint method."""
    return _implicit("ImplicitMidpoint", h, tolerance, max_iterations)


def crank_nicolson(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """2nd-order Crank-Nicolson (trapezoidal) method."""
    return _implicit("CrankNicolson", h, tolerance, max_iterations)


def sdirk3(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """3rd-order two-stage SDIRK method with ``gamma = 1/2 + sqrt(3)/6``."""
    return _implicit("SDIRK3", h, tolerance, max_iterations)


def gauss_legendre4(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """4th-order, two-stage Gauss-Legendre method."""
    return _implicit("GaussLegendre4", h, tolerance, max_iterations)


def gauss_legendre6(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """6th-order, three-stage Gauss-Legendre method."""
    return _implicit("GaussLegendre6", h, tolerance, max_iterations)


def lobatto_iiia4(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """4th-order Lobatto IIIA method."""
    return _implicit("LobattoIIIA4", h, tolerance, max_iterations)


def lobatto_iiib2(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """2nd-order Lobatto IIIB method."""
    return _implicit("LobattoIIIB2", h, tolerance, max_iterations)


def lobatto_iiib4(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """4th-order Lobatto IIIB method."""
    return _implicit("LobattoIIIB4", h, tolerance, max_iterations)


def lobatto_iiic2(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """2nd-order Lobatto IIIC method."""
    return _implicit("LobattoIIIC2", h, tolerance, max_iterations)


def lobatto_iiic4(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """4th-order Lobatto IIIC method."""
    return _implicit("LobattoIIIC4", h, tolerance, max_iterations)


def radau_ia3(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """3rd-order Radau IA method."""
    return _implicit("RadauIA3", h, tolerance, max_iterations)


def radau_ia5(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """5th-order Radau IA method."""
    return _implicit("RadauIA5", h, tolerance, max_iterations)


def radau_iia3(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """3rd-order Radau IIA method."""
    return _implicit("RadauIIA3", h, tolerance, max_iterations)


def radau_iia5(h: float, *, tolerance: float = 1e-3, max_iterations: int = 10) -> ImplicitRungeKuttaSolver:
    """5th-order Radau IIA method. Stiffly accurate and L-stable."""
    return _implicit("RadauIIA5", h, tolerance, max_iterations)


# ──────────────────────────────────────────────
# Explicit methods
# ──────────────────────────────────────────────

def forward_euler(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """1st-order forward (explicit) Euler method."""
    return _explicit("ForwardEuler", h, adaptive)


def explicit_midpoint(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """2nd-order explicit midpoint method."""
    return _explicit("ExplicitMidpoint", h, adaptive)


def heun2(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """2nd-order Heun method."""
    return _explicit("Heun2", h, adaptive)


def ralston2(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """2nd-order Ralston method."""
    return _explicit("Ralston2", h, adaptive)


def kutta3(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """Kutta's 3rd-order method."""
    return _explicit("Kutta3", h, adaptive)


def ssprk3(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """3rd-order strong-stability-preserving method of Shu and Osher."""
    return _explicit("SSPRK3", h, adaptive)


def rk4(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """Classic 4th-order Runge-Kutta method."""
    return _explicit("RK4", h, adaptive)


def rk38(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """Kutta's 4th-order 3/8 rule."""
    return _explicit("RK38", h, adaptive)


def heun_euler21(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """Heun-Euler 2(1) embedded pair."""
    return _explicit("HeunEuler21", h, adaptive)


def bogacki_shampine32(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """Bogacki-Shampine 3(2) embedded pair."""
    return _explicit("BogackiShampine32", h, adaptive)


def fehlberg45(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """Runge-Kutta-Fehlberg 4(5) pair, propagating the 5th-order solution."""
    return _explicit("Fehlberg45", h, adaptive)


def cash_karp54(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """Cash-Karp 5(4) embedded pair."""
    return _explicit("CashKarp54", h, adaptive)


def dormand_prince54(h: float, *, adaptive: AdaptiveParameters | None = None) -> ExplicitRungeKuttaSolver:
    """Dormand-Prince 5(4) embedded pair.

    The 7th stage is only used by the embedded solution; it is not reused
    as the first stage of the next step.
    """
    return _explicit("DormandPrince54", h, adaptive)


__all__ = [
    "ALIASES",
    "EXPLICIT_TABLES",
    "IMPLICIT_TABLES",
    "available_methods",
    "get_tableau",
    "create_solver",
    # Implicit
    "backward_euler",
    "implicit_euler",
    "implicit_midpoint",
    "crank_nicolson",
    "sdirk3",
    "gauss_legendre4",
    "gauss_legendre6",
    "lobatto_iiia4",
    "lobatto_iiib2",
    "lobatto_iiib4",
    "lobatto_iiic2",
    "lobatto_iiic4",
    "radau_ia3",
    "radau_ia5",
    "radau_iia3",
    "radau_iia5",
    # Explicit
    "forward_euler",
    "explicit_midpoint",
    "heun2",
    "ralston2",
    "kutta3",
    "ssprk3",
    "rk4",
    "rk38",
    "heun_euler21",
    "bogacki_shampine32",
    "fehlberg45",
    "cash_karp54",
    "dormand_prince54",
]
