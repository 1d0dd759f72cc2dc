"""Packed Butcher tables of the built-in methods.

Each entry is one literal ``[c | A ; order | b]`` table, with an extra
``[embedded_order | b_hat]`` row for embedded pairs.  See
:meth:`rkjax.tableau.ButcherTableau.from_table`.
"""

from __future__ import annotations

from math import sqrt

_SQRT3 = sqrt(3.0)
_SQRT6 = sqrt(6.0)
_SQRT15 = sqrt(15.0)

# SDIRK3 diagonal coefficient
_GAMMA = 0.5 + _SQRT3 / 6.0

EXPLICIT_TABLES = {
    "ForwardEuler": (
        (0.0, 0.0),
        (1.0, 1.0),
    ),
    "ExplicitMidpoint": (
        (0.0, 0.0, 0.0),
        (0.5, 0.5, 0.0),
        (2.0, 0.0, 1.0),
    ),
    "Heun2": (
        (0.0, 0.0, 0.0),
        (1.0, 1.0, 0.0),
        (2.0, 0.5, 0.5),
    ),
    "Ralston2": (
        (0.0, 0.0, 0.0),
        (2.0 / 3.0, 2.0 / 3.0, 0.0),
        (2.0, 0.25, 0.75),
    ),
    "Kutta3": (
        (0.0, 0.0, 0.0, 0.0),
        (0.5, 0.5, 0.0, 0.0),
        (1.0, -1.0, 2.0, 0.0),
        (3.0, 1.0 / 6.0, 2.0 / 3.0, 1.0 / 6.0),
    ),
    "SSPRK3": (
        (0.0, 0.0, 0.0, 0.0),
        (1.0, 1.0, 0.0, 0.0),
        (0.5, 0.25, 0.25, 0.0),
        (3.0, 1.0 / 6.0, 1.0 / 6.0, 2.0 / 3.0),
    ),
    "RK4": (
        (0.0, 0.0, 0.0, 0.0, 0.0),
        (0.5, 0.5, 0.0, 0.0, 0.0),
        (0.5, 0.0, 0.5, 0.0, 0.0),
        (1.0, 0.0, 0.0, 1.0, 0.0),
        (4.0, 1.0 / 6.0, 1.0 / 3.0, 1.0 / 3.0, 1.0 / 6.0),
    ),
    "RK38": (
        (0.0, 0.0, 0.0, 0.0, 0.0),
        (1.0 / 3.0, 1.0 / 3.0, 0.0, 0.0, 0.0),
        (2.0 / 3.0, -1.0 / 3.0, 1.0, 0.0, 0.0),
        (1.0, 1.0, -1.0, 1.0, 0.0),
        (4.0, 1.0 / 8.0, 3.0 / 8.0, 3.0 / 8.0, 1.0 / 8.0),
    ),
    # Embedded pairs
    "HeunEuler21": (
        (0.0, 0.0, 0.0),
        (1.0, 1.0, 0.0),
        (2.0, 0.5, 0.5),
        (1.0, 1.0, 0.0),
    ),
    "BogackiShampine32": (
        (0.0, 0.0, 0.0, 0.0, 0.0),
        (0.5, 0.5, 0.0, 0.0, 0.0),
        (0.75, 0.0, 0.75, 0.0, 0.0),
        (1.0, 2.0 / 9.0, 1.0 / 3.0, 4.0 / 9.0, 0.0),
        (3.0, 2.0 / 9.0, 1.0 / 3.0, 4.0 / 9.0, 0.0),
        (2.0, 7.0 / 24.0, 1.0 / 4.0, 1.0 / 3.0, 1.0 / 8.0),
    ),
    "Fehlberg45": (
        (0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
        (0.25, 0.25, 0.0, 0.0, 0.0, 0.0, 0.0),
        (3.0 / 8.0, 3.0 / 32.0, 9.0 / 32.0, 0.0, 0.0, 0.0, 0.0),
        (12.0 / 13.0, 1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0, 0.0, 0.0, 0.0),
        (1.0, 439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0, 0.0, 0.0),
        (0.5, -8.0 / 27.0, 2.0, -3544.0 / 2565.0, 1859.0 / 4104.0, -11.0 / 40.0, 0.0),
        (5.0, 16.0 / 135.0, 0.0, 6656.0 / 12825.0, 28561.0 / 56430.0, -9.0 / 50.0, 2.0 / 55.0),
        (4.0, 25.0 / 216.0, 0.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0, 0.0),
    ),
    "CashKarp54": (
        (0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
        (0.2, 0.2, 0.0, 0.0, 0.0, 0.0, 0.0),
        (0.3, 3.0 / 40.0, 9.0 / 40.0, 0.0, 0.0, 0.0, 0.0),
        (0.6, 0.3, -0.9, 1.2, 0.0, 0.0, 0.0),
        (1.0, -11.0 / 54.0, 2.5, -70.0 / 27.0, 35.0 / 27.0, 0.0, 0.0),
        (
            7.0 / 8.0, 1631.0 / 55296.0, 175.0 / 512.0, 575.0 / 13824.0,
            44275.0 / 110592.0, 253.0 / 4096.0, 0.0,
        ),
        (5.0, 37.0 / 378.0, 0.0, 250.0 / 621.0, 125.0 / 594.0, 0.0, 512.0 / 1771.0),
        (
            4.0, 2825.0 / 27648.0, 0.0, 18575.0 / 48384.0, 13525.0 / 55296.0,
            277.0 / 14336.0, 0.25,
        ),
    ),
    "DormandPrince54": (
        (0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
        (0.2, 0.2, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
        (0.3, 3.0 / 40.0, 9.0 / 40.0, 0.0, 0.0, 0.0, 0.0, 0.0),
        (0.8, 44.0 / 45.0, -56.0 / 15.0, 32.0 / 9.0, 0.0, 0.0, 0.0, 0.0),
        (
            8.0 / 9.0, 19372.0 / 6561.0, -25360.0 / 2187.0, 64448.0 / 6561.0,
            -212.0 / 729.0, 0.0, 0.0, 0.0,
        ),
        (
            1.0, 9017.0 / 3168.0, -355.0 / 33.0, 46732.0 / 5247.0, 49.0 / 176.0,
            -5103.0 / 18656.0, 0.0, 0.0,
        ),
        (
            1.0, 35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0,
            -2187.0 / 6784.0, 11.0 / 84.0, 0.0,
        ),
        (
            5.0, 35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0,
            -2187.0 / 6784.0, 11.0 / 84.0, 0.0,
        ),
        (
            4.0, 5179.0 / 57600.0, 0.0, 7571.0 / 16695.0, 393.0 / 640.0,
            -92097.0 / 339200.0, 187.0 / 2100.0, 1.0 / 40.0,
        ),
    ),
}

IMPLICIT_TABLES = {
    "BackwardEuler": (
        (1.0, 1.0),
        (1.0, 1.0),
    ),
    "ImplicitMidpoint": (
        (0.5, 0.5),
        (2.0, 1.0),
    ),
    "CrankNicolson": (
        (0.0, 0.0, 0.0),
        (1.0, 0.5, 0.5),
        (2.0, 0.5, 0.5),
    ),
    "SDIRK3": (
        (_GAMMA, _GAMMA, 0.0),
        (1.0 - _GAMMA, 1.0 - 2.0 * _GAMMA, _GAMMA),
        (3.0, 0.5, 0.5),
    ),
    "GaussLegendre4": (
        (0.5 - _SQRT3 / 6.0, 0.25, 0.25 - _SQRT3 / 6.0),
        (0.5 + _SQRT3 / 6.0, 0.25 + _SQRT3 / 6.0, 0.25),
        (4.0, 0.5, 0.5),
    ),
    "GaussLegendre6": (
        (0.5 - _SQRT15 / 10.0, 5.0 / 36.0, 2.0 / 9.0 - _SQRT15 / 15.0, 5.0 / 36.0 - _SQRT15 / 30.0),
        (0.5, 5.0 / 36.0 + _SQRT15 / 24.0, 2.0 / 9.0, 5.0 / 36.0 - _SQRT15 / 24.0),
        (0.5 + _SQRT15 / 10.0, 5.0 / 36.0 + _SQRT15 / 30.0, 2.0 / 9.0 + _SQRT15 / 15.0, 5.0 / 36.0),
        (6.0, 5.0 / 18.0, 4.0 / 9.0, 5.0 / 18.0),
    ),
    "LobattoIIIA4": (
        (0.0, 0.0, 0.0, 0.0),
        (0.5, 5.0 / 24.0, 1.0 / 3.0, -1.0 / 24.0),
        (1.0, 1.0 / 6.0, 2.0 / 3.0, 1.0 / 6.0),
        (4.0, 1.0 / 6.0, 2.0 / 3.0, 1.0 / 6.0),
    ),
    "LobattoIIIB2": (
        (0.0, 0.5, 0.0),
        (1.0, 0.5, 0.0),
        (2.0, 0.5, 0.5),
    ),
    "LobattoIIIB4": (
        (0.0, 1.0 / 6.0, -1.0 / 6.0, 0.0),
        (0.5, 1.0 / 6.0, 1.0 / 3.0, 0.0),
        (1.0, 1.0 / 6.0, 5.0 / 6.0, 0.0),
        (4.0, 1.0 / 6.0, 2.0 / 3.0, 1.0 / 6.0),
    ),
    "LobattoIIIC2": (
        (0.0, 0.5, -0.5),
        (1.0, 0.5, 0.5),
        (2.0, 0.5, 0.5),
    ),
    "LobattoIIIC4": (
        (0.0, 1.0 / 6.0, -1.0 / 3.0, 1.0 / 6.0),
        (0.5, 1.0 / 6.0, 5.0 / 12.0, -1.0 / 12.0),
        (1.0, 1.0 / 6.0, 2.0 / 3.0, 1.0 / 6.0),
        (4.0, 1.0 / 6.0, 2.0 / 3.0, 1.0 / 6.0),
    ),
    "RadauIA3": (
        (0.0, 0.25, -0.25),
        (2.0 / 3.0, 0.25, 5.0 / 12.0),
        (3.0, 0.25, 0.75),
    ),
    "RadauIA5": (
        (0.0, 1.0 / 9.0, -1.0 / 18.0 - _SQRT6 / 18.0, -1.0 / 18.0 + _SQRT6 / 18.0),
        (
            0.6 - _SQRT6 / 10.0, 1.0 / 9.0,
            11.0 / 45.0 + 7.0 * _SQRT6 / 360.0, 11.0 / 45.0 - 43.0 * _SQRT6 / 360.0,
        ),
        (
            0.6 + _SQRT6 / 10.0, 1.0 / 9.0,
            11.0 / 45.0 + 43.0 * _SQRT6 / 360.0, 11.0 / 45.0 - 7.0 * _SQRT6 / 360.0,
        ),
        (5.0, 1.0 / 9.0, 4.0 / 9.0 + _SQRT6 / 36.0, 4.0 / 9.0 - _SQRT6 / 36.0),
    ),
    "RadauIIA3": (
        (1.0 / 3.0, 5.0 / 12.0, -1.0 / 12.0),
        (1.0, 0.75, 0.25),
        (3.0, 0.75, 0.25),
    ),
    "RadauIIA5": (
        (
            0.4 - _SQRT6 / 10.0, 11.0 / 45.0 - 7.0 * _SQRT6 / 360.0,
            37.0 / 225.0 - 169.0 * _SQRT6 / 1800.0, -2.0 / 225.0 + _SQRT6 / 75.0,
        ),
        (
            0.4 + _SQRT6 / 10.0, 37.0 / 225.0 + 169.0 * _SQRT6 / 1800.0,
            11.0 / 45.0 + 7.0 * _SQRT6 / 360.0, -2.0 / 225.0 - _SQRT6 / 75.0,
        ),
        (1.0, 4.0 / 9.0 - _SQRT6 / 36.0, 4.0 / 9.0 + _SQRT6 / 36.0, 1.0 / 9.0),
        (5.0, 4.0 / 9.0 - _SQRT6 / 36.0, 4.0 / 9.0 + _SQRT6 / 36.0, 1.0 / 9.0),
    ),
}
