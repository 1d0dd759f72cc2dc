"""Butcher tableau representation.

A Runge-Kutta method with *s* stages is fully described by its coupling
matrix ``A`` (s x s), weights ``b`` (length s), nodes ``c`` (length s) and
consistency order.  Each named method is authored as one literal packed
table with the nodes and order written alongside ``A`` and ``b``:

.. math::

    \\begin{array}{c|ccc}
    c_1   & a_{11} & \\cdots & a_{1s} \\\\
    \\vdots & \\vdots &        & \\vdots \\\\
    c_s   & a_{s1} & \\cdots & a_{ss} \\\\
    \\hline
    p     & b_1    & \\cdots & b_s
    \\end{array}

Embedded pairs append one more row ``[p_hat | b_hat]`` holding the weights
and order of the error-estimating solution.

Coefficients are stored verbatim as Python floats; they are cast to JAX
arrays of the configured dtype at call time.  Tableaux are frozen and
hashable.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import jax.numpy as jnp
from jax import Array

from rkjax.config import get_dtype
from rkjax.errors import MalformedTableauError


def _as_floats(values: Iterable, what: str) -> tuple[float, ...]:
    try:
        floats = tuple(float(v) for v in values)
    except (TypeError, ValueError) as exc:
        raise MalformedTableauError(f"{what} must contain only real numbers") from exc
    if not all(math.isfinite(v) for v in floats):
        raise MalformedTableauError(f"{what} must contain only finite numbers")
    return floats


def _as_order(value, what: str) -> int:
    try:
        order = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedTableauError(f"{what} must be a positive integer, got {value!r}") from exc
    if not order.is_integer() or order < 1:
        raise MalformedTableauError(f"{what} must be a positive integer, got {value!r}")
    return int(order)


@dataclass(frozen=True)
class ButcherTableau:
    """Coefficient table of a Runge-Kutta method.

    Args:
        a: Stage coupling matrix as ``s`` rows of ``s`` coefficients.
        b: Weights of the propagated solution.
        c: Stage nodes.
        order: Consistency order of the propagated solution.
        b_hat: Optional embedded weights used for error estimation.
        embedded_order: Order of the embedded solution. Required when
            *b_hat* is given.

    Raises:
        MalformedTableauError: If the dimensions of ``a``, ``b`` and ``c``
            disagree, there are no stages, a coefficient is not a finite
            real number, or an order is not a positive integer.

    Examples:
        ```python
        from rkjax.tableau import ButcherTableau
        heun = ButcherTableau.from_table([
            [0.0, 0.0, 0.0],
            [1.0, 1.0, 0.0],
            [2.0, 0.5, 0.5],
        ])
        heun.stages, heun.order  # (2, 2)
        ```
    """

    a: tuple[tuple[float, ...], ...]
    b: tuple[float, ...]
    c: tuple[float, ...]
    order: int
    b_hat: tuple[float, ...] | None = None
    embedded_order: int | None = None

    def __post_init__(self) -> None:
        c = _as_floats(self.c, "c")
        s = len(c)
        if s == 0:
            raise MalformedTableauError("A tableau needs at least one stage")

        try:
            rows = [_as_floats(row, f"row {i} of A") for i, row in enumerate(self.a)]
        except TypeError as exc:
            raise MalformedTableauError("A must be a sequence of rows") from exc
        if len(rows) != s or any(len(row) != s for row in rows):
            raise MalformedTableauError(
                f"A must be {s}x{s} to match {s} nodes, got rows of lengths "
                f"{[len(row) for row in rows]}"
            )

        b = _as_floats(self.b, "b")
        if len(b) != s:
            raise MalformedTableauError(f"b must have {s} entries, got {len(b)}")

        order = _as_order(self.order, "order")

        b_hat = self.b_hat
        embedded_order = self.embedded_order
        if b_hat is not None:
            b_hat = _as_floats(b_hat, "b_hat")
            if len(b_hat) != s:
                raise MalformedTableauError(f"b_hat must have {s} entries, got {len(b_hat)}")
            if embedded_order is None:
                raise MalformedTableauError("embedded_order is required with b_hat")
            embedded_order = _as_order(embedded_order, "embedded_order")
        elif embedded_order is not None:
            raise MalformedTableauError("embedded_order given without b_hat")

        # Normalise to hashable tuples of floats.
        object.__setattr__(self, "a", tuple(rows))
        object.__setattr__(self, "b", b)
        object.__setattr__(self, "c", c)
        object.__setattr__(self, "order", order)
        object.__setattr__(self, "b_hat", b_hat)
        object.__setattr__(self, "embedded_order", embedded_order)

    @classmethod
    def from_table(cls, table: Sequence[Sequence[float]]) -> ButcherTableau:
        """Build a tableau from a packed ``[c | A ; order | b]`` matrix.

        A table with ``s + 1`` columns must have ``s + 1`` rows, or
        ``s + 2`` rows when the last row ``[embedded_order | b_hat]``
        describes an embedded pair.

        Args:
            table: Rows of the packed matrix. Any nested sequence works,
                including NumPy and JAX 2-D arrays.

        Returns:
            ButcherTableau: The unpacked tableau.

        Raises:
            MalformedTableauError: If the table is ragged, has the wrong
                number of rows for its width, or holds invalid entries.
        """
        try:
            rows = [tuple(row) for row in table]
        except TypeError as exc:
            raise MalformedTableauError("A packed tableau must be a 2-D table") from exc
        if not rows:
            raise MalformedTableauError("A packed tableau must have at least two rows")

        width = len(rows[0])
        if any(len(row) != width for row in rows):
            raise MalformedTableauError(
                f"Packed tableau rows have inconsistent lengths {[len(row) for row in rows]}"
            )
        s = width - 1
        if s < 1:
            raise MalformedTableauError("A packed tableau needs at least two columns")
        if len(rows) not in (s + 1, s + 2):
            raise MalformedTableauError(
                f"A packed tableau with {width} columns must have {s + 1} rows "
                f"(or {s + 2} with embedded weights), got {len(rows)}"
            )

        embedded = len(rows) == s + 2
        return cls(
            a=tuple(row[1:] for row in rows[:s]),
            b=rows[s][1:],
            c=tuple(row[0] for row in rows[:s]),
            order=rows[s][0],
            b_hat=rows[s + 1][1:] if embedded else None,
            embedded_order=rows[s + 1][0] if embedded else None,
        )

    @property
    def stages(self) -> int:
        """Number of stages ``s``."""
        return len(self.c)

    @property
    def is_explicit(self) -> bool:
        """Whether ``A`` is strictly lower triangular."""
        return all(
            self.a[i][j] == 0.0
            for i in range(self.stages)
            for j in range(i, self.stages)
        )

    @property
    def is_embedded(self) -> bool:
        """Whether the tableau carries embedded error-estimation weights."""
        return self.b_hat is not None

    @property
    def error_order(self) -> int:
        """Order used by the step-size controller.

        The lower order of an embedded pair, otherwise the tableau order.
        """
        if self.embedded_order is None:
            return self.order
        return min(self.order, self.embedded_order)

    def as_arrays(self) -> tuple[Array, Array, Array]:
        """Return ``(A, b, c)`` as arrays of the configured dtype."""
        dtype = get_dtype()
        return (
            jnp.asarray(self.a, dtype=dtype),
            jnp.asarray(self.b, dtype=dtype),
            jnp.asarray(self.c, dtype=dtype),
        )
