"""
Symbolic decision variables and expressions.

A solver session hands out ``Variable`` objects and builds ``LinearExpr`` /
``QuadExpr`` objects from them. Expressions only store coefficients keyed by
variable index, so any backend can turn them into vectors and matrices:

    expr = c0 + sum_i a_i * x_i + sum_(i,j) q_ij * x_i * x_j

The usual arithmetic operators work on variables, expressions and scalars:

    >>> x, y = session.num_var_array(2, 0.0, 1.0)
    >>> obj = 0.1 * x + 0.2 * y - 0.5 * (x * x)
"""

import numbers
import numpy as np
from typing import Dict, Optional, Tuple


class Variable:
    """
    A continuous decision variable owned by a solver session.

    Attributes:
        index (int): Position of the variable in its session
        lb (float): Lower bound
        ub (float): Upper bound
        name (str): Name used in exported models
    """

    __slots__ = ("index", "lb", "ub", "name")
    # numpy scalars defer to our operators instead of broadcasting
    __array_ufunc__ = None

    def __init__(self, index: int, lb: float = 0.0, ub: float = np.inf,
                 name: Optional[str] = None):
        self.index = index
        self.lb = float(lb)
        self.ub = float(ub)
        self.name = name if name is not None else f"x{index + 1}"

    def to_expr(self) -> "LinearExpr":
        return LinearExpr({self.index: 1.0})

    def __repr__(self):
        return f"Variable({self.name!r}, lb={self.lb}, ub={self.ub})"

    def __add__(self, other):
        return self.to_expr() + other

    __radd__ = __add__

    def __sub__(self, other):
        return self.to_expr() - other

    def __rsub__(self, other):
        return other - self.to_expr()

    def __neg__(self):
        return self.to_expr() * -1.0

    def __mul__(self, other):
        return self.to_expr() * other

    __rmul__ = __mul__


class LinearExpr:
    """
    Affine expression ``constant + sum(terms[i] * x_i)``.

    Attributes:
        terms (Dict[int, float]): Coefficient per variable index
        constant (float): Constant offset
    """

    __array_ufunc__ = None

    def __init__(self, terms: Optional[Dict[int, float]] = None,
                 constant: float = 0.0):
        self.terms = dict(terms) if terms else {}
        self.constant = float(constant)

    @property
    def is_quadratic(self) -> bool:
        return False

    def copy(self) -> "LinearExpr":
        return LinearExpr(self.terms, self.constant)

    def add_term(self, coef: float, var: Variable) -> "LinearExpr":
        """Add ``coef * var`` in place and return self."""
        self.terms[var.index] = self.terms.get(var.index, 0.0) + float(coef)
        return self

    def linear_vector(self, n: int) -> np.ndarray:
        """Dense coefficient vector over ``n`` variables."""
        a = np.zeros(n)
        for i, c in self.terms.items():
            a[i] += c
        return a

    def value(self, x: np.ndarray) -> float:
        """Evaluate the expression at the point ``x``."""
        return self.constant + sum(c * x[i] for i, c in self.terms.items())

    def _scaled(self, k: float):
        out = self.copy()
        out.constant *= k
        out.terms = {i: c * k for i, c in out.terms.items()}
        return out

    def __add__(self, other):
        return _combine(self, other, 1.0)

    __radd__ = __add__

    def __sub__(self, other):
        return _combine(self, other, -1.0)

    def __rsub__(self, other):
        return _combine(self._scaled(-1.0), other, 1.0)

    def __neg__(self):
        return self._scaled(-1.0)

    def __mul__(self, other):
        if isinstance(other, numbers.Real):
            return self._scaled(float(other))
        other = _as_expr(other)
        if self.is_quadratic or other.is_quadratic:
            raise TypeError("product would exceed degree 2")
        return _linear_product(self, other)

    __rmul__ = __mul__

    def __repr__(self):
        return f"{type(self).__name__}(terms={self.terms}, constant={self.constant})"


class QuadExpr(LinearExpr):
    """
    Quadratic expression: an affine part plus bilinear terms.

    Attributes:
        quad_terms (Dict[Tuple[int, int], float]): Coefficient per (i, j)
            index pair; (i, j) and (j, i) are kept apart as added
    """

    def __init__(self, terms: Optional[Dict[int, float]] = None,
                 constant: float = 0.0,
                 quad_terms: Optional[Dict[Tuple[int, int], float]] = None):
        super().__init__(terms, constant)
        self.quad_terms = dict(quad_terms) if quad_terms else {}

    @property
    def is_quadratic(self) -> bool:
        return any(c != 0.0 for c in self.quad_terms.values())

    def copy(self) -> "QuadExpr":
        return QuadExpr(self.terms, self.constant, self.quad_terms)

    def add_term(self, coef: float, var1: Variable,
                 var2: Optional[Variable] = None) -> "QuadExpr":
        """
        Add ``coef * var1`` or, with ``var2``, ``coef * var1 * var2``.

        Returns:
            self, so calls can be chained
        """
        if var2 is None:
            return super().add_term(coef, var1)
        key = (var1.index, var2.index)
        self.quad_terms[key] = self.quad_terms.get(key, 0.0) + float(coef)
        return self

    def quadratic_matrix(self, n: int) -> np.ndarray:
        """Matrix Q with ``x^T Q x`` equal to the bilinear part (not symmetrized)."""
        q = np.zeros((n, n))
        for (i, j), c in self.quad_terms.items():
            q[i, j] += c
        return q

    def value(self, x: np.ndarray) -> float:
        quad = sum(c * x[i] * x[j] for (i, j), c in self.quad_terms.items())
        return super().value(x) + quad

    def _scaled(self, k: float):
        out = super()._scaled(k)
        out.quad_terms = {ij: c * k for ij, c in out.quad_terms.items()}
        return out


def _as_expr(obj) -> LinearExpr:
    if isinstance(obj, LinearExpr):
        return obj
    if isinstance(obj, Variable):
        return obj.to_expr()
    if isinstance(obj, numbers.Real):
        return LinearExpr(constant=float(obj))
    raise TypeError(f"cannot use {type(obj).__name__} in an expression")


def _combine(left: LinearExpr, right, sign: float) -> LinearExpr:
    """left + sign * right, promoting to QuadExpr when either side is one."""
    right = _as_expr(right)

    terms = dict(left.terms)
    for i, c in right.terms.items():
        terms[i] = terms.get(i, 0.0) + sign * c
    constant = left.constant + sign * right.constant

    if not isinstance(left, QuadExpr) and not isinstance(right, QuadExpr):
        return LinearExpr(terms, constant)

    quad = dict(getattr(left, "quad_terms", {}))
    for ij, c in getattr(right, "quad_terms", {}).items():
        quad[ij] = quad.get(ij, 0.0) + sign * c
    return QuadExpr(terms, constant, quad)


def _linear_product(a: LinearExpr, b: LinearExpr) -> QuadExpr:
    out = QuadExpr(constant=a.constant * b.constant)
    for i, c in a.terms.items():
        out.terms[i] = out.terms.get(i, 0.0) + c * b.constant
    for j, c in b.terms.items():
        out.terms[j] = out.terms.get(j, 0.0) + c * a.constant
    for i, ci in a.terms.items():
        for j, cj in b.terms.items():
            out.quad_terms[(i, j)] = out.quad_terms.get((i, j), 0.0) + ci * cj
    return out
