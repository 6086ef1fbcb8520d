"""
Solver Sessions
===============

A solver session is the runtime context of an external convex-QP solver. It
hands out decision variables, collects one objective and any number of linear
equality constraints, and answers ``solve()`` / ``get_value()`` queries:

    with open_session("scipy") as session:
        x = session.num_var_array(3, 0.0, 1.0)
        session.add_maximize(session.scal_prod(mu, x))
        session.add_eq(session.sum(x), 1.0)
        if session.solve():
            weights = session.get_values(x)

Model building is shared by every backend; a backend only implements
``_solve`` over the dense problem data:

    optimize   c0 + c^T x + x^T Q x
    subject to A x = b,  lb <= x <= ub

Backends:
- ``scipy``: scipy.optimize.minimize with SLSQP (default)
- ``cvxpy``: cvxpy Problem with quad_form, using cvxpy's default QP solver

Leaving the ``with`` block ends the session whether or not the solve
succeeded. An ended session rejects further use.
"""

import abc
import logging
import warnings
import numpy as np
import cvxpy as cp
from cvxpy.error import DCPError, SolverError as CvxpySolverError
from scipy.optimize import minimize
from typing import Dict, List, Optional, Sequence, Tuple, Type, Union

from portfolio_qp.core.expressions import LinearExpr, QuadExpr, Variable
from portfolio_qp.core import lp_format
from portfolio_qp.exceptions import SolverError

logger = logging.getLogger(__name__)

MAXIMIZE = "maximize"
MINIMIZE = "minimize"

FEASIBILITY_TOL = 1e-6


class SolverSession(abc.ABC):
    """
    Backend-independent model builder and solve/query contract.

    Attributes:
        name (str): Model name written to exported files
        status (str): Last solver status ('unsolved' before ``solve``)
    """

    backend = "abstract"

    def __init__(self, name: str = "portfolio"):
        self.name = name
        self.status = "unsolved"
        self._variables: List[Variable] = []
        self._constraints: List[Tuple[str, LinearExpr, float]] = []
        self._objective: Optional[QuadExpr] = None
        self._sense: Optional[str] = None
        self._values: Optional[np.ndarray] = None
        self._ended = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.end()
        return False

    # ------------------------------------------------------------------
    # Model building
    # ------------------------------------------------------------------

    def num_var(self, lb: float = 0.0, ub: float = np.inf,
                name: Optional[str] = None) -> Variable:
        """Declare one continuous variable with bounds ``lb <= x <= ub``."""
        self._check_open()
        if lb > ub:
            raise SolverError(f"empty bounds for variable {name}: [{lb}, {ub}]")
        var = Variable(len(self._variables), lb, ub, name)
        self._variables.append(var)
        return var

    def num_var_array(self, n: int, lb: float = 0.0, ub: float = np.inf,
                      names: Optional[Sequence[str]] = None) -> List[Variable]:
        """Declare ``n`` variables sharing the same bounds."""
        if names is not None and len(names) != n:
            raise SolverError(f"{len(names)} names given for {n} variables")
        return [self.num_var(lb, ub, names[i] if names is not None else None)
                for i in range(n)]

    def scal_prod(self, coefs: Sequence[float],
                  variables: Sequence[Variable]) -> LinearExpr:
        """Scalar product ``sum(coefs[i] * variables[i])``."""
        if len(coefs) != len(variables):
            raise SolverError(
                f"scalar product of {len(coefs)} coefficients and "
                f"{len(variables)} variables"
            )
        expr = LinearExpr()
        for c, v in zip(coefs, variables):
            expr.add_term(float(c), v)
        return expr

    def sum(self, variables: Sequence[Variable]) -> LinearExpr:
        return self.scal_prod(np.ones(len(variables)), variables)

    def quad_num_expr(self) -> QuadExpr:
        """An empty quadratic expression to fill with ``add_term``."""
        return QuadExpr()

    def add_maximize(self, expr) -> None:
        self._set_objective(expr, MAXIMIZE)

    def add_minimize(self, expr) -> None:
        self._set_objective(expr, MINIMIZE)

    def add_eq(self, expr, rhs: float, name: Optional[str] = None) -> None:
        """Register the linear constraint ``expr == rhs``."""
        self._check_open()
        expr = _as_expression(expr)
        if expr.is_quadratic:
            raise SolverError("equality constraints must be linear")
        if name is None:
            name = f"c{len(self._constraints) + 1}"
        self._constraints.append((name, LinearExpr(expr.terms, expr.constant), float(rhs)))

    def _set_objective(self, expr, sense: str) -> None:
        self._check_open()
        if self._objective is not None:
            raise SolverError("objective already set")
        expr = _as_expression(expr)
        self._objective = QuadExpr(expr.terms, expr.constant,
                                   getattr(expr, "quad_terms", None))
        self._sense = sense

    @property
    def variables(self) -> List[Variable]:
        return list(self._variables)

    @property
    def constraints(self) -> List[Tuple[str, LinearExpr, float]]:
        return list(self._constraints)

    @property
    def objective(self) -> Optional[QuadExpr]:
        return self._objective

    @property
    def sense(self) -> Optional[str]:
        return self._sense

    def export_model(self, path: str) -> None:
        """Write the model as CPLEX LP text to ``path``."""
        self._check_open()
        lp_format.write_lp(self, path)
        logger.info(f"Model exported to {path}")

    # ------------------------------------------------------------------
    # Solve and query
    # ------------------------------------------------------------------

    def solve(self) -> bool:
        """
        Solve the model.

        Returns:
            True if an optimal solution was found, False otherwise

        Raises:
            SolverError: If the model is incomplete or the backend fails
        """
        self._check_open()
        if self._objective is None:
            raise SolverError("no objective set")
        if not self._variables:
            raise SolverError("model has no variables")

        self._values = None
        values = self._solve(self._problem_data())
        if values is None:
            logger.debug(f"{self.backend} found no solution: {self.status}")
            return False

        self._values = np.asarray(values, dtype=float)
        logger.debug(f"{self.backend} solved: {self.status}")
        return True

    def get_value(self, item: Union[Variable, LinearExpr]) -> float:
        """Value of a variable or expression at the solution."""
        values = self._solution()
        if isinstance(item, Variable):
            return float(values[item.index])
        return float(_as_expression(item).value(values))

    def get_values(self, variables: Sequence[Variable]) -> np.ndarray:
        values = self._solution()
        return np.array([values[v.index] for v in variables])

    def get_objective_value(self) -> float:
        values = self._solution()
        if self._objective is None:
            raise SolverError("no objective set")
        return float(self._objective.value(values))

    def end(self) -> None:
        """Release the session. Safe to call more than once."""
        if not self._ended:
            logger.debug(f"Ending {self.backend} session '{self.name}'")
        self._ended = True
        self._values = None

    @property
    def ended(self) -> bool:
        return self._ended

    def _check_open(self):
        if self._ended:
            raise SolverError("session has been ended")

    def _solution(self) -> np.ndarray:
        self._check_open()
        if self._values is None:
            raise SolverError("no solution available; call solve() first")
        return self._values

    def _problem_data(self) -> Dict[str, np.ndarray]:
        """Dense arrays for the backend: c0, c, Q, A, b, lb, ub."""
        n = len(self._variables)
        obj = self._objective

        if self._constraints:
            A = np.array([expr.linear_vector(n) for _, expr, _ in self._constraints])
            b = np.array([rhs - expr.constant for _, expr, rhs in self._constraints])
        else:
            A = np.zeros((0, n))
            b = np.zeros(0)

        return {
            'n': n,
            'maximize': self._sense == MAXIMIZE,
            'c0': obj.constant,
            'c': obj.linear_vector(n),
            'Q': obj.quadratic_matrix(n),
            'A': A,
            'b': b,
            'lb': np.array([v.lb for v in self._variables]),
            'ub': np.array([v.ub for v in self._variables]),
        }

    @abc.abstractmethod
    def _solve(self, data: Dict[str, np.ndarray]) -> Optional[np.ndarray]:
        """Return the optimal point, or None when no solution was found."""


class ScipySession(SolverSession):
    """
    Session solved with scipy's SLSQP.

    The objective is negated for maximization. A result is accepted only if
    SLSQP reports success and the point satisfies the bounds and equality
    constraints within ``FEASIBILITY_TOL``.
    """

    backend = "scipy"

    def __init__(self, name: str = "portfolio", ftol: float = 1e-10,
                 max_iter: int = 1000):
        super().__init__(name)
        self.ftol = ftol
        self.max_iter = max_iter

    def _solve(self, data):
        n = data['n']
        sign = -1.0 if data['maximize'] else 1.0
        c0, c, Q = data['c0'], data['c'], data['Q']
        Qs = Q + Q.T
        A, b = data['A'], data['b']
        lb, ub = data['lb'], data['ub']

        def fun(x):
            return sign * (c0 + c @ x + x @ Q @ x)

        def jac(x):
            return sign * (c + Qs @ x)

        constraints = []
        if len(b):
            constraints.append({
                'type': 'eq',
                'fun': lambda x: A @ x - b,
                'jac': lambda x: A
            })

        bounds = [(None if np.isinf(lo) else lo, None if np.isinf(hi) else hi)
                  for lo, hi in zip(lb, ub)]

        # Initial guess: equal weights, pulled inside the bounds
        x0 = np.clip(np.ones(n) / n, lb, ub)

        try:
            result = minimize(
                fun,
                x0,
                jac=jac,
                method='SLSQP',
                bounds=bounds,
                constraints=constraints,
                options={'ftol': self.ftol, 'maxiter': self.max_iter}
            )
        except (ValueError, ArithmeticError) as e:
            raise SolverError(f"SLSQP failed: {e}") from e

        self.status = str(result.message)
        if not result.success:
            warnings.warn(f"SLSQP optimization did not converge: {result.message}")
            return None

        x = result.x
        if np.any(x < lb - FEASIBILITY_TOL) or np.any(x > ub + FEASIBILITY_TOL):
            self.status = "infeasible (bounds)"
            return None
        if len(b) and np.max(np.abs(A @ x - b)) > FEASIBILITY_TOL:
            self.status = "infeasible (constraints)"
            return None

        return np.clip(x, lb, ub)


class CvxpySession(SolverSession):
    """
    Session solved with cvxpy.

    The bilinear objective terms are symmetrized and passed to ``quad_form``.
    Maximizing needs a negative semidefinite quadratic part and minimizing a
    positive semidefinite one; anything else raises ``SolverError``.

    Args:
        solver: Optional cvxpy solver name (e.g. 'OSQP', 'CLARABEL')
    """

    backend = "cvxpy"

    ACCEPTED = ("optimal", "optimal_inaccurate")

    def __init__(self, name: str = "portfolio", solver: Optional[str] = None):
        super().__init__(name)
        self.solver = solver

    def _solve(self, data):
        n = data['n']
        lb, ub = data['lb'], data['ub']
        Qs = (data['Q'] + data['Q'].T) / 2

        x = cp.Variable(n)
        expr = data['c0'] + data['c'] @ x

        if np.any(Qs != 0):
            # cvxpy needs P PSD in quad_form; flip sign for concave maximization
            P = -Qs if data['maximize'] else Qs
            eigenvalues = np.linalg.eigvalsh(P)
            if eigenvalues.min() < -1e-10 * max(1.0, np.abs(eigenvalues).max()):
                raise SolverError(
                    f"objective is not convex for {'maximization' if data['maximize'] else 'minimization'} "
                    f"(min eigenvalue {eigenvalues.min():.3e})"
                )
            quad = cp.quad_form(x, cp.psd_wrap(P))
            expr = expr - quad if data['maximize'] else expr + quad

        constraints = []
        has_lb = np.flatnonzero(np.isfinite(lb))
        has_ub = np.flatnonzero(np.isfinite(ub))
        if len(has_lb):
            constraints.append(x[has_lb] >= lb[has_lb])
        if len(has_ub):
            constraints.append(x[has_ub] <= ub[has_ub])
        if len(data['b']):
            constraints.append(data['A'] @ x == data['b'])

        objective = cp.Maximize(expr) if data['maximize'] else cp.Minimize(expr)
        problem = cp.Problem(objective, constraints)

        try:
            if self.solver:
                problem.solve(solver=self.solver)
            else:
                problem.solve()
        except (CvxpySolverError, DCPError) as e:
            raise SolverError(f"cvxpy failed: {e}") from e

        self.status = problem.status
        if problem.status not in self.ACCEPTED or x.value is None:
            return None

        return np.clip(np.asarray(x.value).reshape(n), lb, ub)


BACKENDS: Dict[str, Type[SolverSession]] = {
    ScipySession.backend: ScipySession,
    CvxpySession.backend: CvxpySession,
}


def open_session(backend: str = "scipy", **kwargs) -> SolverSession:
    """
    Create a solver session for the named backend.

    Args:
        backend: 'scipy' or 'cvxpy'
        **kwargs: Passed to the session constructor

    Raises:
        SolverError: If the backend is unknown
    """
    try:
        session_cls = BACKENDS[backend.lower()]
    except KeyError:
        raise SolverError(
            f"Unknown solver backend: {backend}. Use one of {sorted(BACKENDS)}"
        ) from None
    return session_cls(**kwargs)


def _as_expression(obj) -> LinearExpr:
    if isinstance(obj, Variable):
        return obj.to_expr()
    if isinstance(obj, LinearExpr):
        return obj
    raise SolverError(f"expected an expression, got {type(obj).__name__}")
