"""
CPLEX LP format writer.

Produces the human-readable LP text of a solver session's model, e.g.:

    \\Problem name: portfolio

    Maximize
     obj: 0.5555555556 A + 1.066666667 B - 0.4 C + [ - 2.5e-06 A ^2
          - 1e-06 A * B ... ] / 2
    Subject To
     c1: A + B + C = 1
    Bounds
     0 <= A <= 1
     ...
    End

Quadratic objective terms go inside ``[ ... ] / 2``, so their coefficients are
written doubled, and the (i, j) and (j, i) terms are merged.
"""

import re
import numpy as np
from typing import Dict, List, Tuple

LINE_WIDTH = 78


def _number(x: float) -> str:
    return f"{x:.10g}"


def _lp_name(name: str, used: Dict[str, int]) -> str:
    """Make ``name`` a legal, unique LP identifier."""
    clean = re.sub(r"[^A-Za-z0-9_.]", "_", name)
    if not clean or clean[0].isdigit() or clean[0] in ".eE":
        clean = "x_" + clean
    if clean in used:
        used[clean] += 1
        clean = f"{clean}_{used[clean]}"
    used.setdefault(clean, 0)
    return clean


def _terms(pairs: List[Tuple[float, str]]) -> List[str]:
    """Signed tokens for ``coef name`` pairs, dropping zeros."""
    tokens = []
    for coef, label in pairs:
        if coef == 0.0:
            continue
        sign = "-" if coef < 0 else "+"
        magnitude = abs(coef)
        body = label if magnitude == 1.0 else f"{_number(magnitude)} {label}"
        tokens.append(f"{sign} {body}")
    return tokens


def _strip_leading_plus(tokens: List[str]) -> List[str]:
    if tokens and tokens[0].startswith("+ "):
        tokens[0] = tokens[0][2:]
    return tokens


def _wrap(head: str, tokens: List[str]) -> List[str]:
    lines = []
    current = head
    indent = " " * len(head)
    for token in tokens:
        if len(current) + len(token) + 1 > LINE_WIDTH and current.strip() != head.strip():
            lines.append(current.rstrip())
            current = indent
        current = current + token + " "
    lines.append(current.rstrip())
    return lines


def format_lp(session) -> str:
    """
    Render a session's model as CPLEX LP text.

    Args:
        session: A SolverSession with an objective set

    Returns:
        LP file content
    """
    used: Dict[str, int] = {}
    names = [_lp_name(v.name, used) for v in session.variables]
    n = len(names)

    lines = [f"\\Problem name: {session.name}", ""]
    lines.append("Maximize" if session.sense == "maximize" else "Minimize")

    obj = session.objective
    linear = obj.linear_vector(n) if obj is not None else np.zeros(n)
    tokens = _terms([(linear[i], names[i]) for i in range(n)])

    if obj is not None and obj.is_quadratic:
        Q = obj.quadratic_matrix(n)
        quad_pairs = []
        for i in range(n):
            quad_pairs.append((2.0 * Q[i, i], f"{names[i]} ^2"))
            for j in range(i + 1, n):
                quad_pairs.append((2.0 * (Q[i, j] + Q[j, i]), f"{names[i]} * {names[j]}"))
        quad_tokens = _terms(quad_pairs)
        if quad_tokens:
            tokens.append("+ [")
            tokens.extend(_strip_leading_plus(quad_tokens))
            tokens.append("] / 2")

    if obj is not None and obj.constant != 0.0:
        sign = "-" if obj.constant < 0 else "+"
        tokens.append(f"{sign} {_number(abs(obj.constant))}")

    tokens = _strip_leading_plus(tokens)
    lines.extend(_wrap(" obj: ", tokens or ["0"]))

    lines.append("Subject To")
    for cname, expr, rhs in session.constraints:
        row = _strip_leading_plus(_terms([(c, names[i]) for i, c in sorted(expr.terms.items())]))
        lines.extend(_wrap(f" {cname}: ", (row or ["0"]) + [f"= {_number(rhs - expr.constant)}"]))

    lines.append("Bounds")
    for name, var in zip(names, session.variables):
        lo, hi = var.lb, var.ub
        if np.isinf(lo) and np.isinf(hi):
            lines.append(f" {name} free")
        elif np.isinf(hi):
            lines.append(f" {name} >= {_number(lo)}")
        elif np.isinf(lo):
            lines.append(f" -inf <= {name} <= {_number(hi)}")
        else:
            lines.append(f" {_number(lo)} <= {name} <= {_number(hi)}")

    lines.append("End")
    return "\n".join(lines) + "\n"


def write_lp(session, path: str) -> None:
    """Write ``format_lp(session)`` to ``path``."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(format_lp(session))
