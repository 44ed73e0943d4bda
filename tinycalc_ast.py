"""
Expression tree for tinycalc.

Five node kinds. Subtraction and division do not exist here: the parser
rewrites ``a - b`` to ``Add(a, Negated(b))`` and ``a / b`` to
``Multiply(a, Reciprocal(b))``.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from tinycalc_errors import ExpressionTooDeepError

# Added to every reciprocal's denominator by both backends, so 1/0 stays finite.
EPSILON = 1e-5


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Negated:
    operand: "Expression"


@dataclass(frozen=True)
class Reciprocal:
    operand: "Expression"


@dataclass(frozen=True)
class Add:
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class Multiply:
    left: "Expression"
    right: "Expression"


Expression = Union[Number, Negated, Reciprocal, Add, Multiply]


def children(expr: Expression):
    if isinstance(expr, Number):
        return ()
    if isinstance(expr, (Negated, Reciprocal)):
        return (expr.operand,)
    if isinstance(expr, (Add, Multiply)):
        return (expr.left, expr.right)
    raise TypeError(f"Unsupported node: {expr.__class__.__name__}")


def postorder(expr: Expression):
    """Yield every node after its children, left subtree first.

    Uses an explicit stack: a left-folded chain like ``1+1+...+1`` is as
    deep as it is long.
    """
    stack = [(expr, False)]
    while stack:
        node, expanded = stack.pop()
        kids = children(node)
        if expanded or not kids:
            yield node
            continue
        stack.append((node, True))
        stack.extend((child, False) for child in reversed(kids))


# Parses back to an infinite float; the grammar has no literal for it.
_OVERFLOWING_DIGITS = "1" + "0" * 400


def _format_number(value: float) -> str:
    if math.isnan(value):
        return f"(0 * {_OVERFLOWING_DIGITS})"
    if math.isinf(value):
        text = _OVERFLOWING_DIGITS
    else:
        # The grammar has no exponent syntax, so always write positional digits.
        text = format(Decimal(repr(abs(value))), "f")
    return "-" + text if value < 0 else text


def _pieces(expr: Expression):
    if isinstance(expr, Number):
        return (_format_number(expr.value),)
    if isinstance(expr, Negated):
        return ("-(", expr.operand, ")")
    if isinstance(expr, Reciprocal):
        return ("(1 / ", expr.operand, ")")
    if isinstance(expr, Add):
        return ("(", expr.left, " + ", expr.right, ")")
    if isinstance(expr, Multiply):
        return ("(", expr.left, " * ", expr.right, ")")
    raise TypeError(f"Unsupported node: {expr.__class__.__name__}")


def render(expr: Expression) -> str:
    """Write ``expr`` back out as fully parenthesized source text."""
    out = []
    stack = [expr]
    try:
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                out.append(item)
            else:
                stack.extend(reversed(_pieces(item)))
        return "".join(out)
    except MemoryError as exc:
        raise ExpressionTooDeepError("expression too large to render") from exc
