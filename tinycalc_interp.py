"""Tree-walking interpreter for tinycalc expressions."""

import math

from tinycalc_ast import EPSILON, Add, Expression, Multiply, Negated, Number, Reciprocal, postorder
from tinycalc_errors import ExpressionTooDeepError


def _reciprocal(value: float) -> float:
    denominator = value + EPSILON
    if denominator == 0.0:
        # IEEE 754 result, as the compiled backend produces it
        return math.copysign(math.inf, denominator)
    return 1.0 / denominator


def _evaluate(expr: Expression) -> float:
    values = []
    for node in postorder(expr):
        if isinstance(node, Number):
            values.append(node.value)
        elif isinstance(node, Negated):
            values.append(-values.pop())
        elif isinstance(node, Reciprocal):
            values.append(_reciprocal(values.pop()))
        elif isinstance(node, Add):
            right = values.pop()
            values.append(values.pop() + right)
        elif isinstance(node, Multiply):
            right = values.pop()
            values.append(values.pop() * right)
    return values.pop()


def evaluate(expr: Expression) -> float:
    """Reduce ``expr`` to a float.

    Reciprocals are biased by ``EPSILON``, so ``1/0`` gives a large finite
    number instead of failing.
    """
    try:
        return _evaluate(expr)
    except MemoryError as exc:
        raise ExpressionTooDeepError("expression too large to evaluate") from exc
