"""
Lark grammar and parser for tinycalc expressions.

    expr     := sum
    sum      := product (('+' | '-') product)*
    product  := unary (('*' | 'x' | '/') unary)*
    unary    := atom | '-' atom
    atom     := decimal | '(' expr ')'

The tree is built while parsing (LALR with an inline transformer), so input
nesting depth never recurses in Python.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken
from lark.lexer import PatternStr

from tinycalc_ast import Add, Expression, Multiply, Negated, Number, Reciprocal

LOG = logging.getLogger("tinycalc.parser")

# --------------------- Grammar ---------------------
grammar = r"""
    ?start: sum

    ?sum: sum "+" product           -> add
        | sum "-" product           -> sub
        | product

    ?product: product "*" unary     -> mul
            | product "x" unary     -> mul
            | product "/" unary     -> div
            | unary

    ?unary: "-" atom                -> neg
          | atom

    ?atom: DECIMAL                  -> number
         | "(" sum ")"

    DECIMAL: /[0-9]+(\.[0-9]+)?/

    %import common.WS
    %ignore WS
"""


# --------------------- Tree builder ---------------------
class AstBuilder(Transformer):
    """Builds tinycalc_ast nodes, desugaring '-' and '/' on the way."""

    @v_args(inline=True)
    def number(self, token):
        return Number(float(token))

    @v_args(inline=True)
    def neg(self, operand):
        return Negated(operand)

    @v_args(inline=True)
    def add(self, left, right):
        return Add(left, right)

    @v_args(inline=True)
    def sub(self, left, right):
        return Add(left, Negated(right))

    @v_args(inline=True)
    def mul(self, left, right):
        return Multiply(left, right)

    @v_args(inline=True)
    def div(self, left, right):
        return Multiply(left, Reciprocal(right))


parser = Lark(grammar, parser="lalr", transformer=AstBuilder())


def _describe_terminals():
    names = {"$END": "end of input"}
    for term in parser.terminals:
        if isinstance(term.pattern, PatternStr):
            names[term.name] = repr(term.pattern.value)
        else:
            names[term.name] = term.name.lower()
    return names


_TERMINAL_NAMES = _describe_terminals()


# --------------------- Errors ---------------------
@dataclass(frozen=True)
class ParseError:
    """One problem found in the input. ``span`` is in UTF-8 byte offsets."""

    span: Tuple[int, int]
    reason: str
    message: str


def _byte_offset(text: str, index: int) -> int:
    return len(text[:index].encode("utf-8"))


def _expected(names) -> str:
    if not names:
        return "nothing"
    shown = sorted(_TERMINAL_NAMES.get(n, n) for n in names)
    if len(shown) == 1:
        return shown[0]
    return ", ".join(shown[:-1]) + " or " + shown[-1]


def _at_end(exc: UnexpectedInput) -> bool:
    if isinstance(exc, UnexpectedToken):
        return exc.token.type == "$END"
    return isinstance(exc, UnexpectedEOF)


def _to_parse_error(text: str, exc: UnexpectedInput) -> ParseError:
    if isinstance(exc, UnexpectedCharacters):
        start = exc.pos_in_stream
        end = start + 1
        found = repr(exc.char)
        expected = _expected(exc.allowed)
    elif isinstance(exc, UnexpectedToken) and not _at_end(exc):
        start = exc.token.start_pos
        end = exc.token.end_pos if exc.token.end_pos is not None else start + len(exc.token)
        found = repr(str(exc.token))
        expected = _expected(exc.expected)
    else:
        # UnexpectedEOF, or the LALR end-of-input token
        start = end = len(text)
        found = "end of input"
        expected = _expected(getattr(exc, "expected", None))

    reason = f"found {found} expected {expected}"
    span = (_byte_offset(text, start), _byte_offset(text, end))
    message = f"found {found}" if found == "end of input" else f"unexpected {found}"
    return ParseError(span=span, reason=reason, message=message)


def parse(text: str) -> Tuple[Optional[Expression], List[ParseError]]:
    """Parse ``text``.

    Returns ``(expr, [])`` on success and ``(None, errors)`` otherwise. The
    parser keeps going after a bad token so one call can report several
    problems; lark exceptions never escape.
    """
    seen = []

    def on_error(exc):
        seen.append(exc)
        # Nothing left to resume from at end of input.
        return not _at_end(exc)

    try:
        expr = parser.parse(text, on_error=on_error)
    except UnexpectedInput as exc:
        if not any(exc is prior for prior in seen):
            seen.append(exc)
        expr = None

    errors = [_to_parse_error(text, exc) for exc in seen]
    if errors:
        LOG.debug("collected %d parse error(s) for %r", len(errors), text)
        return None, errors
    return expr, []
