#!/usr/bin/env python3
"""
tinycalc – arithmetic expressions, interpreted or JIT-compiled

    $ tinycalc 2 + 3 x 4
    14
    $ tinycalc-jit "(2 + 3) * 4"
    20

The arguments are joined with single spaces into one expression.
"""

import logging
import sys
from typing import List, Optional

from tinycalc_errors import CalcError, ParseFailure
from tinycalc_interp import evaluate
from tinycalc_parser import parse
from tinycalc_vm import compile_and_run

# --------------------- Logging ---------------------
LOG = logging.getLogger("tinycalc")
if not LOG.handlers:
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    LOG.addHandler(h)
LOG.setLevel(logging.WARNING)

BACKENDS = ("interpreter", "jit")


# --------------------- Facade ---------------------
class Calculator:
    def __init__(self, backend: str = "interpreter"):
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend {backend!r}, choose from {BACKENDS}")
        self.backend = backend

    def run(self, source: str) -> float:
        expr, errors = parse(source)
        if errors:
            raise ParseFailure(source, errors)
        if self.backend == "jit":
            return compile_and_run(expr)
        return evaluate(expr)


# --------------------- Diagnostics ---------------------
def _char_index(text: str, byte_offset: int) -> int:
    return len(text.encode("utf-8")[:byte_offset].decode("utf-8", errors="ignore"))


def render_diagnostics(source: str, errors) -> str:
    """Format parse errors with the offending span underlined."""
    out = ["Failed to parse input expression"]
    lines = source.split("\n")
    gutter = len(str(len(lines)))

    for err in errors:
        start = _char_index(source, err.span[0])
        end = _char_index(source, err.span[1])

        line_no = source.count("\n", 0, start)
        line_start = source.rfind("\n", 0, start) + 1
        column = start - line_start
        width = max(1, min(end, line_start + len(lines[line_no])) - start)

        out.append(f"Error: {err.message}")
        out.append(f"{'':>{gutter}} |")
        out.append(f"{line_no + 1:>{gutter}} | {lines[line_no]}")
        out.append(f"{'':>{gutter}} | {' ' * column}{'^' * width} {err.reason}")
    return "\n".join(out)


def format_result(value: float) -> str:
    text = repr(value)
    return text[:-2] if text.endswith(".0") else text


# --------------------- CLI ---------------------
def main(argv: Optional[List[str]] = None, backend: str = "interpreter") -> int:
    args = sys.argv[1:] if argv is None else argv
    source = " ".join(args)
    calculator = Calculator(backend)
    LOG.debug("%s: %r", backend, source)

    try:
        result = calculator.run(source)
    except ParseFailure as exc:
        print(render_diagnostics(exc.source, exc.errors), file=sys.stderr)
        return 1
    except CalcError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(format_result(result))
    return 0


def main_jit(argv: Optional[List[str]] = None) -> int:
    return main(argv, backend="jit")


def console_main() -> None:
    sys.exit(main())


def console_main_jit() -> None:
    sys.exit(main_jit())


if __name__ == "__main__":
    console_main()
