"""
Exceptions raised by tinycalc.

Parse problems are not exceptions: ``tinycalc_parser.parse`` returns them as
``ParseError`` values. Only the ``Calculator`` facade turns them into a
``ParseFailure``.
"""


class CalcError(Exception):
    """Base class for every error tinycalc raises on purpose."""


class ParseFailure(CalcError):
    def __init__(self, source: str, errors):
        self.source = source
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} parse error(s) in {source!r}")


class ExpressionTooDeepError(CalcError):
    """The expression tree does not fit in the memory available to walk it."""


# --------------------- VM stages ---------------------
class VMError(CalcError):
    stage = "vm"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"{self.stage} failed: {detail}")


class LoadError(VMError):
    stage = "load"


class InstantiateError(VMError):
    stage = "instantiate"


class ExportLookupError(VMError):
    stage = "lookup"


class SignatureMismatchError(VMError):
    stage = "signature"


class InvocationError(VMError):
    stage = "invoke"
