"""
tinycalc expression -> LLVM bitcode.

The module holds a single ``double ()`` function, ``ENTRY_NAME``, with one
basic block. Each tree node emits exactly one instruction (two for a
reciprocal: the epsilon bias and the division), children before parents,
with no folding of any kind.
"""

import logging

import llvmlite.binding as llvm
import llvmlite.ir as ir

from tinycalc_ast import EPSILON, Add, Expression, Multiply, Negated, Number, Reciprocal, postorder
from tinycalc_errors import ExpressionTooDeepError

llvm.initialize_native_target()
llvm.initialize_native_asmprinter()

LOG = logging.getLogger("tinycalc.codegen")

ENTRY_NAME = "tinycalc_main"
F64 = ir.DoubleType()
ENTRY_TYPE = ir.FunctionType(F64, [])


class CodeGen:
    def __init__(self, builder: ir.IRBuilder):
        self.builder = builder

    def emit(self, expr: Expression) -> ir.Value:
        values = []
        for node in postorder(expr):
            if isinstance(node, Number):
                values.append(ir.Constant(F64, node.value))

            elif isinstance(node, Negated):
                values.append(self.builder.fneg(values.pop(), "neg"))

            elif isinstance(node, Reciprocal):
                one = ir.Constant(F64, 1.0)
                biased = self.builder.fadd(values.pop(), ir.Constant(F64, EPSILON), "bias")
                values.append(self.builder.fdiv(one, biased, "recip"))

            elif isinstance(node, Add):
                right = values.pop()
                values.append(self.builder.fadd(values.pop(), right, "sum"))

            elif isinstance(node, Multiply):
                right = values.pop()
                values.append(self.builder.fmul(values.pop(), right, "prod"))
        return values.pop()


def build_ir(expr: Expression) -> ir.Module:
    module = ir.Module(name="tinycalc")
    func = ir.Function(module, ENTRY_TYPE, ENTRY_NAME)
    block = func.append_basic_block("entry")
    builder = ir.IRBuilder(block)

    try:
        value = CodeGen(builder).emit(expr)
    except MemoryError as exc:
        raise ExpressionTooDeepError("expression too large to compile") from exc

    builder.ret(value)
    return module


def compile_module(expr: Expression) -> bytes:
    """Compile ``expr`` to an LLVM bitcode module and return its bytes."""
    llvm_mod = llvm.parse_assembly(str(build_ir(expr)))
    llvm_mod.verify()
    data = llvm_mod.as_bitcode()
    LOG.debug("compiled %d bytes of bitcode", len(data))
    return data


def disassemble(data: bytes) -> str:
    """Textual IR for a compiled module."""
    return str(llvm.parse_bitcode(data))
