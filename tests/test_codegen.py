"""Tests for the LLVM bitcode emitted for expressions.

The module must hold one exported ``double ()`` function whose body only
uses fneg/fadd/fmul/fdiv and ends in ret, with one instruction per node.
"""

from collections import Counter

import llvmlite.binding as llvm
import pytest

from exprgen import count_nodes, nested_negations, random_exprs
from tinycalc_ast import Add, Multiply, Negated, Number, Reciprocal
from tinycalc_codegen import ENTRY_NAME, compile_module, disassemble
from tinycalc_parser import parse

ALLOWED_OPCODES = {"fneg", "fadd", "fmul", "fdiv", "ret"}


def load(data: bytes):
    llvm_mod = llvm.parse_bitcode(data)
    llvm_mod.verify()
    return llvm_mod


def opcodes(expr):
    llvm_mod = load(compile_module(expr))
    (fn,) = list(llvm_mod.functions)
    return [instr.opcode for block in fn.blocks for instr in block.instructions]


class TestModuleShape:
    def test_single_exported_entry(self) -> None:
        expr, _ = parse("1 + 2 * 3 / 4 - 5")
        llvm_mod = load(compile_module(expr))

        functions = list(llvm_mod.functions)
        assert [fn.name for fn in functions] == [ENTRY_NAME]
        entry = functions[0]
        assert not entry.is_declaration
        assert entry.linkage == llvm.Linkage.external
        assert str(entry.global_value_type) == "double ()"
        assert list(llvm_mod.global_variables) == []
        assert len(list(entry.blocks)) == 1

    def test_vocabulary_and_terminator(self) -> None:
        for expr in random_exprs(seed=11, count=25):
            ops = opcodes(expr)
            assert set(ops) <= ALLOWED_OPCODES
            assert ops[-1] == "ret"
            assert ops.count("ret") == 1

    def test_constant_only_body(self) -> None:
        assert opcodes(Number(2.5)) == ["ret"]

    def test_disassemble(self) -> None:
        text = disassemble(compile_module(Negated(Number(1.0))))
        assert f"define double @{ENTRY_NAME}()" in text
        assert "fneg double" in text


class TestCodegenRules:
    def test_post_order(self) -> None:
        expr = Add(Multiply(Number(2.0), Number(3.0)), Negated(Number(4.0)))
        assert opcodes(expr) == ["fmul", "fneg", "fadd", "ret"]

    def test_reciprocal_bias_then_divide(self) -> None:
        assert opcodes(Reciprocal(Number(2.0))) == ["fadd", "fdiv", "ret"]

    def test_no_folding_of_constant_operands(self) -> None:
        expr = Add(Number(1.0), Number(2.0))
        assert opcodes(expr) == ["fadd", "ret"]

    @pytest.mark.parametrize("seed", range(3))
    def test_one_instruction_per_node(self, seed: int) -> None:
        for expr in random_exprs(seed, 20):
            counts = Counter(opcodes(expr))
            reciprocals = count_nodes(expr, Reciprocal)
            assert counts["fneg"] == count_nodes(expr, Negated)
            assert counts["fmul"] == count_nodes(expr, Multiply)
            assert counts["fdiv"] == reciprocals
            assert counts["fadd"] == count_nodes(expr, Add) + reciprocals

    def test_deep_chain_compiles(self) -> None:
        ops = opcodes(nested_negations(20_000))
        assert ops.count("fneg") == 20_000
        assert ops[-1] == "ret"
