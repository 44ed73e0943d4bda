"""
Run compiled tinycalc modules on llvmlite's MCJIT engine.

Loading, instantiating, finding the entry point, checking its type and
calling it each fail with their own ``VMError`` subclass.
"""

import ctypes
import logging

import llvmlite.binding as llvm

from tinycalc_codegen import ENTRY_NAME, ENTRY_TYPE, compile_module
from tinycalc_errors import (
    ExportLookupError,
    InstantiateError,
    InvocationError,
    LoadError,
    SignatureMismatchError,
)

LOG = logging.getLogger("tinycalc.vm")


def _load(data: bytes):
    try:
        llvm_mod = llvm.parse_bitcode(data)
        llvm_mod.verify()
    except RuntimeError as exc:
        raise LoadError(str(exc).strip() or "invalid bitcode") from exc
    return llvm_mod


def _instantiate(llvm_mod):
    # Nothing is linked in, so a declaration could never be resolved.
    imports = [fn.name for fn in llvm_mod.functions if fn.is_declaration]
    if imports:
        raise InstantiateError(f"module imports {', '.join(imports)}, none are provided")
    try:
        target = llvm.Target.from_default_triple()
        tm = target.create_target_machine()
        engine = llvm.create_mcjit_compiler(llvm_mod, tm)
        engine.finalize_object()
    except RuntimeError as exc:
        raise InstantiateError(str(exc).strip()) from exc
    return engine


def _lookup(llvm_mod, engine):
    try:
        fn = llvm_mod.get_function(ENTRY_NAME)
    except NameError as exc:
        raise ExportLookupError(f"no function named {ENTRY_NAME!r}") from exc
    if fn.is_declaration or fn.linkage != llvm.Linkage.external:
        raise ExportLookupError(f"{ENTRY_NAME!r} is not an exported definition")

    addr = engine.get_function_address(ENTRY_NAME)
    if not addr:
        raise ExportLookupError(f"{ENTRY_NAME!r} has no address in the engine")
    return fn, addr


def _check_signature(fn) -> None:
    found = str(fn.global_value_type)
    if found != str(ENTRY_TYPE):
        raise SignatureMismatchError(f"{ENTRY_NAME!r} has type {found}, expected {ENTRY_TYPE}")


def _invoke(addr: int) -> float:
    cfunc = ctypes.CFUNCTYPE(ctypes.c_double)(addr)
    try:
        return float(cfunc())
    except (OSError, ctypes.ArgumentError, TypeError) as exc:
        raise InvocationError(str(exc)) from exc


def run_module(data: bytes) -> float:
    """Load ``data`` as bitcode and return what its entry function computes."""
    LOG.debug("load: %d bytes", len(data))
    llvm_mod = _load(data)

    LOG.debug("instantiate")
    engine = _instantiate(llvm_mod)

    LOG.debug("lookup: %s", ENTRY_NAME)
    fn, addr = _lookup(llvm_mod, engine)

    LOG.debug("signature: %s", ENTRY_TYPE)
    _check_signature(fn)

    LOG.debug("invoke")
    return _invoke(addr)


def compile_and_run(expr) -> float:
    return run_module(compile_module(expr))
