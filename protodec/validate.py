from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence, Set, Tuple

from . import ast


@dataclass
class _Scope:
    parent: Optional["_Scope"] = None
    written: Set[int] = field(default_factory=set)
    loop_outputs: FrozenSet[int] = frozenset()

    def child(self, loop_output: Optional[int] = None) -> "_Scope":
        outputs = self.loop_outputs
        if loop_output is not None:
            outputs = outputs | {loop_output}
        return _Scope(parent=self, loop_outputs=outputs)

    def is_written(self, register: int) -> bool:
        scope: Optional[_Scope] = self
        while scope is not None:
            if register in scope.written:
                return True
            scope = scope.parent
        return False


def _err(errors: List[str], where: str, message: str) -> None:
    errors.append(f"{where}: {message}")


def _target_reads(target: ast.Target) -> Tuple[int, ...]:
    if isinstance(target, (ast.Stream, ast.Buf)):
        return (target.register,)
    return ()


def _constructable_reads(constructable: ast.Constructable) -> Tuple[int, ...]:
    if isinstance(constructable, ast.Struct):
        return tuple(register for _, register in constructable.fields)
    return tuple(constructable.items)


def _reads(instr: ast.Instruction) -> Tuple[int, ...]:
    if isinstance(instr, ast.Construct):
        return _constructable_reads(instr.constructable)
    if isinstance(instr, ast.Constrict):
        return _target_reads(instr.stream) + (instr.length,)
    if isinstance(instr, ast.WrapStream):
        return _target_reads(instr.stream) + tuple(instr.args)
    if isinstance(instr, ast.ConditionalWrapStream):
        # args are read after the prelude, inside its scope
        return (instr.condition,) + _target_reads(instr.stream)
    if isinstance(instr, (ast.DecodeForeign, ast.DecodeRef)):
        return _target_reads(instr.target) + tuple(instr.args)
    if isinstance(instr, (ast.DecodeEnum, ast.DecodePrimitive)):
        return _target_reads(instr.target)
    if isinstance(instr, ast.DecodePrimitiveArray):
        length = (instr.length,) if instr.length is not None else ()
        return _target_reads(instr.target) + length
    if isinstance(instr, ast.Loop):
        extra = tuple(r for r in (instr.stop, instr.terminator) if r is not None)
        return _target_reads(instr.target) + extra
    if isinstance(instr, ast.LoopOutput):
        return (instr.output, instr.item)
    if isinstance(instr, ast.Conditional):
        return (instr.condition,)
    return ()


def _writes(instr: ast.Instruction) -> Tuple[int, ...]:
    if isinstance(instr, (ast.Eval, ast.Construct, ast.Conditional)):
        return (instr.target,)
    if isinstance(instr, (ast.Constrict, ast.WrapStream, ast.ConditionalWrapStream)):
        return (instr.new_stream,)
    if isinstance(
        instr,
        (
            ast.DecodeForeign,
            ast.DecodeRef,
            ast.DecodeEnum,
            ast.DecodePrimitive,
            ast.DecodePrimitiveArray,
        ),
    ):
        return (instr.data,)
    return ()


class _Checker:
    def __init__(self, context: ast.Context, errors: List[str]) -> None:
        self.context = context
        self.errors = errors

    def _in_range(self, register: int, where: str) -> bool:
        if 0 <= register < self.context.register_count:
            return True
        _err(
            self.errors,
            where,
            f"register r{register} outside 0..{self.context.register_count - 1}",
        )
        return False

    def read(self, register: int, scope: _Scope, where: str) -> None:
        if self._in_range(register, where) and not scope.is_written(register):
            _err(self.errors, where, f"reads r{register} before it is written")

    def write(self, register: int, scope: _Scope, where: str) -> None:
        if not self._in_range(register, where):
            return
        if scope.is_written(register):
            _err(self.errors, where, f"register r{register} written twice")
            return
        scope.written.add(register)

    def block(
        self, instructions: Sequence[ast.Instruction], scope: _Scope, prefix: str
    ) -> None:
        for index, instr in enumerate(instructions):
            self.instr(instr, scope, f"{prefix}#{index} {type(instr).__name__}")

    def instr(self, instr: ast.Instruction, scope: _Scope, where: str) -> None:
        for register in _reads(instr):
            self.read(register, scope, where)

        if isinstance(instr, ast.ConditionalWrapStream):
            inner = scope.child()
            self.block(instr.prelude, inner, f"{where}/prelude")
            for register in instr.args:
                self.read(register, inner, where)
        elif isinstance(instr, ast.Loop):
            if instr.stop is not None and instr.terminator is not None:
                _err(self.errors, where, "loop cannot have both a count and a terminator")
            # The output list exists before the body runs.
            self.write(instr.output, scope, where)
            self.block(instr.body, scope.child(loop_output=instr.output), f"{where}/body")
            return
        elif isinstance(instr, ast.LoopOutput):
            if instr.output not in scope.loop_outputs:
                _err(self.errors, where, f"r{instr.output} is not an enclosing loop output")
        elif isinstance(instr, ast.Conditional):
            inner = scope.child()
            self.block(instr.body, inner, f"{where}/body")
            if instr.interior not in inner.written:
                _err(self.errors, where, f"body never writes interior r{instr.interior}")

        for register in _writes(instr):
            self.write(register, scope, where)


def validate(context: ast.Context) -> List[str]:
    errors: List[str] = []
    if context.register_count <= 0:
        _err(errors, "program", "register count must be positive")
        return errors
    checker = _Checker(context, errors)
    root = _Scope()
    for register in context.argument_registers:
        checker.write(register, root, "arguments")
    for name, register in context.field_register_map.items():
        checker._in_range(register, f"field {name}")
    checker.block(context.instructions, root, "")
    if context.output_register not in root.written:
        _err(
            errors,
            "program",
            f"output register r{context.output_register} is never written at root scope",
        )
    return errors


__all__ = ["validate"]
