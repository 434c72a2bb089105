"""
Decode driver: walks an instruction program and executes it over a stream.

The walker is written once as a generator and driven either by a blocking
or by a suspending driver (see `protodec.drivers`), chosen when the program
is compiled.
"""

from __future__ import annotations

import enum
import logging
import operator
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence

from . import ast, codecs, trace
from .config import DecoderConfig, load_decoder_config
from .drivers import open_source, run_blocking, run_suspending
from .errors import ConversionError, DecodeError, ProgramError
from .registers import Frame
from .streams import ByteStream, Cursor, Steps, Take
from .values import Record, Tagged

logger = logging.getLogger(__name__)

_ENTRY_POINTS = {"blocking": "decode_sync", "suspending": "decode_async"}


class Decodable(Protocol):
    """A named message type that `DecodeRef` can delegate to."""

    def decode_sync(self, source: Any, *args: Any) -> Any: ...

    async def decode_async(self, source: Any, *args: Any) -> Any: ...

    def decode_steps(
        self,
        stream: ByteStream,
        args: Sequence[Any],
        mode: str,
        config: Optional[DecoderConfig] = None,
    ) -> Steps[Any]: ...


@dataclass
class _Env:
    context: ast.Context
    mode: str
    config: DecoderConfig


def _label(instr: ast.Instruction) -> str:
    for attr in ("data", "new_stream", "output", "target"):
        value = getattr(instr, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return f"{type(instr).__name__}(r{value})"
    return type(instr).__name__


def _as_count(value: Any, what: str) -> int:
    try:
        count = operator.index(value)
    except TypeError:
        raise ConversionError(
            f"{what} must be an integer, got {type(value).__name__}"
        ) from None
    if count < 0:
        raise ConversionError(f"{what} must not be negative (got {count})")
    return count


def _lookup_type(context: ast.Context, name: str) -> Any:
    try:
        return context.types[name]
    except KeyError:
        raise ProgramError(f"type {name!r} is not registered") from None


def _field_lookup(context: ast.Context, frame: Frame) -> ast.FieldLookup:
    def lookup(name: str) -> Any:
        try:
            register = context.field_register_map[name]
        except KeyError:
            raise ProgramError(f"missing register for field {name!r}") from None
        return frame.get(register)

    return lookup


def _construct(
    constructable: ast.Constructable, context: ast.Context, frame: Frame
) -> Any:
    if isinstance(constructable, ast.TupleOf):
        return tuple(frame.get_many(constructable.items))
    if isinstance(constructable, ast.TaggedTuple):
        values = frame.get_many(constructable.items)
        ctor = context.types.get(constructable.name)
        if ctor is not None:
            return ctor(*values)
        return Tagged(constructable.name, tuple(values))
    if isinstance(constructable, ast.Struct):
        fields = [(name, frame.get(register)) for name, register in constructable.fields]
        ctor = context.types.get(constructable.name)
        if ctor is not None:
            return ctor(**dict(fields))
        return Record(constructable.name, tuple(fields))
    raise ProgramError(f"Constructable {constructable!r} not supported")


def _run_iteration(
    env: _Env,
    body: Sequence[ast.Instruction],
    frame: Frame,
    stream: ByteStream,
) -> Steps[None]:
    before = stream.position
    yield from prepare_decode(env, body, frame, is_root=False)
    if stream.position == before:
        raise DecodeError("loop body consumed no input; refusing to spin")


def _exec_loop(instr: ast.Loop, env: _Env, frame: Frame) -> Steps[None]:
    if instr.stop is not None and instr.terminator is not None:
        raise ProgramError("loop cannot have both a count and a terminator")

    output: list = []
    if instr.stop is not None:
        count = _as_count(frame.get(instr.stop), "loop count")
        frame.set(instr.output, output)
        for _ in range(count):
            yield from prepare_decode(env, instr.body, frame.child(), is_root=False)
        return

    stream = frame.emit_target(instr.target)
    if instr.terminator is not None:
        terminator = bytes(frame.get(instr.terminator))
        if not terminator:
            raise ProgramError("loop terminator is empty")
        frame.set(instr.output, output)
        while True:
            # Refills until a full terminator is buffered or input truly ends.
            peeked = yield from stream.fill_buf(len(terminator))
            if not peeked:
                break
            if peeked[: len(terminator)] == terminator:
                stream.consume(len(terminator))
                break
            yield from _run_iteration(env, instr.body, frame.child(), stream)
        return

    data = yield from stream.read_to_end()
    cursor = Cursor(data)
    frame.set(instr.output, output)
    while not cursor.at_end:
        if isinstance(instr.target, ast.Direct):
            body_frame = frame.child(reader=cursor)
        else:
            body_frame = frame.child(streams={instr.target.register: cursor})
        yield from _run_iteration(env, instr.body, body_frame, cursor)


def _exec_instr(instr: ast.Instruction, env: _Env, frame: Frame) -> Steps[None]:
    context = env.context
    if isinstance(instr, ast.Eval):
        frame.set(instr.target, instr.expr.evaluate(_field_lookup(context, frame)))
        return
    if isinstance(instr, ast.Construct):
        frame.set(instr.target, _construct(instr.constructable, context, frame))
        return
    if isinstance(instr, ast.Constrict):
        stream = frame.emit_target(instr.stream)
        length = _as_count(frame.get(instr.length), "constrict length")
        frame.set(instr.new_stream, Take(stream, length))
        return
    if isinstance(instr, ast.WrapStream):
        stream = frame.emit_target(instr.stream)
        args = frame.get_many(instr.args)
        frame.set(instr.new_stream, instr.transformer.wrap(stream, args, env.mode))
        return
    if isinstance(instr, ast.ConditionalWrapStream):
        stream = frame.emit_target(instr.stream)
        wrapped = stream
        if frame.get(instr.condition):
            inner = frame.child()
            yield from prepare_decode(env, instr.prelude, inner, is_root=False)
            args = inner.get_many(instr.args)
            wrapped = instr.transformer.wrap(stream, args, env.mode)
        frame.set(instr.new_stream, wrapped)
        return
    if isinstance(instr, ast.DecodeForeign):
        stream = frame.emit_target(instr.target)
        args = frame.get_many(instr.args)
        value = yield from instr.foreign_type.decode(stream, args, env.mode)
        frame.set(instr.data, value)
        return
    if isinstance(instr, ast.DecodeRef):
        stream = frame.emit_target(instr.target)
        decodable: Decodable = _lookup_type(context, instr.type_name)
        args = frame.get_many(instr.args)
        value = yield from decodable.decode_steps(stream, args, env.mode, env.config)
        frame.set(instr.data, value)
        return
    if isinstance(instr, ast.DecodeEnum):
        stream = frame.emit_target(instr.target)
        enum_cls = _lookup_type(context, instr.enum_name)
        value = yield from codecs.decode_enum(stream, enum_cls, instr.backing)
        frame.set(instr.data, value)
        return
    if isinstance(instr, ast.DecodePrimitive):
        stream = frame.emit_target(instr.target)
        value = yield from codecs.decode_primitive(stream, instr.primitive)
        frame.set(instr.data, value)
        return
    if isinstance(instr, ast.DecodePrimitiveArray):
        stream = frame.emit_target(instr.target)
        count: Optional[int] = None
        if instr.length is not None:
            count = _as_count(frame.get(instr.length), "array length")
        value = yield from codecs.decode_array(
            stream,
            instr.primitive,
            count,
            allow_partial_tail=env.config.allow_partial_tail,
        )
        frame.set(instr.data, value)
        return
    if isinstance(instr, ast.Loop):
        yield from _exec_loop(instr, env, frame)
        return
    if isinstance(instr, ast.LoopOutput):
        frame.get(instr.output).append(frame.get(instr.item))
        return
    if isinstance(instr, ast.Conditional):
        value = None
        if frame.get(instr.condition):
            inner = frame.child()
            yield from prepare_decode(env, instr.body, inner, is_root=False)
            value = inner.get(instr.interior)
        frame.set(instr.target, value)
        return
    raise ProgramError(f"Instruction {instr!r} not supported")


def prepare_decode(
    env: _Env,
    instructions: Sequence[ast.Instruction],
    frame: Frame,
    is_root: bool,
) -> Steps[None]:
    """Execute `instructions` in order; nested blocks recurse with is_root=False."""

    if is_root:
        # The execution mode's read capability is fixed before any instruction runs.
        frame.bind_reader(open_source(frame.reader, env.mode, env.config.chunk_size))
    for index, instr in enumerate(instructions):
        label = _label(instr)
        if env.config.trace:
            trace.record("exec", frame.depth, label, env.mode)
            logger.debug("%s%s", "  " * frame.depth, label)
        try:
            yield from _exec_instr(instr, env, frame)
        except DecodeError as exc:
            if env.config.trace:
                trace.record("fail", frame.depth, label, exc.message)
            exc.add_frame(f"#{index} {label}")
            raise


def _bind_arguments(context: ast.Context, frame: Frame, args: Sequence[Any]) -> None:
    if len(args) != len(context.argument_registers):
        raise ProgramError(
            f"expected {len(context.argument_registers)} decode arguments, "
            f"got {len(args)}"
        )
    for register, value in zip(context.argument_registers, args):
        frame.set(register, value)


def decode_steps(
    context: ast.Context,
    source: Any,
    args: Sequence[Any],
    mode: str,
    config: Optional[DecoderConfig] = None,
) -> Steps[Any]:
    env = _Env(context=context, mode=mode, config=config or load_decoder_config())
    frame = Frame(reader=source)
    _bind_arguments(context, frame, args)
    yield from prepare_decode(env, context.instructions, frame, is_root=True)
    return frame.get(context.output_register)


def _check_program(
    context: ast.Context, instructions: Sequence[ast.Instruction], mode: str
) -> None:
    for instr in instructions:
        if isinstance(instr, ast.DecodeRef):
            decodable = _lookup_type(context, instr.type_name)
            for attr in (_ENTRY_POINTS[mode], "decode_steps"):
                if not callable(getattr(decodable, attr, None)):
                    raise ProgramError(
                        f"type {instr.type_name!r} has no {attr} entry point"
                    )
        elif isinstance(instr, ast.DecodeEnum):
            enum_cls = _lookup_type(context, instr.enum_name)
            if not (isinstance(enum_cls, type) and issubclass(enum_cls, enum.Enum)):
                raise ProgramError(f"type {instr.enum_name!r} is not an enumeration")
        for block in ast.nested_blocks(instr):
            _check_program(context, block, mode)


def compile_decoder(
    context: ast.Context,
    mode: str = "blocking",
    config: Optional[DecoderConfig] = None,
) -> Callable[..., Any]:
    """
    Produce the decode procedure for `context` in the given execution mode.

    Blocking mode returns a plain function taking a binary file-like source;
    suspending mode returns a coroutine function taking an
    `asyncio.StreamReader`. Both return the value of the last register.
    """

    if mode not in ast.MODES:
        raise ProgramError(f"unknown execution mode {mode!r}")
    if context.register_count <= 0:
        raise ProgramError("program allocates no registers")
    config = config or load_decoder_config()
    _check_program(context, context.instructions, mode)

    if mode == "blocking":

        def decode(source: Any, *args: Any) -> Any:
            return run_blocking(decode_steps(context, source, args, mode, config))

        return decode

    async def decode_async(source: Any, *args: Any) -> Any:
        return await run_suspending(decode_steps(context, source, args, mode, config))

    return decode_async


__all__ = ["Decodable", "prepare_decode", "decode_steps", "compile_decoder"]
