from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Literal,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

from .ffi import ForeignFunction, ForeignType, Transformer

Register = int
Mode = Literal["blocking", "suspending"]
PrimitiveType = Literal[
    "bool",
    "u8",
    "u16",
    "u32",
    "u64",
    "u128",
    "i8",
    "i16",
    "i32",
    "i64",
    "i128",
    "f32",
    "f64",
]

PRIMITIVE_WIDTHS: Dict[str, int] = {
    "bool": 1,
    "u8": 1,
    "u16": 2,
    "u32": 4,
    "u64": 8,
    "u128": 16,
    "i8": 1,
    "i16": 2,
    "i32": 4,
    "i64": 8,
    "i128": 16,
    "f32": 4,
    "f64": 8,
}

MODES: Tuple[str, ...] = ("blocking", "suspending")

FieldLookup = Callable[[str], Any]


def _as_tuple(items: Sequence[Any]) -> Tuple[Any, ...]:
    return tuple(items) if not isinstance(items, tuple) else items


# Targets


@dataclass(frozen=True, slots=True)
class Direct:
    pass


@dataclass(frozen=True, slots=True)
class Stream:
    register: Register


@dataclass(frozen=True, slots=True)
class Buf:
    register: Register


Target = Union[Direct, Stream, Buf]


# Expressions consumed by Eval. The evaluator proper lives in the front end;
# these leaf forms cover serialised programs.


class Expression(Protocol):
    def evaluate(self, lookup: FieldLookup) -> Any: ...


@dataclass(frozen=True, slots=True)
class FieldRef:
    name: str

    def evaluate(self, lookup: FieldLookup) -> Any:
        return lookup(self.name)


@dataclass(frozen=True, slots=True)
class Const:
    value: Any

    def evaluate(self, lookup: FieldLookup) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class Call:
    function: ForeignFunction
    args: Sequence[Expression] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", _as_tuple(self.args))

    def evaluate(self, lookup: FieldLookup) -> Any:
        return self.function.call([arg.evaluate(lookup) for arg in self.args])


# Constructables


@dataclass(frozen=True, slots=True)
class TupleOf:
    items: Sequence[Register]

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", _as_tuple(self.items))


@dataclass(frozen=True, slots=True)
class TaggedTuple:
    name: str
    items: Sequence[Register]

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", _as_tuple(self.items))


@dataclass(frozen=True, slots=True)
class Struct:
    name: str
    fields: Sequence[Tuple[str, Register]]

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "fields", tuple((name, reg) for name, reg in self.fields)
        )


Constructable = Union[TupleOf, TaggedTuple, Struct]


# Instructions


@dataclass(frozen=True, slots=True)
class Eval:
    target: Register
    expr: Expression


@dataclass(frozen=True, slots=True)
class Construct:
    target: Register
    constructable: Constructable


@dataclass(frozen=True, slots=True)
class Constrict:
    stream: Target
    new_stream: Register
    length: Register


@dataclass(frozen=True, slots=True)
class WrapStream:
    stream: Target
    new_stream: Register
    transformer: Transformer
    args: Sequence[Register] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", _as_tuple(self.args))


@dataclass(frozen=True, slots=True)
class ConditionalWrapStream:
    condition: Register
    prelude: Sequence["Instruction"]
    stream: Target
    new_stream: Register
    transformer: Transformer
    args: Sequence[Register] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "prelude", _as_tuple(self.prelude))
        object.__setattr__(self, "args", _as_tuple(self.args))


@dataclass(frozen=True, slots=True)
class DecodeForeign:
    target: Target
    data: Register
    foreign_type: ForeignType
    args: Sequence[Register] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", _as_tuple(self.args))


@dataclass(frozen=True, slots=True)
class DecodeRef:
    target: Target
    data: Register
    type_name: str
    args: Sequence[Register] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", _as_tuple(self.args))


@dataclass(frozen=True, slots=True)
class DecodeEnum:
    enum_name: str
    backing: PrimitiveType
    data: Register
    target: Target


@dataclass(frozen=True, slots=True)
class DecodePrimitive:
    target: Target
    data: Register
    primitive: PrimitiveType


@dataclass(frozen=True, slots=True)
class DecodePrimitiveArray:
    target: Target
    data: Register
    primitive: PrimitiveType
    length: Optional[Register] = None


@dataclass(frozen=True, slots=True)
class Loop:
    """
    Repeat `body`, collecting items into the list held in `output`.

    Exactly one termination rule applies: `stop` (a count register),
    `terminator` (a register holding the byte sequence that ends the loop),
    or neither, which runs until `target` is exhausted.
    """

    target: Target
    stop: Optional[Register]
    terminator: Optional[Register]
    output: Register
    body: Sequence["Instruction"]

    def __post_init__(self) -> None:
        object.__setattr__(self, "body", _as_tuple(self.body))


@dataclass(frozen=True, slots=True)
class LoopOutput:
    output: Register
    item: Register


@dataclass(frozen=True, slots=True)
class Conditional:
    target: Register
    interior: Register
    condition: Register
    body: Sequence["Instruction"]

    def __post_init__(self) -> None:
        object.__setattr__(self, "body", _as_tuple(self.body))


Instruction = Union[
    Eval,
    Construct,
    Constrict,
    WrapStream,
    ConditionalWrapStream,
    DecodeForeign,
    DecodeRef,
    DecodeEnum,
    DecodePrimitive,
    DecodePrimitiveArray,
    Loop,
    LoopOutput,
    Conditional,
]


def nested_blocks(instr: Instruction) -> Tuple[Sequence[Instruction], ...]:
    if isinstance(instr, ConditionalWrapStream):
        return (instr.prelude,)
    if isinstance(instr, (Loop, Conditional)):
        return (instr.body,)
    return ()


@dataclass(frozen=True)
class Context:
    """
    One compiled message: its instruction program and register allocation.

    `argument_registers` are pre-populated with the extra arguments handed to
    the message's decode entry points. `types` resolves the enum, struct,
    tagged-tuple and referenced message names used by the program.
    """

    instructions: Sequence[Instruction]
    register_count: int
    field_register_map: Mapping[str, Register] = field(default_factory=dict)
    types: Mapping[str, Any] = field(default_factory=dict)
    argument_registers: Sequence[Register] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "instructions", _as_tuple(self.instructions))
        object.__setattr__(
            self, "argument_registers", _as_tuple(self.argument_registers)
        )

    @property
    def output_register(self) -> Register:
        return self.register_count - 1
