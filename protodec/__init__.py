"""
protodec: schema-driven binary decoding.

A front end compiles each message schema into a flat instruction program
(`protodec.ast.Context`). The engine walks that program over a byte source,
either blocking on a file-like object or suspending on an
`asyncio.StreamReader`, and produces one structured value per message.
Transforms, foreign types and functions are looked up by name through a
resolver chain whose built-ins live in `protodec.prelude`.
"""

from .ast import (  # noqa: F401
    Buf,
    Call,
    Conditional,
    ConditionalWrapStream,
    Const,
    Constrict,
    Construct,
    Context,
    DecodeEnum,
    DecodeForeign,
    DecodePrimitive,
    DecodePrimitiveArray,
    DecodeRef,
    Direct,
    Eval,
    FieldRef,
    Loop,
    LoopOutput,
    Stream,
    Struct,
    TaggedTuple,
    TupleOf,
    WrapStream,
)
from .config import DecoderConfig, load_decoder_config  # noqa: F401
from .engine import compile_decoder, decode_steps, prepare_decode  # noqa: F401
from .errors import (  # noqa: F401
    ConversionError,
    DecodeError,
    DecodeIOError,
    MalformedDiscriminantError,
    ProgramError,
    ProtodecError,
    UnresolvedNameError,
)
from .message import MessageType  # noqa: F401
from .prelude import PreludeImportResolver  # noqa: F401
from .resolver import (  # noqa: F401
    FilesystemImportProvider,
    ImportResolver,
    MappingProvider,
    ResolverChain,
)
from .values import Record, Tagged  # noqa: F401
from . import validate  # noqa: F401
from . import serde  # noqa: F401

__all__ = [
    "Context",
    "Direct",
    "Stream",
    "Buf",
    "FieldRef",
    "Const",
    "Call",
    "TupleOf",
    "TaggedTuple",
    "Struct",
    "Eval",
    "Construct",
    "Constrict",
    "WrapStream",
    "ConditionalWrapStream",
    "DecodeForeign",
    "DecodeRef",
    "DecodeEnum",
    "DecodePrimitive",
    "DecodePrimitiveArray",
    "Loop",
    "LoopOutput",
    "Conditional",
    "DecoderConfig",
    "load_decoder_config",
    "compile_decoder",
    "decode_steps",
    "prepare_decode",
    "ProtodecError",
    "ProgramError",
    "UnresolvedNameError",
    "DecodeError",
    "DecodeIOError",
    "MalformedDiscriminantError",
    "ConversionError",
    "MessageType",
    "PreludeImportResolver",
    "ImportResolver",
    "ResolverChain",
    "MappingProvider",
    "FilesystemImportProvider",
    "Record",
    "Tagged",
    "validate",
    "serde",
]
