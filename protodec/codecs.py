from __future__ import annotations

import enum
import logging
import struct
from typing import Any, Dict, Optional, Type

import numpy as np

from .ast import PRIMITIVE_WIDTHS
from .errors import ConversionError, MalformedDiscriminantError, ProgramError
from .streams import ByteStream, Steps

logger = logging.getLogger(__name__)

_FLOAT_FORMATS = {"f32": ">f", "f64": ">d"}

# Bulk arrays are normalised from big-endian exactly like scalars.
_ARRAY_DTYPES: Dict[str, str] = {
    "u8": "u1",
    "u16": ">u2",
    "u32": ">u4",
    "u64": ">u8",
    "i8": "i1",
    "i16": ">i2",
    "i32": ">i4",
    "i64": ">i8",
    "f32": ">f4",
    "f64": ">f8",
}


def primitive_width(primitive: str) -> int:
    try:
        return PRIMITIVE_WIDTHS[primitive]
    except KeyError:
        raise ProgramError(f"unknown primitive type {primitive!r}") from None


def _is_signed(primitive: str) -> bool:
    return primitive.startswith("i")


def primitive_from_bytes(primitive: str, raw: bytes) -> Any:
    width = primitive_width(primitive)
    if len(raw) != width:
        raise ConversionError(
            f"{primitive} needs {width} bytes, got {len(raw)}"
        )
    if primitive == "bool":
        return raw[0] != 0
    fmt = _FLOAT_FORMATS.get(primitive)
    if fmt is not None:
        return struct.unpack(fmt, raw)[0]
    return int.from_bytes(raw, "big", signed=_is_signed(primitive))


def decode_primitive(stream: ByteStream, primitive: str) -> Steps[Any]:
    raw = yield from stream.read_exact(primitive_width(primitive))
    return primitive_from_bytes(primitive, raw)


def decode_enum(
    stream: ByteStream, enum_cls: Type[enum.Enum], backing: str
) -> Steps[enum.Enum]:
    if backing == "bool" or backing in _FLOAT_FORMATS:
        raise ProgramError(f"enum {enum_cls.__name__} cannot be backed by {backing}")
    raw = yield from stream.read_exact(primitive_width(backing))
    value = int.from_bytes(raw, "big", signed=_is_signed(backing))
    try:
        return enum_cls(value)
    except ValueError:
        raise MalformedDiscriminantError(enum_cls.__name__, value) from None


def array_from_bytes(primitive: str, raw: bytes) -> np.ndarray:
    width = primitive_width(primitive)
    if len(raw) % width:
        raise ConversionError(
            f"{len(raw)} bytes is not a whole number of {primitive} elements"
        )
    if primitive == "bool":
        return np.frombuffer(raw, dtype=np.uint8) != 0
    dtype = _ARRAY_DTYPES.get(primitive)
    if dtype is None:
        # numpy has no 128-bit integers
        signed = _is_signed(primitive)
        return np.array(
            [
                int.from_bytes(raw[offset : offset + width], "big", signed=signed)
                for offset in range(0, len(raw), width)
            ],
            dtype=object,
        )
    big = np.dtype(dtype)
    return np.frombuffer(raw, dtype=big).astype(big.newbyteorder("="))


def decode_array(
    stream: ByteStream,
    primitive: str,
    count: Optional[int],
    *,
    allow_partial_tail: bool = False,
) -> Steps[np.ndarray]:
    width = primitive_width(primitive)
    if count is not None:
        raw = yield from stream.read_exact(count * width)
        return array_from_bytes(primitive, raw)
    raw = yield from stream.read_to_end()
    tail = len(raw) % width
    if tail and allow_partial_tail:
        logger.warning(
            "dropping %d trailing byte(s) after %d %s elements",
            tail,
            len(raw) // width,
            primitive,
        )
        raw = raw[: len(raw) - tail]
    return array_from_bytes(primitive, raw)


__all__ = [
    "primitive_width",
    "primitive_from_bytes",
    "decode_primitive",
    "decode_enum",
    "array_from_bytes",
    "decode_array",
]
