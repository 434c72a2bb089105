from __future__ import annotations

import operator
from typing import Any, Optional, Sequence

from ..errors import ConversionError, ProgramError
from ..streams import ByteStream, Steps


def _mask(bits: int) -> int:
    return (1 << bits) - 1


def _to_signed(value: int, bits: int) -> int:
    value &= _mask(bits)
    sign_bit = 1 << (bits - 1)
    return value - (1 << bits) if value & sign_bit else value


def _optional_length(name: str, args: Sequence[Any]) -> Optional[int]:
    if not args:
        return None
    if len(args) != 1:
        raise ProgramError(f"{name} takes at most one length argument (got {len(args)})")
    try:
        length = operator.index(args[0])
    except TypeError:
        raise ConversionError(f"{name} length must be an integer") from None
    if length < 0:
        raise ConversionError(f"{name} length must not be negative (got {length})")
    return length


class VarInt:
    """
    LEB128 variable-length integer of a declared bit width.

    At most ceil(bits / 7) bytes are read; the result is reinterpreted as a
    signed two's-complement value of `bits` bits.
    """

    def __init__(self, name: str, bits: int) -> None:
        self.name = name
        self.bits = bits
        self.max_bytes = (bits + 6) // 7

    def decode(self, stream: ByteStream, args: Sequence[Any], mode: str) -> Steps[int]:
        if args:
            raise ProgramError(f"{self.name} takes no arguments (got {len(args)})")
        result = 0
        for index in range(self.max_bytes):
            (byte,) = yield from stream.read_exact(1)
            result |= (byte & 0x7F) << (7 * index)
            if not byte & 0x80:
                if result >> self.bits:
                    raise ConversionError(f"{self.name}: value overflows {self.bits} bits")
                return _to_signed(result, self.bits)
        raise ConversionError(f"{self.name}: varint longer than {self.max_bytes} bytes")


class Utf8:
    """UTF-8 text of `len` bytes, or the rest of the stream without an argument."""

    name = "utf8"

    def decode(self, stream: ByteStream, args: Sequence[Any], mode: str) -> Steps[str]:
        length = _optional_length(self.name, args)
        if length is None:
            raw = yield from stream.read_to_end()
        else:
            raw = yield from stream.read_exact(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ConversionError(f"utf8: {exc}") from exc


class Utf16:
    """Big-endian UTF-16 text; the length argument counts 2-byte code units."""

    name = "utf16"

    def decode(self, stream: ByteStream, args: Sequence[Any], mode: str) -> Steps[str]:
        length = _optional_length(self.name, args)
        if length is None:
            raw = yield from stream.read_to_end()
        else:
            raw = yield from stream.read_exact(length * 2)
        try:
            return raw.decode("utf-16-be")
        except UnicodeDecodeError as exc:
            raise ConversionError(f"utf16: {exc}") from exc


__all__ = ["VarInt", "Utf8", "Utf16"]
