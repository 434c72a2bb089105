from __future__ import annotations

import base64
import binascii
import zlib
from typing import Any, Sequence, Tuple

from ..errors import ConversionError, DecodeIOError, ProgramError
from ..streams import ByteStream, TransformedStream

_WHITESPACE = b" \t\r\n"


def _no_args(name: str, args: Sequence[Any]) -> None:
    if args:
        raise ProgramError(f"transform {name} takes no arguments (got {len(args)})")


class _GzipCodec:
    """Inflates one gzip member; bytes after it are left unused."""

    def __init__(self) -> None:
        self._inflater = zlib.decompressobj(wbits=zlib.MAX_WBITS | 16)

    @property
    def finished(self) -> bool:
        return self._inflater.eof

    def feed(self, data: bytes) -> Tuple[bytes, int]:
        try:
            out = self._inflater.decompress(data)
        except zlib.error as exc:
            raise ConversionError(f"gzip: {exc}") from exc
        return out, len(data) - len(self._inflater.unused_data)

    def finish(self) -> bytes:
        try:
            tail = self._inflater.flush()
        except zlib.error as exc:
            raise ConversionError(f"gzip: {exc}") from exc
        if not self._inflater.eof:
            raise DecodeIOError("gzip: compressed stream is truncated")
        return tail


class _Base64Codec:
    finished = False

    def __init__(self) -> None:
        self._pending = b""

    def _decode(self, data: bytes) -> bytes:
        try:
            return base64.b64decode(data, validate=True)
        except binascii.Error as exc:
            raise ConversionError(f"base64: {exc}") from exc

    def feed(self, data: bytes) -> Tuple[bytes, int]:
        text = self._pending + data.translate(None, _WHITESPACE)
        whole = len(text) - len(text) % 4
        self._pending = text[whole:]
        return self._decode(text[:whole]), len(data)

    def finish(self) -> bytes:
        if not self._pending:
            return b""
        return self._decode(self._pending)


class GzipTransform:
    name = "gzip"

    def wrap(self, stream: ByteStream, args: Sequence[Any], mode: str) -> ByteStream:
        _no_args(self.name, args)
        return TransformedStream(stream, _GzipCodec())


class Base64Transform:
    name = "base64"

    def wrap(self, stream: ByteStream, args: Sequence[Any], mode: str) -> ByteStream:
        _no_args(self.name, args)
        return TransformedStream(stream, _Base64Codec())


__all__ = ["GzipTransform", "Base64Transform"]
