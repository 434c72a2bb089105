"""
Polymorphic byte streams shared by both execution modes.

Every read is a generator. Views (`Take`, `Cursor`, `TransformedStream`)
pull from their parent with ``yield from``; only a root `Source` ever
suspends, by yielding itself to the driver, which answers with the next chunk
of raw input (``b""`` at end of input). The blocking and suspending modes
therefore differ only in how a root source fetches that chunk.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Generator, Protocol, Tuple, TypeVar

from .errors import DecodeIOError

T = TypeVar("T")
Steps = Generator[Any, Any, T]


def _short_read(need: int, have: int) -> DecodeIOError:
    return DecodeIOError(f"unexpected end of stream: need {need} bytes, have {have} remaining")


class ByteStream(ABC):
    """
    Forward-only stream read through `fill_buf` and `consume`.

    `position` counts bytes consumed through this view, which lets loops
    verify that an iteration made progress.
    """

    def __init__(self) -> None:
        self.position = 0

    @abstractmethod
    def fill_buf(self, want: int = 1) -> Steps[bytes]:
        """Peek at pending bytes, pulling until `want` are held or input ends."""

    @abstractmethod
    def consume(self, count: int) -> None:
        """Drop `count` bytes previously returned by `fill_buf`."""

    @property
    @abstractmethod
    def at_end(self) -> bool: ...

    def read_exact(self, count: int) -> Steps[bytes]:
        if count < 0:
            raise ValueError(f"negative read length {count}")
        if count == 0:
            return b""
        available = yield from self.fill_buf(count)
        if len(available) < count:
            raise _short_read(count, len(available))
        self.consume(count)
        return available[:count]

    def read_to_end(self) -> Steps[bytes]:
        data = bytearray()
        while True:
            available = yield from self.fill_buf()
            if not available:
                return bytes(data)
            data.extend(available)
            self.consume(len(available))


class BufferedStream(ByteStream):
    """Stream that owns a buffer and refills it through `_fill`."""

    def __init__(self) -> None:
        super().__init__()
        self._buf = bytearray()
        self._exhausted = False

    @abstractmethod
    def _fill(self) -> Steps[bool]:
        """Append more bytes to the buffer; return False once input is exhausted."""

    def _pull_until(self, want: int) -> Steps[None]:
        while not self._exhausted and len(self._buf) < want:
            more = yield from self._fill()
            if not more:
                self._exhausted = True

    def fill_buf(self, want: int = 1) -> Steps[bytes]:
        yield from self._pull_until(max(want, 1))
        return bytes(self._buf)

    def consume(self, count: int) -> None:
        if count < 0 or count > len(self._buf):
            raise ValueError(
                f"cannot consume {count} bytes, {len(self._buf)} buffered"
            )
        del self._buf[:count]
        self.position += count

    def read_exact(self, count: int) -> Steps[bytes]:
        if count < 0:
            raise ValueError(f"negative read length {count}")
        yield from self._pull_until(count)
        if len(self._buf) < count:
            raise _short_read(count, len(self._buf))
        data = bytes(self._buf[:count])
        self.consume(count)
        return data

    @property
    def at_end(self) -> bool:
        return self._exhausted and not self._buf


class Source(BufferedStream):
    """Root reader over a raw input object; the driver supplies its chunks."""

    mode = ""

    def __init__(self, raw: Any, chunk_size: int = 8192) -> None:
        super().__init__()
        self.raw = raw
        self.chunk_size = chunk_size

    def _fill(self) -> Steps[bool]:
        chunk = yield self
        if not chunk:
            return False
        self._buf.extend(chunk)
        return True


class BlockingSource(Source):
    mode = "blocking"

    def __init__(self, raw: BinaryIO, chunk_size: int = 8192) -> None:
        super().__init__(raw, chunk_size)

    def pull(self) -> bytes:
        try:
            chunk = self.raw.read(self.chunk_size)
        except OSError as exc:
            raise DecodeIOError(f"source read failed: {exc}") from exc
        if chunk is None:
            raise DecodeIOError("source has no data ready (non-blocking file?)")
        return bytes(chunk)


class SuspendingSource(Source):
    mode = "suspending"

    def __init__(self, raw: asyncio.StreamReader, chunk_size: int = 8192) -> None:
        super().__init__(raw, chunk_size)

    async def pull(self) -> bytes:
        try:
            chunk = await self.raw.read(self.chunk_size)
        except OSError as exc:
            raise DecodeIOError(f"source read failed: {exc}") from exc
        return bytes(chunk)


class Take(ByteStream):
    """
    Bounded view over at most `limit` bytes of its parent.

    Holds no buffer of its own: peeks go straight to the parent and are cut
    at the limit, so region bytes that are never consumed stay with the
    parent.
    """

    def __init__(self, parent: ByteStream, limit: int) -> None:
        super().__init__()
        self._parent = parent
        self._remaining = limit

    def fill_buf(self, want: int = 1) -> Steps[bytes]:
        if self._remaining <= 0:
            return b""
        available = yield from self._parent.fill_buf(min(max(want, 1), self._remaining))
        return available[: self._remaining]

    def consume(self, count: int) -> None:
        if count < 0 or count > self._remaining:
            raise ValueError(f"cannot consume {count} bytes, {self._remaining} left in view")
        self._parent.consume(count)
        self._remaining -= count
        self.position += count

    def read_exact(self, count: int) -> Steps[bytes]:
        if count > self._remaining:
            return (yield from super().read_exact(count))
        data = yield from self._parent.read_exact(count)
        self._remaining -= count
        self.position += count
        return data

    @property
    def at_end(self) -> bool:
        return self._remaining <= 0 or self._parent.at_end


class Cursor(BufferedStream):
    """Fully buffered, in-memory stream."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        self._buf.extend(data)
        self._exhausted = True
        self.length = len(data)

    def _fill(self) -> Steps[bool]:
        return False
        yield  # pragma: no cover


class ChunkCodec(Protocol):
    """
    Incremental decoder behind a `TransformedStream`.

    `feed` returns the decoded output and how many input bytes it used. A
    codec uses all of its input until it reports `finished`; the unused
    remainder then stays with the parent stream.
    """

    finished: bool

    def feed(self, data: bytes) -> Tuple[bytes, int]: ...

    def finish(self) -> bytes: ...


class TransformedStream(BufferedStream):
    """View whose bytes are the parent's bytes run through an incremental codec."""

    def __init__(self, parent: ByteStream, codec: ChunkCodec) -> None:
        super().__init__()
        self._parent = parent
        self._codec = codec
        self._finished = False

    def _fill(self) -> Steps[bool]:
        while not self._finished:
            available = yield from self._parent.fill_buf()
            if not available:
                self._finished = True
                out = self._codec.finish()
            else:
                out, used = self._codec.feed(available)
                self._parent.consume(used)
                self._finished = self._codec.finished
            if out:
                self._buf.extend(out)
                return True
        return False


__all__ = [
    "Steps",
    "ByteStream",
    "BufferedStream",
    "Source",
    "BlockingSource",
    "SuspendingSource",
    "Take",
    "Cursor",
    "ChunkCodec",
    "TransformedStream",
]
