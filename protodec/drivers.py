from __future__ import annotations

from typing import Any, Type, TypeVar

from .errors import DecodeError, ProgramError
from .streams import BlockingSource, ByteStream, Source, Steps, SuspendingSource

T = TypeVar("T")


def open_source(raw: Any, mode: str, chunk_size: int = 8192) -> ByteStream:
    """Wrap a raw input in the root reader for `mode`; views pass through."""

    if isinstance(raw, ByteStream):
        return raw
    if mode == "blocking":
        return BlockingSource(raw, chunk_size)
    if mode == "suspending":
        return SuspendingSource(raw, chunk_size)
    raise ProgramError(f"unknown execution mode {mode!r}")


def _expect(request: Any, kind: Type[Source], steps: Steps[Any]) -> Source:
    if isinstance(request, kind):
        return request
    steps.close()
    raise ProgramError(
        f"{kind.mode} decode received a pull request from {request!r}; "
        "execution modes cannot be mixed"
    )


def run_blocking(steps: Steps[T]) -> T:
    """Drive decode steps, satisfying every pull with a blocking read."""

    try:
        request = next(steps)
        while True:
            source = _expect(request, BlockingSource, steps)
            try:
                chunk = source.pull()
            except DecodeError as exc:
                request = steps.throw(exc)
            else:
                request = steps.send(chunk)
    except StopIteration as stop:
        return stop.value


async def run_suspending(steps: Steps[T]) -> T:
    """Drive decode steps, awaiting the event loop on every pull."""

    try:
        request = next(steps)
        while True:
            source = _expect(request, SuspendingSource, steps)
            try:
                chunk = await source.pull()
            except DecodeError as exc:
                request = steps.throw(exc)
            else:
                request = steps.send(chunk)
    except StopIteration as stop:
        return stop.value


__all__ = ["open_source", "run_blocking", "run_suspending"]
