"""Bounded record of executed decode instructions, enabled by `PROTODEC_TRACE`."""

from __future__ import annotations

import itertools
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List


@dataclass(frozen=True)
class TraceEntry:
    seq: int
    event: str
    depth: int
    instruction: str
    detail: str

    def render(self) -> str:
        indent = "  " * self.depth
        return f"{self.seq:05d} {indent}{self.event} {self.instruction} {self.detail}".rstrip()


class TraceBuffer:
    """Keeps the newest `capacity` entries; older ones fall off the front."""

    def __init__(self, capacity: int = 256) -> None:
        self._entries: Deque[TraceEntry] = deque(maxlen=capacity)
        self._seq: Iterator[int] = itertools.count()

    def record(self, event: str, depth: int, instruction: str, detail: str) -> TraceEntry:
        entry = TraceEntry(next(self._seq), event, depth, instruction, detail)
        self._entries.append(entry)
        return entry

    def snapshot(self) -> List[TraceEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._seq = itertools.count()


TRACE_BUFFER = TraceBuffer()

record = TRACE_BUFFER.record
snapshot = TRACE_BUFFER.snapshot
clear = TRACE_BUFFER.clear


__all__ = ["TraceEntry", "TraceBuffer", "TRACE_BUFFER", "record", "snapshot", "clear"]
