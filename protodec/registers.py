from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from . import ast
from .errors import ProgramError
from .streams import ByteStream


class Frame:
    """
    Single-assignment register window for one scope instance.

    Nested blocks run in a child frame: writes land in the child, reads fall
    through to the parents, and the child is dropped when the block ends. A
    loop iteration is one child frame, so body registers are written once per
    iteration.
    """

    def __init__(
        self,
        parent: Optional["Frame"] = None,
        reader: Any = None,
        depth: int = 0,
    ) -> None:
        self.parent = parent
        self._reader = reader
        self._slots: Dict[int, Any] = {}
        self.depth = depth

    def child(
        self,
        reader: Optional[ByteStream] = None,
        streams: Optional[Mapping[int, ByteStream]] = None,
    ) -> "Frame":
        frame = Frame(parent=self, reader=reader, depth=self.depth + 1)
        if streams:
            # Scoped rebinding of stream registers, not a fresh assignment.
            frame._slots.update(streams)
        return frame

    def _find(self, register: int) -> Optional["Frame"]:
        frame: Optional[Frame] = self
        while frame is not None:
            if register in frame._slots:
                return frame
            frame = frame.parent
        return None

    def get(self, register: int) -> Any:
        owner = self._find(register)
        if owner is None:
            raise ProgramError(f"register r{register} not populated")
        return owner._slots[register]

    def get_many(self, registers: Sequence[int]) -> List[Any]:
        return [self.get(register) for register in registers]

    def set(self, register: int, value: Any) -> None:
        if self._find(register) is not None:
            raise ProgramError(f"register r{register} written twice")
        self._slots[register] = value

    @property
    def reader(self) -> ByteStream:
        frame: Optional[Frame] = self
        while frame is not None:
            if frame._reader is not None:
                return frame._reader
            frame = frame.parent
        raise ProgramError("no ambient reader bound")

    def bind_reader(self, reader: ByteStream) -> None:
        self._reader = reader

    def emit_target(self, target: ast.Target) -> ByteStream:
        """Resolve an instruction's target to the stream it should read now."""

        if isinstance(target, ast.Direct):
            return self.reader
        if isinstance(target, (ast.Stream, ast.Buf)):
            stream = self.get(target.register)
            if not isinstance(stream, ByteStream):
                raise ProgramError(
                    f"register r{target.register} holds {type(stream).__name__}, "
                    "not a stream"
                )
            return stream
        raise ProgramError(f"unsupported target {target!r}")


__all__ = ["Frame"]
