from __future__ import annotations

from typing import Tuple


class ProtodecError(Exception):
    """Base class for every error raised by protodec."""


class ProgramError(ProtodecError):
    """The instruction program is inconsistent (front-end or wiring bug)."""


class UnresolvedNameError(ProtodecError):
    """A foreign name was not answered by any link of the resolver chain."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"unresolved {kind} {name!r}")
        self.kind = kind
        self.name = name


class DecodeError(ProtodecError):
    """
    Failure while decoding input bytes.

    `path` lists the instructions that were executing when the failure
    surfaced, outermost first, so callers can report which field or stream
    stage broke.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.path: Tuple[str, ...] = ()

    def add_frame(self, frame: str) -> None:
        self.path = (frame,) + self.path

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{' > '.join(self.path)}: {self.message}"


class DecodeIOError(DecodeError):
    """The source failed or ended before the requested bytes were available."""


class MalformedDiscriminantError(DecodeError):
    def __init__(self, enum_name: str, value: int) -> None:
        super().__init__(f"no variant of {enum_name} has discriminant {value}")
        self.enum_name = enum_name
        self.value = value


class ConversionError(DecodeError):
    """Bytes could not be reinterpreted as the requested value."""


__all__ = [
    "ProtodecError",
    "ProgramError",
    "UnresolvedNameError",
    "DecodeError",
    "DecodeIOError",
    "MalformedDiscriminantError",
    "ConversionError",
]
