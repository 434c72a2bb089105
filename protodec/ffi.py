"""
Capability protocols answered by the resolver chain.

Transformers and foreign types never perform I/O themselves: they work
against `ByteStream` views whose reads are generators, so the same object
serves both execution modes. The mode is still passed along for
implementations that want to specialise on it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence

if TYPE_CHECKING:
    from .streams import ByteStream, Steps


class Transformer(Protocol):
    name: str

    def wrap(self, stream: "ByteStream", args: Sequence[Any], mode: str) -> "ByteStream": ...


class ForeignType(Protocol):
    name: str

    def decode(self, stream: "ByteStream", args: Sequence[Any], mode: str) -> "Steps[Any]": ...


class ForeignFunction(Protocol):
    name: str

    def call(self, args: Sequence[Any]) -> Any: ...


__all__ = ["Transformer", "ForeignType", "ForeignFunction"]
