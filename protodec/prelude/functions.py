from __future__ import annotations

import operator
from typing import Any, Sequence

from ..errors import ProgramError


def _arity(name: str, args: Sequence[Any], count: int) -> None:
    if len(args) != count:
        raise ProgramError(f"{name}() takes {count} argument(s), got {len(args)}")


class LenFunction:
    name = "len"

    def call(self, args: Sequence[Any]) -> int:
        _arity(self.name, args, 1)
        return len(args[0])


class PadFunction:
    """pad(value, align): bytes needed to round `value` up to a multiple of `align`."""

    name = "pad"

    def call(self, args: Sequence[Any]) -> int:
        _arity(self.name, args, 2)
        value = operator.index(args[0])
        align = operator.index(args[1])
        if align <= 0:
            raise ProgramError(f"pad() alignment must be positive (got {align})")
        return -value % align


__all__ = ["LenFunction", "PadFunction"]
