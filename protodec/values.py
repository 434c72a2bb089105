from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Tagged:
    """Named variant wrapping positional values."""

    name: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class Record:
    """Named aggregate; fields keep their declared order."""

    name: str
    fields: Tuple[Tuple[str, Any], ...]

    def __getitem__(self, key: str) -> Any:
        for name, value in self.fields:
            if name == key:
                return value
        raise KeyError(key)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.fields)


__all__ = ["Tagged", "Record"]
