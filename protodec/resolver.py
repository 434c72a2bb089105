"""
Extension resolution.

A resolver answers five lookups: normalize an import name, resolve an import
to its content, and resolve transform, foreign type and foreign function
names to capability objects. Every lookup returns None for "not found" and
never raises, so providers compose into a chain where the first answer wins.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Dict, Mapping, Optional, Sequence

from .errors import UnresolvedNameError
from .ffi import ForeignFunction, ForeignType, Transformer

logger = logging.getLogger(__name__)


class ImportResolver:
    """Terminal resolver: knows nothing."""

    def normalize_import(self, name: str) -> Optional[str]:
        return None

    def resolve_import(self, name: str) -> Optional[str]:
        return None

    def resolve_transform(self, name: str) -> Optional[Transformer]:
        return None

    def resolve_type(self, name: str) -> Optional[ForeignType]:
        return None

    def resolve_function(self, name: str) -> Optional[ForeignFunction]:
        return None


class ResolverChain(ImportResolver):
    """Ordered providers tried in priority order; first match wins."""

    def __init__(self, providers: Sequence[Optional[ImportResolver]]) -> None:
        self._providers = tuple(p for p in providers if p is not None)

    @property
    def providers(self) -> Sequence[ImportResolver]:
        return self._providers

    def _first(self, lookup: str, name: str):
        for provider in self._providers:
            found = getattr(provider, lookup)(name)
            if found is not None:
                logger.debug("%s(%r) answered by %s", lookup, name, type(provider).__name__)
                return found
        return None

    def normalize_import(self, name: str) -> Optional[str]:
        return self._first("normalize_import", name)

    def resolve_import(self, name: str) -> Optional[str]:
        return self._first("resolve_import", name)

    def resolve_transform(self, name: str) -> Optional[Transformer]:
        return self._first("resolve_transform", name)

    def resolve_type(self, name: str) -> Optional[ForeignType]:
        return self._first("resolve_type", name)

    def resolve_function(self, name: str) -> Optional[ForeignFunction]:
        return self._first("resolve_function", name)


class MappingProvider(ImportResolver):
    """In-memory tables, typically user-supplied codecs."""

    def __init__(
        self,
        *,
        imports: Optional[Mapping[str, str]] = None,
        transforms: Optional[Mapping[str, Transformer]] = None,
        types: Optional[Mapping[str, ForeignType]] = None,
        functions: Optional[Mapping[str, ForeignFunction]] = None,
    ) -> None:
        self.imports: Dict[str, str] = dict(imports or {})
        self.transforms: Dict[str, Transformer] = dict(transforms or {})
        self.types: Dict[str, ForeignType] = dict(types or {})
        self.functions: Dict[str, ForeignFunction] = dict(functions or {})

    def normalize_import(self, name: str) -> Optional[str]:
        return name if name in self.imports else None

    def resolve_import(self, name: str) -> Optional[str]:
        return self.imports.get(name)

    def resolve_transform(self, name: str) -> Optional[Transformer]:
        return self.transforms.get(name)

    def resolve_type(self, name: str) -> Optional[ForeignType]:
        return self.types.get(name)

    def resolve_function(self, name: str) -> Optional[ForeignFunction]:
        return self.functions.get(name)


class FilesystemImportProvider(ImportResolver):
    """Imports resolved as schema files below `root`."""

    def __init__(self, root: Path, suffix: str = ".pspec") -> None:
        self.root = Path(root)
        self.suffix = suffix

    def normalize_import(self, name: str) -> Optional[str]:
        path = PurePosixPath(name.strip())
        if not path.parts or path.is_absolute() or ".." in path.parts:
            return None
        if path.suffix != self.suffix:
            path = path.with_name(path.name + self.suffix)
        return path.as_posix()

    def resolve_import(self, name: str) -> Optional[str]:
        normalized = self.normalize_import(name)
        if normalized is None:
            return None
        candidate = self.root.joinpath(*PurePosixPath(normalized).parts)
        if not candidate.is_file():
            return None
        try:
            return candidate.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("import %s unreadable at %s: %s", name, candidate, exc)
            return None


def require_transform(resolver: ImportResolver, name: str) -> Transformer:
    found = resolver.resolve_transform(name)
    if found is None:
        raise UnresolvedNameError("transform", name)
    return found


def require_type(resolver: ImportResolver, name: str) -> ForeignType:
    found = resolver.resolve_type(name)
    if found is None:
        raise UnresolvedNameError("type", name)
    return found


def require_function(resolver: ImportResolver, name: str) -> ForeignFunction:
    found = resolver.resolve_function(name)
    if found is None:
        raise UnresolvedNameError("function", name)
    return found


__all__ = [
    "ImportResolver",
    "ResolverChain",
    "MappingProvider",
    "FilesystemImportProvider",
    "require_transform",
    "require_type",
    "require_function",
]
