from __future__ import annotations

from typing import Dict, Optional

from ..ffi import ForeignFunction, ForeignType, Transformer
from ..resolver import ImportResolver, ResolverChain
from .functions import LenFunction, PadFunction
from .transforms import Base64Transform, GzipTransform
from .types import Utf8, Utf16, VarInt

BUILTIN_TRANSFORMS: Dict[str, Transformer] = {
    "base64": Base64Transform(),
    "gzip": GzipTransform(),
}

BUILTIN_TYPES: Dict[str, ForeignType] = {
    "v8": VarInt("v8", 8),
    "v16": VarInt("v16", 16),
    "v32": VarInt("v32", 32),
    "v64": VarInt("v64", 64),
    "v128": VarInt("v128", 128),
    "utf8": Utf8(),
    "utf16": Utf16(),
}

BUILTIN_FUNCTIONS: Dict[str, ForeignFunction] = {
    "len": LenFunction(),
    "pad": PadFunction(),
}


class PreludeProvider(ImportResolver):
    """The built-in table; imports are left to other providers."""

    def resolve_transform(self, name: str) -> Optional[Transformer]:
        return BUILTIN_TRANSFORMS.get(name)

    def resolve_type(self, name: str) -> Optional[ForeignType]:
        return BUILTIN_TYPES.get(name)

    def resolve_function(self, name: str) -> Optional[ForeignFunction]:
        return BUILTIN_FUNCTIONS.get(name)


class PreludeImportResolver(ResolverChain):
    """
    Built-ins first, then `parent`; a built-in name shadows any same-named
    entry further down the chain.
    """

    def __init__(self, parent: Optional[ImportResolver] = None) -> None:
        super().__init__((PreludeProvider(), parent))
        self.parent = parent


__all__ = [
    "BUILTIN_TRANSFORMS",
    "BUILTIN_TYPES",
    "BUILTIN_FUNCTIONS",
    "PreludeProvider",
    "PreludeImportResolver",
]
