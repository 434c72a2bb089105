"""Built-in transforms, foreign types and functions, and the resolver that serves them."""

from .functions import LenFunction, PadFunction  # noqa: F401
from .resolver import (  # noqa: F401
    BUILTIN_FUNCTIONS,
    BUILTIN_TRANSFORMS,
    BUILTIN_TYPES,
    PreludeImportResolver,
    PreludeProvider,
)
from .transforms import Base64Transform, GzipTransform  # noqa: F401
from .types import Utf8, Utf16, VarInt  # noqa: F401

__all__ = [
    "BUILTIN_FUNCTIONS",
    "BUILTIN_TRANSFORMS",
    "BUILTIN_TYPES",
    "PreludeImportResolver",
    "PreludeProvider",
    "Base64Transform",
    "GzipTransform",
    "VarInt",
    "Utf8",
    "Utf16",
    "LenFunction",
    "PadFunction",
]
