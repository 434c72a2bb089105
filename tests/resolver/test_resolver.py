import logging

import pytest

from protodec.errors import UnresolvedNameError
from protodec.prelude import (
    BUILTIN_FUNCTIONS,
    BUILTIN_TRANSFORMS,
    BUILTIN_TYPES,
    PreludeImportResolver,
)
from protodec.resolver import (
    FilesystemImportProvider,
    ImportResolver,
    MappingProvider,
    ResolverChain,
    require_function,
    require_transform,
    require_type,
)
from protodec.streams import ByteStream


class _Identity:
    def __init__(self, name: str) -> None:
        self.name = name

    def wrap(self, stream: ByteStream, args, mode: str) -> ByteStream:
        return stream


def test_builtins_are_served() -> None:
    resolver = PreludeImportResolver()
    for name in ("base64", "gzip"):
        assert resolver.resolve_transform(name) is BUILTIN_TRANSFORMS[name]
    for name in ("v8", "v16", "v32", "v64", "v128", "utf8", "utf16"):
        assert resolver.resolve_type(name) is BUILTIN_TYPES[name]
    for name in ("len", "pad"):
        assert resolver.resolve_function(name) is BUILTIN_FUNCTIONS[name]


def test_builtins_shadow_parent_entries() -> None:
    custom_gzip = _Identity("gzip")
    rot13 = _Identity("rot13")
    parent = MappingProvider(transforms={"gzip": custom_gzip, "rot13": rot13})
    resolver = PreludeImportResolver(parent)
    assert resolver.resolve_transform("gzip") is BUILTIN_TRANSFORMS["gzip"]
    assert resolver.resolve_transform("rot13") is rot13
    assert resolver.parent is parent


def test_unknown_names_resolve_to_none() -> None:
    resolver = PreludeImportResolver(ImportResolver())
    assert resolver.resolve_transform("zstd") is None
    assert resolver.resolve_type("zstd") is None
    assert resolver.resolve_function("zstd") is None
    assert resolver.resolve_import("zstd") is None
    assert resolver.normalize_import("zstd") is None


def test_require_helpers_raise_on_missing_names() -> None:
    resolver = PreludeImportResolver()
    with pytest.raises(UnresolvedNameError) as info:
        require_transform(resolver, "zstd")
    assert (info.value.kind, info.value.name) == ("transform", "zstd")
    with pytest.raises(UnresolvedNameError):
        require_type(resolver, "v7")
    with pytest.raises(UnresolvedNameError):
        require_function(resolver, "crc32")
    assert require_type(resolver, "v32").name == "v32"


def test_chain_first_answer_wins() -> None:
    first = MappingProvider(imports={"common": "first"})
    second = MappingProvider(imports={"common": "second", "extra": "second"})
    chain = ResolverChain((first, None, second))
    assert len(chain.providers) == 2
    assert chain.resolve_import("common") == "first"
    assert chain.resolve_import("extra") == "second"
    assert chain.normalize_import("extra") == "extra"


def test_filesystem_imports(tmp_path) -> None:
    (tmp_path / "net").mkdir()
    (tmp_path / "net" / "ipv4.pspec").write_text("ipv4 schema", encoding="utf-8")
    provider = FilesystemImportProvider(tmp_path)

    assert provider.normalize_import("net/ipv4") == "net/ipv4.pspec"
    assert provider.normalize_import("net/ipv4.pspec") == "net/ipv4.pspec"
    assert provider.resolve_import("net/ipv4") == "ipv4 schema"
    assert provider.resolve_import("net/ipv6") is None
    assert provider.normalize_import("../secrets") is None
    assert provider.normalize_import("/etc/passwd") is None


def test_filesystem_provider_unreadable_import_is_not_found(tmp_path, caplog) -> None:
    (tmp_path / "bad.pspec").write_bytes(b"\xff\xfe\x00bad")
    (tmp_path / "dir.pspec").mkdir()
    provider = FilesystemImportProvider(tmp_path)
    with caplog.at_level(logging.DEBUG, logger="protodec.resolver"):
        assert provider.resolve_import("bad") is None
    assert provider.resolve_import("dir") is None
    assert "bad.pspec" in caplog.text


def test_filesystem_provider_behind_prelude(tmp_path) -> None:
    (tmp_path / "common.pspec").write_text("shared", encoding="utf-8")
    resolver = PreludeImportResolver(FilesystemImportProvider(tmp_path))
    assert resolver.resolve_import("common") == "shared"
    assert resolver.resolve_type("utf8") is BUILTIN_TYPES["utf8"]
