import base64
import gzip
import io

import pytest

from protodec import specs
from protodec.ast import (
    Buf,
    Constrict,
    Context,
    DecodeForeign,
    DecodePrimitive,
    Direct,
    Stream,
    WrapStream,
)
from protodec.config import DecoderConfig
from protodec.drivers import run_blocking
from protodec.errors import ConversionError, DecodeIOError, ProgramError
from protodec.prelude import PreludeImportResolver
from protodec.resolver import require_transform, require_type
from protodec.streams import BlockingSource, ByteStream, Cursor, SuspendingSource, Take

_PRELUDE = PreludeImportResolver()


def test_cursor_reads_and_tracks_position() -> None:
    cursor = Cursor(b"abcdef")
    assert run_blocking(cursor.read_exact(2)) == b"ab"
    assert run_blocking(cursor.fill_buf()) == b"cdef"
    assert cursor.position == 2
    assert run_blocking(cursor.read_to_end()) == b"cdef"
    assert cursor.at_end


def test_short_read_reports_remaining() -> None:
    with pytest.raises(DecodeIOError, match="need 4 bytes, have 3 remaining"):
        run_blocking(Cursor(b"abc").read_exact(4))


def test_consume_beyond_buffer_is_rejected() -> None:
    with pytest.raises(ValueError):
        Cursor(b"ab").consume(3)


def test_take_never_reads_past_its_limit() -> None:
    parent = Cursor(b"abcdef")
    view = Take(parent, 3)
    assert run_blocking(view.read_to_end()) == b"abc"
    assert parent.position == 3
    assert run_blocking(parent.read_to_end()) == b"def"


def test_take_leaves_unconsumed_region_bytes_with_parent() -> None:
    parent = BlockingSource(io.BytesIO(b"abcdef"), chunk_size=8192)
    view = Take(parent, 4)
    assert run_blocking(view.read_exact(1)) == b"a"
    assert run_blocking(view.fill_buf()) == b"bcd"
    assert (view.position, parent.position) == (1, 1)
    assert run_blocking(parent.read_exact(2)) == b"bc"


def test_byte_stream_requires_a_read_strategy() -> None:
    with pytest.raises(TypeError):
        ByteStream()


def test_take_ending_early_is_an_io_error() -> None:
    view = Take(Cursor(b"ab"), 5)
    with pytest.raises(DecodeIOError):
        run_blocking(view.read_exact(3))


def test_blocking_source_pulls_in_chunks() -> None:
    source = BlockingSource(io.BytesIO(b"abcde"), chunk_size=2)
    assert run_blocking(source.read_exact(5)) == b"abcde"
    assert run_blocking(source.fill_buf()) == b""


class _FailingRaw:
    def read(self, size: int) -> bytes:
        raise OSError("device unplugged")


def test_source_failure_becomes_decode_io_error() -> None:
    source = BlockingSource(_FailingRaw())
    with pytest.raises(DecodeIOError, match="device unplugged"):
        run_blocking(source.read_exact(1))


def test_execution_modes_cannot_be_mixed() -> None:
    source = SuspendingSource(object())
    with pytest.raises(ProgramError, match="cannot be mixed"):
        run_blocking(source.read_exact(1))


def test_constrict_bounds_inner_reads(decode) -> None:
    assert decode(specs.length_prefixed_text(), b"\x00\x05hello\x09") == ("hello", 9)


def test_constrict_leaves_remainder_to_outer_stream(decode) -> None:
    assert decode(specs.length_prefixed_text(), b"\x00\x02hello") == ("he", ord("l"))


def test_constrict_past_end_of_input(decode) -> None:
    with pytest.raises(DecodeIOError):
        decode(specs.length_prefixed_text(), b"\x00\x05hel")


@pytest.mark.parametrize("chunk_size", [1, 2, 8192])
def test_partly_read_region_does_not_depend_on_chunking(decode, chunk_size) -> None:
    config = DecoderConfig(chunk_size=chunk_size)
    assert decode(specs.region_head(), b"\x03\xaa\xbb\xcc\xdd", config=config) == (0xAA, 0xBB)


def test_buf_target_reads_like_stream(decode) -> None:
    context = Context(
        instructions=(
            DecodePrimitive(Direct(), 0, "u8"),
            Constrict(Direct(), 1, 0),
            DecodePrimitive(Buf(1), 2, "u16"),
        ),
        register_count=3,
    )
    assert decode(context, b"\x02\x01\x00") == 256


def _gzip_frame(text: bytes, compressed: bool) -> bytes:
    payload = gzip.compress(text) if compressed else text
    return bytes([compressed]) + len(payload).to_bytes(4, "big") + payload


@pytest.mark.parametrize("compressed", [False, True])
@pytest.mark.parametrize("chunk_size", [3, 8192])
def test_conditional_gzip(decode, compressed, chunk_size) -> None:
    text = "hello, compressed world " * 20
    data = _gzip_frame(text.encode(), compressed)
    config = DecoderConfig(chunk_size=chunk_size)
    assert decode(specs.maybe_gzip_text(), data, config=config) == text


@pytest.mark.parametrize("chunk_size", [1, 4, 8192])
def test_gzip_member_leaves_trailing_bytes_to_outer_stream(decode, chunk_size) -> None:
    config = DecoderConfig(chunk_size=chunk_size)
    data = gzip.compress(b"hi") + b"\x07"
    assert decode(specs.gzip_then_trailer(), data, config=config) == ("hi", 7)


def test_truncated_gzip(decode) -> None:
    payload = gzip.compress(b"some text")[:-4]
    data = b"\x01" + len(payload).to_bytes(4, "big") + payload
    with pytest.raises(DecodeIOError, match="truncated"):
        decode(specs.maybe_gzip_text(), data)


def test_corrupt_gzip(decode) -> None:
    data = _gzip_frame(b"not gzip at all", False)
    data = b"\x01" + data[1:]
    with pytest.raises(ConversionError, match="gzip"):
        decode(specs.maybe_gzip_text(), data)


def _base64_text() -> Context:
    return Context(
        instructions=(
            WrapStream(Direct(), 0, require_transform(_PRELUDE, "base64")),
            DecodeForeign(Stream(0), 1, require_type(_PRELUDE, "utf8")),
        ),
        register_count=2,
    )


@pytest.mark.parametrize("chunk_size", [1, 5, 8192])
def test_base64_transform(decode, chunk_size) -> None:
    encoded = base64.encodebytes(b"base64 text spanning several lines " * 4)
    config = DecoderConfig(chunk_size=chunk_size)
    value = decode(_base64_text(), encoded, config=config)
    assert value == "base64 text spanning several lines " * 4


def test_base64_rejects_invalid_characters(decode) -> None:
    with pytest.raises(ConversionError, match="base64"):
        decode(_base64_text(), b"!!!!")


def test_transform_rejects_arguments(decode) -> None:
    context = Context(
        instructions=(
            DecodePrimitive(Direct(), 0, "u8"),
            WrapStream(Direct(), 1, require_transform(_PRELUDE, "gzip"), (0,)),
        ),
        register_count=2,
    )
    with pytest.raises(ProgramError):
        decode(context, b"\x01")
