import io

import pytest

from protodec import specs, trace
from protodec.config import DecoderConfig, load_decoder_config
from protodec.engine import compile_decoder
from protodec.errors import DecodeIOError


def test_defaults() -> None:
    cfg = load_decoder_config()
    assert cfg == DecoderConfig()
    assert cfg.chunk_size == 8192
    assert not cfg.trace
    assert not cfg.allow_partial_tail


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("PROTODEC_TRACE", "1")
    monkeypatch.setenv("PROTODEC_CHUNK_SIZE", "0x10")
    monkeypatch.setenv("PROTODEC_ALLOW_PARTIAL_TAIL", "yes")
    cfg = load_decoder_config()
    assert cfg.trace
    assert cfg.chunk_size == 16
    assert cfg.allow_partial_tail


def test_flag_and_int_normalization(monkeypatch) -> None:
    monkeypatch.setenv("PROTODEC_TRACE", " OFF ")
    monkeypatch.setenv("PROTODEC_CHUNK_SIZE", "lots")
    cfg = load_decoder_config()
    assert not cfg.trace
    assert cfg.chunk_size == 8192

    monkeypatch.setenv("PROTODEC_CHUNK_SIZE", "-4")
    assert load_decoder_config().chunk_size == 8192


def test_trace_records_executed_instructions() -> None:
    trace.clear()
    decoder = compile_decoder(specs.counted_items(), config=DecoderConfig(trace=True))
    assert decoder(io.BytesIO(b"\x01\x07")) == [7]
    entries = trace.snapshot()
    assert [(e.event, e.depth, e.instruction) for e in entries] == [
        ("exec", 0, "DecodePrimitive(r0)"),
        ("exec", 0, "Loop(r2)"),
        ("exec", 1, "DecodePrimitive(r1)"),
        ("exec", 1, "LoopOutput(r2)"),
    ]
    assert all(e.detail == "blocking" for e in entries)


def test_trace_records_failures() -> None:
    trace.clear()
    decoder = compile_decoder(specs.header(), config=DecoderConfig(trace=True))
    with pytest.raises(DecodeIOError):
        decoder(io.BytesIO(b"\x01"))
    failures = [e for e in trace.snapshot() if e.event == "fail"]
    assert failures[0].instruction == "DecodePrimitive(r1)"


def test_trace_is_silent_by_default() -> None:
    trace.clear()
    compile_decoder(specs.header(), config=DecoderConfig())(io.BytesIO(b"\x01\x00\x00\x00"))
    assert trace.snapshot() == []
