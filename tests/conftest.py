from __future__ import annotations

import asyncio
import io
from typing import Any, Callable, Optional

import pytest

from protodec import ast
from protodec.config import DecoderConfig
from protodec.engine import compile_decoder

_ENV_VARS = ("PROTODEC_TRACE", "PROTODEC_CHUNK_SIZE", "PROTODEC_ALLOW_PARTIAL_TAIL")


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


def decode_blocking(
    context: ast.Context,
    data: bytes,
    *args: Any,
    config: Optional[DecoderConfig] = None,
) -> Any:
    decoder = compile_decoder(context, "blocking", config or DecoderConfig())
    return decoder(io.BytesIO(data), *args)


def decode_suspending(
    context: ast.Context,
    data: bytes,
    *args: Any,
    config: Optional[DecoderConfig] = None,
) -> Any:
    decoder = compile_decoder(context, "suspending", config or DecoderConfig())

    async def run() -> Any:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        return await decoder(reader, *args)

    return asyncio.run(run())


@pytest.fixture(params=["blocking", "suspending"])
def decode(request) -> Callable[..., Any]:
    """Decode bytes with a program in each execution mode."""

    if request.param == "blocking":
        return decode_blocking
    return decode_suspending
