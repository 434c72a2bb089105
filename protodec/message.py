from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence

from . import ast
from .config import DecoderConfig, load_decoder_config
from .engine import compile_decoder, decode_steps
from .streams import ByteStream, Steps


class MessageType:
    """
    A named, decodable message.

    Exposes one entry point per execution mode plus `decode_steps`, which
    `DecodeRef` uses to decode the message in place over the caller's view.
    Decoders are compiled on first use so that message types may refer to
    each other (or themselves) through a shared `types` mapping.
    """

    def __init__(
        self,
        name: str,
        context: ast.Context,
        config: Optional[DecoderConfig] = None,
    ) -> None:
        self.name = name
        self.context = context
        self.config = config or load_decoder_config()
        self._decoders: Dict[str, Callable[..., Any]] = {}

    def __repr__(self) -> str:
        return f"MessageType({self.name!r})"

    def _decoder(self, mode: str) -> Callable[..., Any]:
        decoder = self._decoders.get(mode)
        if decoder is None:
            decoder = compile_decoder(self.context, mode, self.config)
            self._decoders[mode] = decoder
        return decoder

    def decode_sync(self, source: Any, *args: Any) -> Any:
        return self._decoder("blocking")(source, *args)

    async def decode_async(self, source: Any, *args: Any) -> Any:
        return await self._decoder("suspending")(source, *args)

    def decode_steps(
        self,
        stream: ByteStream,
        args: Sequence[Any],
        mode: str,
        config: Optional[DecoderConfig] = None,
    ) -> Steps[Any]:
        """Decode in place; `config` is the calling decoder's, when there is one."""
        return decode_steps(self.context, stream, args, mode, config or self.config)


__all__ = ["MessageType"]
