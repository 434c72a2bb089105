from __future__ import annotations

from dataclasses import dataclass
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().casefold()
    return normalized not in {"0", "false", "off", ""}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip(), 0)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class DecoderConfig:
    trace: bool = False
    chunk_size: int = 8192
    # Unbounded primitive arrays drop a trailing partial element instead of failing.
    allow_partial_tail: bool = False


def load_decoder_config() -> DecoderConfig:
    return DecoderConfig(
        trace=_env_flag("PROTODEC_TRACE", default=False),
        chunk_size=_env_int("PROTODEC_CHUNK_SIZE", 8192),
        allow_partial_tail=_env_flag("PROTODEC_ALLOW_PARTIAL_TAIL", default=False),
    )


__all__ = ["DecoderConfig", "load_decoder_config"]
