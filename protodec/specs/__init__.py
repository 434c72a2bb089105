"""Seed decode programs used by unit tests and the CLI demo."""

from .examples import (
    Color,
    colored,
    counted_items,
    counted_u16_array,
    envelope,
    gzip_then_trailer,
    header,
    length_prefixed_text,
    maybe_gzip_text,
    optional_u32,
    padded_block,
    region_head,
    terminated_items,
    trailing_i32_array,
    varint_entries,
)

__all__ = [
    "Color",
    "colored",
    "counted_items",
    "counted_u16_array",
    "envelope",
    "gzip_then_trailer",
    "header",
    "length_prefixed_text",
    "maybe_gzip_text",
    "optional_u32",
    "padded_block",
    "region_head",
    "terminated_items",
    "trailing_i32_array",
    "varint_entries",
]
