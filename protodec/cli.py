"""Command line front end: decode files with serialised programs."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import enum
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

import numpy as np

from . import serde, specs, trace
from .config import load_decoder_config
from .engine import compile_decoder
from .errors import ProtodecError
from .prelude import PreludeImportResolver
from .validate import validate
from .values import Record, Tagged

EXAMPLES: Dict[str, Callable[[], Any]] = {
    "header": specs.header,
    "length_prefixed_text": specs.length_prefixed_text,
    "counted_u16_array": specs.counted_u16_array,
    "trailing_i32_array": specs.trailing_i32_array,
    "counted_items": specs.counted_items,
    "terminated_items": specs.terminated_items,
    "varint_entries": specs.varint_entries,
    "optional_u32": specs.optional_u32,
    "maybe_gzip_text": specs.maybe_gzip_text,
    "padded_block": specs.padded_block,
    "region_head": specs.region_head,
    "gzip_then_trailer": specs.gzip_then_trailer,
}


def to_jsonable(value: Any) -> Any:
    """Flatten decoded values into plain JSON types."""

    if isinstance(value, Record):
        return {value.name: {name: to_jsonable(item) for name, item in value.fields}}
    if isinstance(value, Tagged):
        return {value.name: [to_jsonable(item) for item in value.values]}
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, np.ndarray):
        return [to_jsonable(item) for item in value.tolist()]
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: to_jsonable(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    return value


def _load_program(path: Path):
    return serde.from_json(path.read_text(encoding="utf-8"), PreludeImportResolver())


async def _decode_suspending(decoder, data: bytes) -> Any:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return await decoder(reader)


def _cmd_decode(args: argparse.Namespace) -> int:
    context = _load_program(args.program)
    config = load_decoder_config()
    if args.trace:
        config = dataclasses.replace(config, trace=True)
        trace.clear()
    decoder = compile_decoder(context, args.mode, config)
    if args.mode == "blocking":
        with open(args.input, "rb") as handle:
            value = decoder(handle)
    else:
        value = asyncio.run(_decode_suspending(decoder, args.input.read_bytes()))
    print(json.dumps(to_jsonable(value), indent=2))
    if args.trace:
        for entry in trace.snapshot():
            print(entry.render(), file=sys.stderr)
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    errors = validate(_load_program(args.program))
    for message in errors:
        print(f"[FAIL] {message}")
    if errors:
        return 1
    print(f"[ OK ] {args.program}")
    return 0


def _cmd_example(args: argparse.Namespace) -> int:
    print(serde.to_json(EXAMPLES[args.name]()))
    return 0


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="protodec", description="Decode binary input with a compiled decode program."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    decode = sub.add_parser("decode", help="Decode a file and print the value as JSON")
    decode.add_argument("program", type=Path, help="Serialised program (JSON)")
    decode.add_argument("input", type=Path, help="Binary input file")
    decode.add_argument(
        "--mode",
        choices=["blocking", "suspending"],
        default="blocking",
        help="Execution mode used to read the input",
    )
    decode.add_argument(
        "--trace", action="store_true", help="Print the instruction trace to stderr"
    )
    decode.set_defaults(handler=_cmd_decode)

    check = sub.add_parser("validate", help="Check a program's register discipline")
    check.add_argument("program", type=Path)
    check.set_defaults(handler=_cmd_validate)

    example = sub.add_parser("example", help="Print a sample program as JSON")
    example.add_argument("name", choices=sorted(EXAMPLES))
    example.set_defaults(handler=_cmd_example)

    return parser.parse_args(list(argv))


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        return args.handler(args)
    except ProtodecError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2


__all__ = ["main", "parse_args", "to_jsonable", "EXAMPLES"]
