from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from . import ast
from .resolver import (
    ImportResolver,
    require_function,
    require_transform,
    require_type,
)

_KIND = "type"


def target_to_dict(target: ast.Target) -> Dict[str, Any]:
    if isinstance(target, ast.Direct):
        return {_KIND: "direct"}
    if isinstance(target, ast.Stream):
        return {_KIND: "stream", "register": target.register}
    if isinstance(target, ast.Buf):
        return {_KIND: "buf", "register": target.register}
    raise TypeError(f"Unsupported target {target!r}")


def expr_to_dict(expr: Any) -> Dict[str, Any]:
    if isinstance(expr, ast.FieldRef):
        return {_KIND: "field", "name": expr.name}
    if isinstance(expr, ast.Const):
        if isinstance(expr.value, (bytes, bytearray)):
            return {_KIND: "const", "bytes": bytes(expr.value).hex()}
        return {_KIND: "const", "value": expr.value}
    if isinstance(expr, ast.Call):
        return {
            _KIND: "call",
            "function": expr.function.name,
            "args": [expr_to_dict(arg) for arg in expr.args],
        }
    raise TypeError(f"Unsupported expression {expr!r}")


def constructable_to_dict(constructable: ast.Constructable) -> Dict[str, Any]:
    if isinstance(constructable, ast.TupleOf):
        return {_KIND: "tuple", "items": list(constructable.items)}
    if isinstance(constructable, ast.TaggedTuple):
        return {
            _KIND: "tagged",
            "name": constructable.name,
            "items": list(constructable.items),
        }
    if isinstance(constructable, ast.Struct):
        return {
            _KIND: "struct",
            "name": constructable.name,
            "fields": [[name, register] for name, register in constructable.fields],
        }
    raise TypeError(f"Unsupported constructable {constructable!r}")


def instr_to_dict(instr: ast.Instruction) -> Dict[str, Any]:
    if isinstance(instr, ast.Eval):
        return {_KIND: "eval", "target": instr.target, "expr": expr_to_dict(instr.expr)}
    if isinstance(instr, ast.Construct):
        return {
            _KIND: "construct",
            "target": instr.target,
            "constructable": constructable_to_dict(instr.constructable),
        }
    if isinstance(instr, ast.Constrict):
        return {
            _KIND: "constrict",
            "stream": target_to_dict(instr.stream),
            "new_stream": instr.new_stream,
            "length": instr.length,
        }
    if isinstance(instr, ast.WrapStream):
        return {
            _KIND: "wrap_stream",
            "stream": target_to_dict(instr.stream),
            "new_stream": instr.new_stream,
            "transformer": instr.transformer.name,
            "args": list(instr.args),
        }
    if isinstance(instr, ast.ConditionalWrapStream):
        return {
            _KIND: "conditional_wrap_stream",
            "condition": instr.condition,
            "prelude": [instr_to_dict(inner) for inner in instr.prelude],
            "stream": target_to_dict(instr.stream),
            "new_stream": instr.new_stream,
            "transformer": instr.transformer.name,
            "args": list(instr.args),
        }
    if isinstance(instr, ast.DecodeForeign):
        return {
            _KIND: "decode_foreign",
            "target": target_to_dict(instr.target),
            "data": instr.data,
            "foreign_type": instr.foreign_type.name,
            "args": list(instr.args),
        }
    if isinstance(instr, ast.DecodeRef):
        return {
            _KIND: "decode_ref",
            "target": target_to_dict(instr.target),
            "data": instr.data,
            "type_name": instr.type_name,
            "args": list(instr.args),
        }
    if isinstance(instr, ast.DecodeEnum):
        return {
            _KIND: "decode_enum",
            "enum_name": instr.enum_name,
            "backing": instr.backing,
            "data": instr.data,
            "target": target_to_dict(instr.target),
        }
    if isinstance(instr, ast.DecodePrimitive):
        return {
            _KIND: "decode_primitive",
            "target": target_to_dict(instr.target),
            "data": instr.data,
            "primitive": instr.primitive,
        }
    if isinstance(instr, ast.DecodePrimitiveArray):
        data: Dict[str, Any] = {
            _KIND: "decode_primitive_array",
            "target": target_to_dict(instr.target),
            "data": instr.data,
            "primitive": instr.primitive,
        }
        if instr.length is not None:
            data["length"] = instr.length
        return data
    if isinstance(instr, ast.Loop):
        data = {
            _KIND: "loop",
            "target": target_to_dict(instr.target),
            "output": instr.output,
            "body": [instr_to_dict(inner) for inner in instr.body],
        }
        if instr.stop is not None:
            data["stop"] = instr.stop
        if instr.terminator is not None:
            data["terminator"] = instr.terminator
        return data
    if isinstance(instr, ast.LoopOutput):
        return {_KIND: "loop_output", "output": instr.output, "item": instr.item}
    if isinstance(instr, ast.Conditional):
        return {
            _KIND: "conditional",
            "target": instr.target,
            "interior": instr.interior,
            "condition": instr.condition,
            "body": [instr_to_dict(inner) for inner in instr.body],
        }
    raise TypeError(f"Unsupported instruction {instr!r}")


def context_to_dict(context: ast.Context) -> Dict[str, Any]:
    return {
        "register_count": context.register_count,
        "field_register_map": dict(context.field_register_map),
        "argument_registers": list(context.argument_registers),
        "instructions": [instr_to_dict(instr) for instr in context.instructions],
    }


def to_json(context: ast.Context, *, indent: int = 2) -> str:
    return json.dumps(context_to_dict(context), indent=indent, sort_keys=True)


def dict_to_target(data: Dict[str, Any]) -> ast.Target:
    kind = data[_KIND]
    if kind == "direct":
        return ast.Direct()
    if kind == "stream":
        return ast.Stream(data["register"])
    if kind == "buf":
        return ast.Buf(data["register"])
    raise ValueError(f"Unknown target kind {kind}")


class _Loader:
    """Rebuilds programs, resolving capability names through `resolver`."""

    def __init__(self, resolver: ImportResolver) -> None:
        self.resolver = resolver

    def expr(self, data: Dict[str, Any]) -> ast.Expression:
        kind = data[_KIND]
        if kind == "field":
            return ast.FieldRef(data["name"])
        if kind == "const":
            if "bytes" in data:
                return ast.Const(bytes.fromhex(data["bytes"]))
            return ast.Const(data["value"])
        if kind == "call":
            return ast.Call(
                function=require_function(self.resolver, data["function"]),
                args=tuple(self.expr(arg) for arg in data["args"]),
            )
        raise ValueError(f"Unknown expression kind {kind}")

    def constructable(self, data: Dict[str, Any]) -> ast.Constructable:
        kind = data[_KIND]
        if kind == "tuple":
            return ast.TupleOf(tuple(data["items"]))
        if kind == "tagged":
            return ast.TaggedTuple(data["name"], tuple(data["items"]))
        if kind == "struct":
            return ast.Struct(
                data["name"], tuple((name, register) for name, register in data["fields"])
            )
        raise ValueError(f"Unknown constructable kind {kind}")

    def block(self, items: List[Dict[str, Any]]) -> tuple:
        return tuple(self.instr(item) for item in items)

    def instr(self, data: Dict[str, Any]) -> ast.Instruction:
        kind = data[_KIND]
        if kind == "eval":
            return ast.Eval(data["target"], self.expr(data["expr"]))
        if kind == "construct":
            return ast.Construct(data["target"], self.constructable(data["constructable"]))
        if kind == "constrict":
            return ast.Constrict(
                dict_to_target(data["stream"]), data["new_stream"], data["length"]
            )
        if kind == "wrap_stream":
            return ast.WrapStream(
                stream=dict_to_target(data["stream"]),
                new_stream=data["new_stream"],
                transformer=require_transform(self.resolver, data["transformer"]),
                args=tuple(data.get("args", ())),
            )
        if kind == "conditional_wrap_stream":
            return ast.ConditionalWrapStream(
                condition=data["condition"],
                prelude=self.block(data.get("prelude", [])),
                stream=dict_to_target(data["stream"]),
                new_stream=data["new_stream"],
                transformer=require_transform(self.resolver, data["transformer"]),
                args=tuple(data.get("args", ())),
            )
        if kind == "decode_foreign":
            return ast.DecodeForeign(
                target=dict_to_target(data["target"]),
                data=data["data"],
                foreign_type=require_type(self.resolver, data["foreign_type"]),
                args=tuple(data.get("args", ())),
            )
        if kind == "decode_ref":
            return ast.DecodeRef(
                target=dict_to_target(data["target"]),
                data=data["data"],
                type_name=data["type_name"],
                args=tuple(data.get("args", ())),
            )
        if kind == "decode_enum":
            return ast.DecodeEnum(
                enum_name=data["enum_name"],
                backing=data["backing"],
                data=data["data"],
                target=dict_to_target(data["target"]),
            )
        if kind == "decode_primitive":
            return ast.DecodePrimitive(
                dict_to_target(data["target"]), data["data"], data["primitive"]
            )
        if kind == "decode_primitive_array":
            return ast.DecodePrimitiveArray(
                target=dict_to_target(data["target"]),
                data=data["data"],
                primitive=data["primitive"],
                length=data.get("length"),
            )
        if kind == "loop":
            return ast.Loop(
                target=dict_to_target(data["target"]),
                stop=data.get("stop"),
                terminator=data.get("terminator"),
                output=data["output"],
                body=self.block(data["body"]),
            )
        if kind == "loop_output":
            return ast.LoopOutput(data["output"], data["item"])
        if kind == "conditional":
            return ast.Conditional(
                target=data["target"],
                interior=data["interior"],
                condition=data["condition"],
                body=self.block(data["body"]),
            )
        raise ValueError(f"Unknown instruction kind {kind}")


def dict_to_context(
    data: Dict[str, Any],
    resolver: ImportResolver,
    types: Optional[Mapping[str, Any]] = None,
) -> ast.Context:
    loader = _Loader(resolver)
    return ast.Context(
        instructions=loader.block(data["instructions"]),
        register_count=data["register_count"],
        field_register_map=dict(data.get("field_register_map", {})),
        types=types if types is not None else {},
        argument_registers=tuple(data.get("argument_registers", ())),
    )


def from_json(
    payload: str,
    resolver: ImportResolver,
    types: Optional[Mapping[str, Any]] = None,
) -> ast.Context:
    return dict_to_context(json.loads(payload), resolver, types)


__all__ = [
    "to_json",
    "from_json",
    "context_to_dict",
    "dict_to_context",
    "instr_to_dict",
    "expr_to_dict",
    "target_to_dict",
]
