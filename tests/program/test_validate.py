from protodec import specs, validate
from protodec.ast import (
    Conditional,
    Const,
    Construct,
    Context,
    DecodePrimitive,
    Direct,
    Eval,
    Loop,
    LoopOutput,
    TupleOf,
)

SEED_PROGRAMS = (
    specs.header,
    specs.length_prefixed_text,
    specs.counted_u16_array,
    specs.trailing_i32_array,
    specs.counted_items,
    specs.terminated_items,
    specs.varint_entries,
    specs.optional_u32,
    specs.maybe_gzip_text,
    specs.padded_block,
    specs.colored,
    specs.envelope,
)


def test_seed_programs_validate_cleanly() -> None:
    for factory in SEED_PROGRAMS:
        assert validate.validate(factory()) == [], factory.__name__


def test_double_write_is_reported() -> None:
    context = Context(
        instructions=(
            DecodePrimitive(Direct(), 1, "u8"),
            DecodePrimitive(Direct(), 1, "u8"),
        ),
        register_count=2,
    )
    errors = validate.validate(context)
    assert any("written twice" in msg for msg in errors)


def test_read_before_write_is_reported() -> None:
    context = Context(
        instructions=(Construct(1, TupleOf((0,))),),
        register_count=2,
    )
    errors = validate.validate(context)
    assert errors == ["#0 Construct: reads r0 before it is written"]


def test_register_out_of_range() -> None:
    context = Context(
        instructions=(DecodePrimitive(Direct(), 5, "u8"),),
        register_count=1,
    )
    errors = validate.validate(context)
    assert any("outside 0..0" in msg for msg in errors)
    assert any("never written" in msg for msg in errors)


def test_loop_output_outside_its_loop() -> None:
    context = Context(
        instructions=(
            DecodePrimitive(Direct(), 0, "u8"),
            Eval(1, Const([])),
            LoopOutput(1, 0),
        ),
        register_count=2,
    )
    errors = validate.validate(context)
    assert any("not an enclosing loop output" in msg for msg in errors)


def test_loop_with_two_termination_rules() -> None:
    context = Context(
        instructions=(
            Eval(0, Const(1)),
            Eval(1, Const(b"\x00")),
            Loop(Direct(), stop=0, terminator=1, output=2, body=()),
        ),
        register_count=3,
    )
    errors = validate.validate(context)
    assert any("both a count and a terminator" in msg for msg in errors)


def test_body_errors_carry_nested_location() -> None:
    context = Context(
        instructions=(
            Loop(
                Direct(),
                stop=None,
                terminator=None,
                output=1,
                body=(LoopOutput(1, 0),),
            ),
        ),
        register_count=2,
    )
    errors = validate.validate(context)
    assert errors == ["#0 Loop/body#0 LoopOutput: reads r0 before it is written"]


def test_conditional_must_write_its_interior() -> None:
    context = Context(
        instructions=(
            DecodePrimitive(Direct(), 0, "bool"),
            Conditional(target=2, interior=1, condition=0, body=()),
        ),
        register_count=3,
    )
    errors = validate.validate(context)
    assert any("never writes interior r1" in msg for msg in errors)
