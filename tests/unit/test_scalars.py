import pytest

from lib.contracts.scalars import (
    BigInteger,
    Byte,
    Char,
    Float,
    Long,
    ScalarTag,
    Short,
    coerce_scalar,
    infer_scalar,
    parse_decimal,
)


def test_infer_widens_integers_by_range():
    assert type(infer_scalar(5)) is int
    assert type(infer_scalar(-(2**31))) is int
    assert type(infer_scalar(2**31)) is Long
    assert type(infer_scalar(2**63)) is BigInteger


def test_infer_passes_other_json_values_through():
    for value in (None, True, 1.5, "text", [1], {"k": "v"}):
        assert infer_scalar(value) == value
    assert infer_scalar(True) is True


def test_bounded_integers_check_range():
    assert Byte(127) == 127
    assert Short(-32768) == -32768
    with pytest.raises(ValueError, match="Byte out of range"):
        Byte(128)
    with pytest.raises(ValueError):
        Short(40000)
    with pytest.raises(ValueError):
        Long(2**63)


def test_float_and_char_validation():
    assert Float(3.5) == 3.5
    with pytest.raises(ValueError):
        Float(1e39)
    assert Char("x") == "x"
    with pytest.raises(ValueError):
        Char("xy")


@pytest.mark.parametrize(
    "value, tag, expected_type, expected",
    [
        (5, "byte", Byte, 5),
        ("12", ScalarTag.SHORT, Short, 12),
        (7, "long", Long, 7),
        ("42", "int", int, 42),
        (2, "float", Float, 2.0),
        (2, "double", float, 2.0),
        ("z", "char", Char, "z"),
        ("true", "boolean", bool, True),
        (False, "boolean", bool, False),
        (True, "string", str, "true"),
        (15, "string", str, "15"),
    ],
)
def test_coerce_with_tag(value, tag, expected_type, expected):
    result = coerce_scalar(value, tag)
    assert type(result) is expected_type
    assert result == expected


def test_coerce_keeps_none_for_any_tag():
    for tag in ScalarTag:
        assert coerce_scalar(None, tag) is None


@pytest.mark.parametrize(
    "value, tag",
    [
        (300, "byte"),
        (True, "int"),
        (2**40, "int"),
        (1.5, "long"),
        ("ab", "char"),
        (5, "char"),
        ("yes", "boolean"),
        ("abc", "short"),
        (" 12 ", "short"),
        ("1_000", "int"),
        ("0x10", "long"),
        (False, "double"),
    ],
)
def test_coerce_rejects_impossible_conversions(value, tag):
    with pytest.raises(ValueError):
        coerce_scalar(value, tag)


def test_unknown_tag_is_rejected():
    with pytest.raises(ValueError):
        coerce_scalar(1, "decimal")


def test_parse_decimal():
    assert parse_decimal("-17") == -17
    assert parse_decimal("+8") == 8
    assert parse_decimal("1" + "0" * 5000) == 10**5000
    assert parse_decimal("-" + "9" * 4500) == -(10**4500 - 1)
    for text in ("", "-", " 1", "1 ", "1_000", "0x1f", "1e3", "--1"):
        with pytest.raises(ValueError):
            parse_decimal(text)


def test_tagged_coercion_of_huge_text_is_rejected():
    with pytest.raises(ValueError):
        coerce_scalar("9" * 5000, "long")
