"""
Vector line parsing - recovery of (index, text, vector) from persisted lines whose
quoted text field may contain unescaped commas.
"""

import numpy as np
import pytest

from semantic_analysis.vector.parser import (
    UNKNOWN_INDEX,
    format_vector_line,
    parse_float,
    parse_vector_line,
    split_index,
)


def test_parse_simple_line():
    """A well-formed line splits into index, text and components."""
    record = parse_vector_line('"[3]: the cat sat","0.1,0.2,0.3"')

    assert record is not None
    assert record.index == "[3]"
    assert record.text == "the cat sat"
    assert np.allclose(record.vector, [0.1, 0.2, 0.3])


def test_parse_text_with_embedded_commas():
    """Fragments of a comma-bearing text are re-joined until the first number."""
    record = parse_vector_line('"1: hello, world","0.1","0.2","0.3"')

    assert record.index == "1"
    assert record.text == "hello, world"
    assert np.allclose(record.vector, [0.1, 0.2, 0.3])


def test_parse_text_with_several_commas():
    record = parse_vector_line('"[0]: red, green, and blue","1.5,-2.5,3e-2"')

    assert record.text == "red, green, and blue"
    assert np.allclose(record.vector, [1.5, -2.5, 0.03])


def test_parse_without_colon_uses_unknown_index():
    record = parse_vector_line('"no index here","1.0,0.0"')

    assert record.index == UNKNOWN_INDEX
    assert record.text == "no index here"


def test_index_split_at_first_colon_only():
    index, text = split_index("[2]: ratio 3:4 holds")
    assert index == "[2]"
    assert text == "ratio 3:4 holds"


def test_non_numeric_components_are_dropped():
    """A bad component after the vector starts is skipped, not fatal."""
    record = parse_vector_line('"[1]: text","0.5,oops,0.25"')

    assert record is not None
    assert np.allclose(record.vector, [0.5, 0.25])


@pytest.mark.parametrize("line", [
    "",
    "   ",
    '"[1]: only one field"',
    '"[1]: text","not","numbers"',
    '"[1]:","0.1,0.2"',
])
def test_unrecoverable_lines_are_skipped(line):
    assert parse_vector_line(line) is None


@pytest.mark.parametrize("value,expected", [
    ("1", 1.0),
    ("-0.5", -0.5),
    ("+.25", 0.25),
    ("3.", 3.0),
    ("1e-3", 0.001),
    (" 2.5E2 ", 250.0),
])
def test_parse_float_accepts_invariant_numbers(value, expected):
    assert parse_float(value) == expected


@pytest.mark.parametrize("value", ["nan", "inf", "-Infinity", "1_000", "1,5", "", "abc", "0x10"])
def test_parse_float_rejects_non_decimal(value):
    assert parse_float(value) is None


def test_format_vector_line_layout():
    line = format_vector_line("hello, world", [0.1, 0.25], index="[4]")
    assert line == '"[4]: hello, world","0.1,0.25"'


def test_format_then_parse_recovers_record():
    vector = [0.123456789012345, -1e-7, 42.0]
    line = format_vector_line("a, b, c", vector, index="[9]")

    record = parse_vector_line(line)

    assert record.index == "[9]"
    assert record.text == "a, b, c"
    assert record.vector.tolist() == vector


def test_trailing_newline_is_ignored():
    record = parse_vector_line('"[0]: x","1.0,2.0"\r\n')
    assert np.allclose(record.vector, [1.0, 2.0])


@pytest.mark.parametrize("value", ["1e400", "-1e400", "9" * 400])
def test_parse_float_rejects_overflow(value):
    assert parse_float(value) is None


def test_overflowing_component_is_dropped_not_joined_to_text():
    record = parse_vector_line('"[0]: huge","1e400,1.0"')

    assert record.text == "huge"
    assert record.vector.tolist() == [1.0]


def test_line_with_only_overflowing_components_is_skipped():
    assert parse_vector_line('"[0]: huge","1e400,-1e999"') is None
