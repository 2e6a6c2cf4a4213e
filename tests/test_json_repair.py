import json

import pytest

from nutriscan.extractors.json_repair import (
    first_record, repair_and_parse, strip_fences, strip_trailing_commas,
)


@pytest.mark.parametrize("value", [
    {"protein": 12.5, "sugar": "3g", "nested": {"a": [1, 2]}},
    [{"name": "컴뱃 프로틴", "flavor": "초콜릿"}, {"name": "ISO100"}],
    {},
])
def test_valid_json_is_returned_unchanged(value):
    assert repair_and_parse(json.dumps(value, ensure_ascii=False)) == value


def test_fenced_json_with_trailing_comma():
    noisy = '```json\n{"protein": "12g", "sugar": "3g",}\n```'
    clean = '{"protein": "12g", "sugar": "3g"}'
    assert repair_and_parse(noisy) == repair_and_parse(clean) == {"protein": "12g", "sugar": "3g"}


def test_fenced_json_without_language_tag():
    assert repair_and_parse('```\n[1, 2]\n```') == [1, 2]


def test_object_surrounded_by_prose():
    text = 'Sure! Here is the data: {"fat": 1, "carb": {"total": 5}} Hope it helps.'
    assert repair_and_parse(text) == {"fat": 1, "carb": {"total": 5}}


def test_array_span_when_no_object_present():
    assert repair_and_parse("Result: [1, 2, 3,] done") == [1, 2, 3]


def test_first_object_span_wins_over_array():
    text = 'items: [{"name": "a"}, {"name": "b"}] end'
    assert repair_and_parse(text) == {"name": "a"}


@pytest.mark.parametrize("text", [
    "No nutrition data could be read from this image.",
    "",
    '{"protein": "12g", "sugar": ',
    "{not: json}",
    "42",
    "null",
])
def test_unrecoverable_text_returns_none(text):
    assert repair_and_parse(text) is None


@pytest.mark.parametrize("value", [None, 12, b'{"a": 1}', {"a": 1}])
def test_non_string_input_returns_none(value):
    assert repair_and_parse(value) is None


def test_helpers():
    assert strip_fences("```JSON {\"a\": 1} ```") == '{"a": 1}'
    assert strip_trailing_commas('{"a": [1, 2, ], }') == '{"a": [1, 2 ] }'


def test_first_record():
    assert first_record({"a": 1}) == {"a": 1}
    assert first_record([1, "x", {"b": 2}, {"c": 3}]) == {"b": 2}
    assert first_record([1, 2]) is None
    assert first_record(None) is None
