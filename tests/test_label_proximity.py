import pytest

from nutriscan.extractors.keywords import FIELD_KEYWORDS, lookup_keywords
from nutriscan.extractors.label_proximity import (
    collect_highlights, match_fields, match_review_count, resolve_frame,
)
from nutriscan.extractors.records import FieldId, ImageFrame, PositionedToken

from conftest import box


def test_every_field_has_three_languages():
    for field_id in FieldId:
        assert len(lookup_keywords(field_id)) >= 3
    assert lookup_keywords(FieldId.PROTEIN) == ("protein", "단백질", "proteína")
    assert lookup_keywords("sugar")[0] == "sugar"


def test_keyword_table_is_read_only():
    with pytest.raises(TypeError):
        FIELD_KEYWORDS[FieldId.FAT] = ("fat",)


def test_protein_and_sugar_with_first_qualifying_token(label_response):
    fields = match_fields(label_response.full_text, label_response.tokens)

    assert set(fields) == {FieldId.PROTEIN, FieldId.SUGAR}
    protein = fields[FieldId.PROTEIN]
    assert protein.raw_value == "23.5g"
    assert protein.numeric_value == 23.5
    assert protein.unit == "g"
    # "Protein:" vient avant "23.5g" et contient le mot-clé
    assert protein.source_tokens[0].text == "Protein:"
    assert fields[FieldId.SUGAR].numeric_value == 4.0

    highlights = collect_highlights(fields)
    assert [h.field_id for h in highlights] == [FieldId.PROTEIN, FieldId.SUGAR]
    assert highlights[0].polygon == box(10, 10, 90, 30)


@pytest.mark.parametrize("text,field_id,value", [
    ("단백질 12g", FieldId.PROTEIN, 12.0),
    ("proteína: 8.5 g", FieldId.PROTEIN, 8.5),
    ("당류 3g", FieldId.SUGAR, 3.0),
    ("grasa 1.2g", FieldId.FAT, 1.2),
    ("탄수화물: 40g", FieldId.CARBOHYDRATE, 40.0),
    ("1회 제공량 그램 30g", FieldId.SERVING_GRAM, 30.0),
])
def test_value_matches_regardless_of_language(text, field_id, value):
    fields = match_fields(text, [])
    assert fields[field_id].numeric_value == value
    assert fields[field_id].source_tokens == ()


def test_first_keyword_in_priority_order_wins():
    # "carb" passe avant "total carbohydrate"
    fields = match_fields("Total Carbohydrate 31g carb 5g", [])
    assert fields[FieldId.CARBOHYDRATE].numeric_value == 5.0


def test_value_without_grounding_token_is_kept():
    tokens = [PositionedToken("Nutrition", box(0, 0, 50, 10), 0)]
    fields = match_fields("단백질 12g", tokens)

    assert fields[FieldId.PROTEIN].numeric_value == 12.0
    assert fields[FieldId.PROTEIN].source_tokens == ()
    assert collect_highlights(fields) == []


def test_numeral_far_from_start_does_not_ground():
    far = PositionedToken("x" * 25 + "12g", box(0, 0, 10, 10), 0)
    near = PositionedToken("total 12g", box(5, 5, 20, 20), 1)
    fields = match_fields("fat 12g", [far, near])
    assert fields[FieldId.FAT].source_tokens == (near,)


def test_token_containing_keyword_grounds_even_without_numeral():
    tokens = [PositionedToken("FAT", box(1, 1, 2, 2), 0), PositionedToken("9g", box(3, 3, 4, 4), 1)]
    fields = match_fields("Fat 9g", tokens)
    assert fields[FieldId.FAT].source_tokens[0].text == "FAT"


def test_keyword_without_numeral_is_dropped():
    fields = match_fields("Protein: high  Sugar 4 mg", [])
    assert FieldId.PROTEIN not in fields
    # "4 mg" : 'm' entre le nombre et 'g'
    assert FieldId.SUGAR not in fields


def test_token_without_polygon_gives_no_highlight():
    tokens = [PositionedToken("Protein", (), 0)]
    fields = match_fields("Protein 10g", tokens)
    assert fields[FieldId.PROTEIN].source_tokens == (tokens[0],)
    assert collect_highlights(fields) == []


def test_invalid_numeral_has_no_numeric_value():
    fields = match_fields("protein 1.2.3g", [])
    assert fields[FieldId.PROTEIN].raw_value == "1.2.3g"
    assert fields[FieldId.PROTEIN].numeric_value is None


def test_keywords_are_literal_not_regex():
    table = {FieldId.FAT: ("f.t",)}
    assert match_fields("fat 3g", [], table) == {}
    assert match_fields("f.t 3g", [], table)[FieldId.FAT].numeric_value == 3.0


def test_resolve_frame_prefers_reported_size():
    tokens = [PositionedToken("a", box(0, 0, 500, 500), 0)]
    assert resolve_frame(tokens, ImageFrame(640, 480)) == ImageFrame(640, 480)


def test_resolve_frame_estimates_from_vertices_with_margin():
    tokens = [
        PositionedToken("a", box(0, 0, 200, 50), 0),
        PositionedToken("b", box(10, 60, 120, 100), 1),
    ]
    frame = resolve_frame(tokens, ImageFrame(0, 0))
    assert frame.width == pytest.approx(220)
    assert frame.height == pytest.approx(110)


def test_resolve_frame_defaults_without_vertices():
    assert resolve_frame([]) == ImageFrame(1000, 1000)
    assert resolve_frame([PositionedToken("a", (), 0)]) == ImageFrame(1000, 1000)


def test_highlights_stay_inside_estimated_frame(label_response):
    fields = match_fields(label_response.full_text, label_response.tokens)
    frame = resolve_frame(label_response.tokens)
    for h in collect_highlights(fields):
        for x, y in h.polygon:
            assert 0 <= x <= frame.width
            assert 0 <= y <= frame.height


@pytest.mark.parametrize("text,count", [
    ("리뷰 1,234개", "1234"),
    ("리뷰수: 87", "87"),
    ("Review 1,234", "1234"),
    ("★ 4.8 (2,310 reviews)", "2310"),
    ("구매 후기 56 개 리뷰", "56"),
])
def test_review_count_patterns(text, count):
    assert match_review_count(text) == count


def test_review_count_absent():
    assert match_review_count("단백질 24g 초콜릿맛") is None
    assert match_review_count("리뷰, 좋아요") is None
    assert match_review_count("") is None
