# nutriscan/extractors/keywords.py
from __future__ import annotations
import re
from types import MappingProxyType
from typing import Mapping, Tuple

from .records import FieldId

PATTERNS_VERSION = "v1.1.0"

FieldKeywordSet = Mapping[FieldId, Tuple[str, ...]]

# ordre = priorité : le premier mot-clé qui matche gagne
FIELD_KEYWORDS: FieldKeywordSet = MappingProxyType({
    FieldId.PROTEIN:      ("protein", "단백질", "proteína"),
    FieldId.SUGAR:        ("sugar", "당류", "sugars", "azúcar"),
    FieldId.FAT:          ("fat", "지방", "grasa"),
    FieldId.CARBOHYDRATE: ("carb", "carbohydrate", "탄수화물", "carbohidrato", "total carbohydrate"),
    FieldId.CALORIE:      ("calorie", "calories", "칼로리", "kcal", "energía"),
    FieldId.SERVING_GRAM: ("gram", "g", "그램"),
})


def lookup_keywords(field_id: FieldId, table: FieldKeywordSet = FIELD_KEYWORDS) -> Tuple[str, ...]:
    return tuple(table.get(FieldId(field_id), ()))


def keyword_value_re(keyword: str) -> re.Pattern:
    """mot-clé littéral, séparateur optionnel (espaces / ':'), nombre, 'g'."""
    return re.compile(rf"{re.escape(keyword)}[\s:]*([\d.]+)\s*g", re.IGNORECASE)


# nombre d'avis sur une fiche produit ; même ordre de priorité que plus haut
REVIEW_KEYWORDS: Tuple[str, ...] = ("리뷰", "review", "reviews", "리뷰수", "리뷰 개", "개 리뷰")


def review_count_patterns(keyword: str) -> Tuple[re.Pattern, ...]:
    """'리뷰 1,234개', 'Review: 1,234', '1,234 reviews' ; virgules de milliers admises."""
    kw = re.escape(keyword)
    return (
        re.compile(rf"{kw}[\s:]*([\d,]+)\s*개", re.IGNORECASE),
        re.compile(rf"{kw}[\s:]*([\d,]+)", re.IGNORECASE),
        re.compile(rf"([\d,]+)\s*{kw}", re.IGNORECASE),
    )
