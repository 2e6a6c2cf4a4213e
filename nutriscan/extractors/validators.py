# nutriscan/extractors/validators.py
from typing import Any, Dict, Tuple

from .records import CandidateRecord, ExtractedField, FieldId
from .utils_amounts import format_number, norm_number, unit_of

DEFAULT_UNITS = {
    FieldId.CALORIE: "kcal",
}
# clés alternatives rencontrées dans les réponses LLM
FIELD_ALIASES = {
    FieldId.CARBOHYDRATE: ("carb", "total_carb", "carbohydrate"),
    FieldId.CALORIE: ("calorie", "calories"),
    FieldId.SERVING_GRAM: ("gram", "serving_gram"),
}
# bornes plausibles par portion
MAX_GRAMS = 1000.0
MAX_KCAL = 5000.0


def soft_validate(field_id: FieldId, value: Any) -> float:
    """Renvoie un multiplicateur 0..1 (qualité) selon le champ."""
    if value in (None, ""):
        return 0.0
    v = norm_number(value)
    if v is None:
        return 0.3
    upper = MAX_KCAL if field_id is FieldId.CALORIE else MAX_GRAMS
    return 1.0 if 0.0 <= v <= upper else 0.6


def _lookup(candidate: CandidateRecord, field_id: FieldId) -> Any:
    for key in FIELD_ALIASES.get(field_id, (field_id.value,)):
        if candidate.get(key) not in (None, ""):
            return candidate[key]
    return None


def _annotate(field_id: FieldId, value: Any) -> Tuple[str, str]:
    default_unit = DEFAULT_UNITS.get(field_id, "g")
    if isinstance(value, str):
        raw = value.strip()
        return raw, unit_of(raw, default_unit)
    return f"{format_number(norm_number(value))}{default_unit}", default_unit


def candidate_to_fields(candidate: CandidateRecord) -> Tuple[Dict[FieldId, ExtractedField], Dict[str, float]]:
    """CandidateRecord (sortie LLM) -> champs typés + score qualité par champ."""
    fields: Dict[FieldId, ExtractedField] = {}
    quality: Dict[str, float] = {}
    for field_id in FieldId:
        value = _lookup(candidate, field_id)
        score = soft_validate(field_id, value)
        if score == 0.0:
            continue
        raw, unit = _annotate(field_id, value)
        fields[field_id] = ExtractedField(
            field_id=field_id,
            raw_value=raw,
            numeric_value=norm_number(value),
            unit=unit,
        )
        quality[field_id.value] = score
    return fields, quality
