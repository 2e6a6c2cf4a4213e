from __future__ import annotations
from typing import Any, Dict, Optional

from .records import ExtractionResult, FieldId, ProductRecord
from .utils_amounts import norm_number, parse_weight_to_grams, strip_unit

# champ extrait -> attribut du ProductRecord
PRODUCT_ATTRS = {
    FieldId.PROTEIN: "protein",
    FieldId.SUGAR: "sugar",
    FieldId.FAT: "fat",
    FieldId.CARBOHYDRATE: "carbs",
    FieldId.CALORIE: "calories",
}


def build_record(result: ExtractionResult) -> Dict[str, Any]:
    """
    Vue appelant d'un ExtractionResult : valeurs sans unité ("values"),
    texte annoté avec unité ("annotated"), même parse source.
    """
    values: Dict[str, str] = {}
    numbers: Dict[str, Optional[float]] = {}
    annotated: Dict[str, str] = {}
    for field_id, f in result.fields.items():
        annotated[field_id.value] = f.raw_value
        values[field_id.value] = strip_unit(f.raw_value)
        numbers[field_id.value] = f.numeric_value
    return {
        "values": values,
        "numbers": numbers,
        "annotated": annotated,
        "provenance": result.provenance.value,
    }


def to_product_record(result: ExtractionResult, name: str, **extra: Any) -> ProductRecord:
    record = ProductRecord(name=name, **extra)
    for field_id, attr in PRODUCT_ATTRS.items():
        f = result.fields.get(field_id)
        if f is not None:
            setattr(record, attr, f.numeric_value)
    serving = result.fields.get(FieldId.SERVING_GRAM)
    if serving is not None:
        record.serving = strip_unit(serving.raw_value)
    return record


def normalize_listing_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Complète weight_g / weight_kg l'un par l'autre (ou depuis 'weight')."""
    out = dict(item)
    kg = norm_number(out.get("weight_kg"))
    g = norm_number(out.get("weight_g"))
    if g is None and kg is None and out.get("weight"):
        grams = parse_weight_to_grams(out["weight"])
        g = float(grams) if grams is not None else None
    if kg is None and g is not None:
        kg = g / 1000.0
    if g is None and kg is not None:
        g = kg * 1000.0
    if g is not None:
        out["weight_g"] = g
    if kg is not None:
        out["weight_kg"] = kg
    return out
