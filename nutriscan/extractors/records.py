# nutriscan/extractors/records.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

Point = Tuple[float, float]          # (x, y) en pixels image
Polygon = Tuple[Point, ...]          # quadrilatère, >= 4 sommets
CandidateRecord = Dict[str, Any]     # sortie brute de json_repair


class FieldId(str, Enum):
    # les valeurs sont les clés historiques (réponse API + prompt Gemini)
    PROTEIN = "protein"
    SUGAR = "sugar"
    FAT = "fat"
    CARBOHYDRATE = "carb"
    CALORIE = "calorie"
    SERVING_GRAM = "gram"


class Provenance(str, Enum):
    OCR = "ocr"
    GENERATIVE_FALLBACK = "generative-fallback"


@dataclass(frozen=True)
class PositionedToken:
    text: str
    polygon: Polygon = ()
    order: int = 0


@dataclass(frozen=True)
class ImageFrame:
    width: float
    height: float

    def to_dict(self) -> Dict[str, float]:
        return {"width": self.width, "height": self.height}


DEFAULT_FRAME = ImageFrame(1000, 1000)


@dataclass
class ExtractedField:
    field_id: FieldId
    raw_value: str                     # "12.5g", "250kcal", ...
    numeric_value: Optional[float]
    unit: str = "g"
    source_tokens: Tuple[PositionedToken, ...] = ()


@dataclass(frozen=True)
class Highlight:
    field_id: FieldId
    polygon: Polygon

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field_id.value,
            "coords": [{"x": x, "y": y} for x, y in self.polygon],
        }


@dataclass
class ExtractionResult:
    fields: Dict[FieldId, ExtractedField]
    highlights: List[Highlight]
    frame: ImageFrame
    provenance: Provenance
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.provenance is Provenance.GENERATIVE_FALLBACK and self.highlights:
            raise ValueError("generative-fallback results carry no highlights")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "extractedData": {fid.value: f.raw_value for fid, f in self.fields.items()},
            "highlights": [h.to_dict() for h in self.highlights],
            "meta": {**self.frame.to_dict(), **self.meta},
            "provenance": self.provenance.value,
        }


@dataclass
class ProductInfo:
    """Titre + nombre d'avis lus sur une capture de fiche produit."""
    name: str
    review_count: str = ""
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "reviewCount": self.review_count, "meta": self.meta}


@dataclass
class ProductRecord:
    name: str
    brand: Optional[str] = None
    flavor: Optional[str] = None
    weight: Optional[str] = None
    category_large: Optional[str] = None
    category_small: Optional[str] = None
    serving: Optional[str] = None
    calories: Optional[float] = None
    carbs: Optional[float] = None
    protein: Optional[float] = None
    fat: Optional[float] = None
    sugar: Optional[float] = None
    image_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductRecord":
        known = {k: data.get(k) for k in cls.__dataclass_fields__ if k in data}
        # le stockage historique utilise imageUrl / createdAt
        if "imageUrl" in data and "image_url" not in known:
            known["image_url"] = data["imageUrl"]
        if "createdAt" in data and "created_at" not in known:
            known["created_at"] = data["createdAt"]
        known.setdefault("name", data.get("name") or "")
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        out = {k: getattr(self, k) for k in self.__dataclass_fields__}
        out["imageUrl"] = out.pop("image_url")
        out["createdAt"] = out.pop("created_at")
        return {k: v for k, v in out.items() if v is not None}
