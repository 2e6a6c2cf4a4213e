from .dedup import dedup, infer_brand
from .errors import CollaboratorUnavailable, ExtractionError, InvalidInput, UnrecoverableParse
from .json_repair import repair_and_parse
from .keywords import FIELD_KEYWORDS, lookup_keywords
from .label_proximity import match_fields, match_review_count, resolve_frame
from .orchestrator import extract, extract_batch, extract_product_info
from .records import ExtractionResult, FieldId, ImageFrame, PositionedToken, ProductInfo, Provenance

__all__ = [
    "CollaboratorUnavailable", "ExtractionError", "ExtractionResult", "FIELD_KEYWORDS", "FieldId",
    "ImageFrame", "InvalidInput", "PositionedToken", "ProductInfo", "Provenance", "UnrecoverableParse",
    "dedup", "extract", "extract_batch", "extract_product_info", "infer_brand", "lookup_keywords",
    "match_fields", "match_review_count", "repair_and_parse", "resolve_frame",
]
