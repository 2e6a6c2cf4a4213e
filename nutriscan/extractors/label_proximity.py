# nutriscan/extractors/label_proximity.py
from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Sequence

from ..log import get_logger
from .keywords import (
    FIELD_KEYWORDS, REVIEW_KEYWORDS, FieldKeywordSet, keyword_value_re, review_count_patterns,
)
from .records import (
    DEFAULT_FRAME, ExtractedField, FieldId, Highlight, ImageFrame, PositionedToken,
)
from .utils_amounts import norm_count

log = get_logger(__name__)

# écart max (en caractères) entre mot-clé et nombre dans un même token OCR
PROXIMITY_CHARS = 20
# marge appliquée au cadre estimé depuis les sommets
FRAME_MARGIN = 1.1


def _to_float(s: str) -> Optional[float]:
    try:
        return float(s)
    except ValueError:
        return None


def _token_qualifies(token: PositionedToken, keyword: str, numeral: str) -> bool:
    text = (token.text or "").lower()
    kw = keyword.lower()
    if kw in text:
        return True
    # find() vaut -1 si absent : un token court "23.5g" passe aussi
    return numeral in text and abs(text.find(kw) - text.find(numeral)) < PROXIMITY_CHARS


def _first_source_token(tokens: Sequence[PositionedToken], keyword: str, numeral: str) -> Optional[PositionedToken]:
    for tok in tokens:
        if _token_qualifies(tok, keyword, numeral):
            return tok
    return None


def match_fields(
    full_text: str,
    tokens: Sequence[PositionedToken],
    keywords: FieldKeywordSet = FIELD_KEYWORDS,
) -> Dict[FieldId, ExtractedField]:
    text = full_text or ""
    out: Dict[FieldId, ExtractedField] = {}

    for field_id, variants in keywords.items():
        for kw in variants:
            m = keyword_value_re(kw).search(text)
            if not m:
                continue
            numeral = m.group(1)
            src = _first_source_token(tokens, kw, numeral)
            out[field_id] = ExtractedField(
                field_id=field_id,
                raw_value=f"{numeral}g",
                numeric_value=_to_float(numeral),
                unit="g",
                source_tokens=(src,) if src is not None else (),
            )
            log.debug("field_matched", field=field_id.value, keyword=kw,
                      value=numeral, grounded=src is not None)
            break

    return out


def collect_highlights(fields: Dict[FieldId, ExtractedField]) -> List[Highlight]:
    highlights: List[Highlight] = []
    for field_id, f in fields.items():
        for tok in f.source_tokens[:1]:
            if tok.polygon:
                highlights.append(Highlight(field_id, tuple(tok.polygon)))
    return highlights


def match_review_count(full_text: str, keywords: Sequence[str] = REVIEW_KEYWORDS) -> Optional[str]:
    """Premier mot-clé, puis premier motif, qui donne un entier ; virgules retirées."""
    text = full_text or ""
    for kw in keywords:
        for rx in review_count_patterns(kw):
            m = rx.search(text)
            if not m:
                continue
            count = norm_count(m.group(1))
            if count:
                log.debug("review_count_matched", keyword=kw, value=count)
                return count
    return None


def _vertices(tokens: Iterable[PositionedToken]):
    for tok in tokens:
        for pt in tok.polygon or ():
            yield pt


def resolve_frame(tokens: Sequence[PositionedToken], reported: Optional[ImageFrame] = None) -> ImageFrame:
    """
    Cadre de coordonnées des polygones.
    1) taille rapportée par l'OCR si valide
    2) sinon max X / max Y des sommets + 10 %
    3) sinon 1000 x 1000
    """
    if reported is not None and reported.width > 0 and reported.height > 0:
        return reported

    max_x = max_y = 0.0
    for x, y in _vertices(tokens):
        if x > max_x: max_x = x
        if y > max_y: max_y = y

    width = max_x * FRAME_MARGIN if max_x > 0 else DEFAULT_FRAME.width
    height = max_y * FRAME_MARGIN if max_y > 0 else DEFAULT_FRAME.height
    return ImageFrame(width, height)
