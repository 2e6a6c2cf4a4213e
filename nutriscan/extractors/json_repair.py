# nutriscan/extractors/json_repair.py
from __future__ import annotations
import json
import re
from typing import Any, Callable, List, Optional, Union

from ..log import get_logger
from .records import CandidateRecord

log = get_logger(__name__)

Parsed = Union[CandidateRecord, List[Any]]

FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
# objet avec au plus un niveau d'objets imbriqués
OBJECT_SPAN_RE = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}")
ARRAY_SPAN_RE = re.compile(r"\[[^\[\]]*(?:\[[^\[\]]*\][^\[\]]*)*\]")
TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


def _loads(s: str) -> Optional[Parsed]:
    try:
        value = json.loads(s)
    except (ValueError, RecursionError):
        return None
    # un scalaire ("42", "null") ne compte pas comme donnée structurée
    return value if isinstance(value, (dict, list)) else None


def strip_fences(text: str) -> str:
    return FENCE_RE.sub("", text).strip()


def strip_trailing_commas(text: str) -> str:
    return TRAILING_COMMA_RE.sub(r"\1", text)


def _parse_span(span: str, open_ch: str, close_ch: str) -> Optional[Parsed]:
    parsed = _loads(span)
    if parsed is not None:
        return parsed
    log.debug("json_repair_tier_failed", tier="span", kind=open_ch)

    span = strip_trailing_commas(span)
    parsed = _loads(span)
    if parsed is not None:
        return parsed
    log.debug("json_repair_tier_failed", tier="trailing_commas", kind=open_ch)

    first, last = span.find(open_ch), span.rfind(close_ch)
    if first != -1 and last > first:
        parsed = _loads(span[first:last + 1])
        if parsed is not None:
            return parsed
    log.debug("json_repair_tier_failed", tier="outer_delimiters", kind=open_ch)
    return None


def repair_and_parse(text: Any) -> Optional[Parsed]:
    """
    Récupère un objet / tableau JSON dans une sortie LLM bruitée.
    Ordre : texte brut -> sans balises ``` -> premier {...} (virgules
    finales, puis premier '{' .. dernier '}') -> idem pour [...].
    Ne lève jamais : None = rien de récupérable.
    """
    if not isinstance(text, str):
        return None

    parsed = _loads(text)
    if parsed is not None:
        return parsed

    cleaned = strip_fences(text)
    parsed = _loads(cleaned)
    if parsed is not None:
        return parsed
    log.debug("json_repair_tier_failed", tier="fences")

    tiers: List[tuple[re.Pattern, str, str]] = [
        (OBJECT_SPAN_RE, "{", "}"),
        (ARRAY_SPAN_RE, "[", "]"),
    ]
    for pattern, open_ch, close_ch in tiers:
        m = pattern.search(cleaned)
        if not m:
            continue
        # le premier span trouvé décide, on ne retombe pas sur les tableaux
        return _parse_span(m.group(0), open_ch, close_ch)

    return None


def first_record(parsed: Optional[Parsed], pick: Callable[[Any], bool] = lambda v: isinstance(v, dict)) -> Optional[CandidateRecord]:
    if isinstance(parsed, dict):
        return parsed
    if isinstance(parsed, list):
        for item in parsed:
            if pick(item):
                return item
    return None
