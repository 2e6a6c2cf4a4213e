# nutriscan/extractors/orchestrator.py
from __future__ import annotations
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..config import Settings, load_settings
from ..log import get_logger
from .dedup import dedup, infer_brand, listing_key_view
from .errors import (
    CollaboratorUnavailable, GenerationUnavailable, InvalidInput, OcrUnavailable, UnrecoverableParse,
)
from .generative import (
    LISTING_PROMPT, NUTRITION_PROMPT, PRODUCT_INFO_PROMPT, GenerativeModel, build_generative,
)
from .io_image import ImagePayload, load_image
from .json_repair import first_record, repair_and_parse
from .keywords import PATTERNS_VERSION
from .label_proximity import collect_highlights, match_fields, match_review_count, resolve_frame
from .ocr import OcrEngine, OcrResponse, build_ocr
from .records import (
    DEFAULT_FRAME, CandidateRecord, ExtractionResult, ImageFrame, ProductInfo, Provenance,
)
from .summary import normalize_listing_item
from .utils_amounts import norm_count
from .validators import candidate_to_fields

log = get_logger(__name__)


def _elapsed_ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


def _coerce_frame(hint: Any) -> Optional[ImageFrame]:
    if hint is None or isinstance(hint, ImageFrame):
        return hint
    try:
        if isinstance(hint, dict):
            w, h = float(hint["width"]), float(hint["height"])
        else:
            w, h = (float(v) for v in hint)
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidInput(f"invalid frame hint: {hint!r}") from e
    if w <= 0 or h <= 0:
        raise InvalidInput(f"invalid frame hint: {hint!r}")
    return ImageFrame(w, h)


# -------------------------
# Chemin OCR
# -------------------------

def _from_ocr(resp: OcrResponse, frame_hint: Optional[ImageFrame], meta: Dict[str, Any]) -> ExtractionResult:
    fields = match_fields(resp.full_text, resp.tokens)
    frame = resolve_frame(resp.tokens, frame_hint or resp.frame)
    meta["tokens"] = len(resp.tokens)
    return ExtractionResult(
        fields=fields,
        highlights=collect_highlights(fields),
        frame=frame,
        provenance=Provenance.OCR,
        meta=meta,
    )


# -------------------------
# Repli génératif
# -------------------------

def _generate(generative: GenerativeModel, prompt: str, images: Sequence[ImagePayload]) -> str:
    try:
        return generative.generate(prompt, images)
    except GenerationUnavailable as e:
        log.error("generative_failed", model=getattr(generative, "name", ""), error=str(e))
        raise CollaboratorUnavailable(f"generative model unavailable: {e}") from e


def _from_generative(payload: ImagePayload, generative: GenerativeModel, meta: Dict[str, Any]) -> ExtractionResult:
    log.info("generative_fallback", reason=meta.get("fallback"), model=getattr(generative, "name", ""))
    text = _generate(generative, NUTRITION_PROMPT, [payload])

    candidate = first_record(repair_and_parse(text))
    if candidate is None:
        log.error("unrecoverable_parse", snippet=text[:200])
        raise UnrecoverableParse("no structured data recoverable from generative output", raw_text=text)

    fields, quality = candidate_to_fields(candidate)
    meta["model"] = getattr(generative, "name", "")
    meta["field_quality"] = quality
    return ExtractionResult(
        fields=fields,
        highlights=[],
        frame=DEFAULT_FRAME,
        provenance=Provenance.GENERATIVE_FALLBACK,
        meta=meta,
    )


# -------------------------
# Extraction principale
# -------------------------

def extract(
    image: Any,
    frame_hint: Any = None,
    *,
    ocr: Optional[OcrEngine] = None,
    generative: Optional[GenerativeModel] = None,
    settings: Optional[Settings] = None,
) -> ExtractionResult:
    """
    Start -> OCR -> (succès : correspondance mots-clés / tokens)
                 -> (échec ou texte vide : repli génératif) -> Done.
    Lève InvalidInput, CollaboratorUnavailable ou UnrecoverableParse.
    """
    payload = load_image(image)
    hint = _coerce_frame(frame_hint)
    if ocr is None or generative is None:
        settings = settings or load_settings()
    ocr = ocr or build_ocr(settings)

    t0 = time.perf_counter()
    meta: Dict[str, Any] = {"version": PATTERNS_VERSION, "ocr_engine": getattr(ocr, "name", "")}

    try:
        resp = ocr.recognize(payload)
    except OcrUnavailable as e:
        log.warning("ocr_failed", engine=meta["ocr_engine"], error=str(e))
        meta["ocr_error"] = str(e)
        meta["fallback"] = "ocr_failed"
    else:
        if resp.has_text:
            result = _from_ocr(resp, hint, meta)
            meta["elapsed_ms"] = _elapsed_ms(t0)
            log.info("extracted", provenance=result.provenance.value, fields=len(result.fields),
                     highlights=len(result.highlights))
            return result
        log.warning("ocr_empty", engine=meta["ocr_engine"])
        meta["fallback"] = "ocr_empty"

    generative = generative or build_generative(settings)
    result = _from_generative(payload, generative, meta)
    meta["elapsed_ms"] = _elapsed_ms(t0)
    log.info("extracted", provenance=result.provenance.value, fields=len(result.fields))
    return result


# -------------------------
# Fiche produit (titre + avis)
# -------------------------

def extract_product_info(
    image: Any,
    *,
    ocr: Optional[OcrEngine] = None,
    generative: Optional[GenerativeModel] = None,
    settings: Optional[Settings] = None,
) -> ProductInfo:
    """
    OCR d'abord pour le nombre d'avis (motifs mots-clés), puis un appel
    génératif pour le titre. Un échec OCR n'est pas bloquant ; l'avis lu
    par OCR l'emporte sur celui du modèle.
    """
    payload = load_image(image)
    if ocr is None or generative is None:
        settings = settings or load_settings()
    ocr = ocr or build_ocr(settings)

    t0 = time.perf_counter()
    meta: Dict[str, Any] = {"version": PATTERNS_VERSION, "ocr_engine": getattr(ocr, "name", "")}

    ocr_count: Optional[str] = None
    try:
        resp = ocr.recognize(payload)
    except OcrUnavailable as e:
        log.warning("ocr_failed", engine=meta["ocr_engine"], error=str(e))
        meta["ocr_error"] = str(e)
    else:
        ocr_count = match_review_count(resp.full_text)

    generative = generative or build_generative(settings)
    text = _generate(generative, PRODUCT_INFO_PROMPT, [payload])
    candidate = first_record(repair_and_parse(text))
    if candidate is None:
        log.error("unrecoverable_parse", snippet=text[:200])
        raise UnrecoverableParse("no product info recoverable from generative output", raw_text=text)

    model_count = norm_count(candidate.get("reviewCount"))
    if ocr_count:
        meta["review_source"] = "ocr"
    elif model_count:
        meta["review_source"] = "generative"
    meta["model"] = getattr(generative, "name", "")
    meta["elapsed_ms"] = _elapsed_ms(t0)

    info = ProductInfo(
        name=str(candidate.get("name") or "").strip(),
        review_count=ocr_count or model_count,
        meta=meta,
    )
    log.info("product_info_extracted", review_source=meta.get("review_source"),
             has_name=bool(info.name))
    return info


def _listing_items(parsed: Any) -> Optional[List[CandidateRecord]]:
    if parsed is None:
        return None
    if isinstance(parsed, dict):
        products = parsed.get("products")
        if isinstance(products, list):
            parsed = products
        else:
            return [parsed]
    return [item for item in parsed if isinstance(item, dict)]


def extract_batch(
    images: Sequence[Any],
    existing_records: Iterable[Any] = (),
    *,
    generative: Optional[GenerativeModel] = None,
    settings: Optional[Settings] = None,
) -> List[CandidateRecord]:
    """Toutes les images partent en un seul appel ; résultat dédupliqué."""
    if not images:
        raise InvalidInput("no images provided")
    payloads = [load_image(img) for img in images]
    generative = generative or build_generative(settings or load_settings())

    text = _generate(generative, LISTING_PROMPT, payloads)
    items = _listing_items(repair_and_parse(text))
    if items is None:
        log.error("unrecoverable_parse", snippet=text[:200])
        raise UnrecoverableParse("no product list recoverable from generative output", raw_text=text)

    candidates: List[CandidateRecord] = []
    for item in items:
        item = normalize_listing_item(item)
        if not item.get("brand"):
            item["brand"] = infer_brand(item.get("name"))
        item["flavor"] = item.get("flavor") or ""
        candidates.append(item)

    existing = [listing_key_view(r) for r in existing_records]
    kept = dedup(existing, candidates)
    log.info("batch_dedup", images=len(payloads), extracted=len(candidates),
             kept=len(kept), existing=len(existing))
    return kept
