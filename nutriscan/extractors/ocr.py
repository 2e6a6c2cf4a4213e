# nutriscan/extractors/ocr.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

import numpy as np
import pytesseract
import requests

from ..config import Settings
from .errors import OcrUnavailable
from .io_image import ImagePayload
from .records import ImageFrame, PositionedToken

VISION_URL = "https://vision.googleapis.com/v1/images:annotate"
VISION_MAX_RESULTS = 50
PADDLE_MIN_SCORE = 0.5

# PaddleOCR est optionnel : import paresseux, un moteur par langue
_PADDLE_OCR: Dict[str, Any] = {}


@dataclass
class OcrResponse:
    full_text: str
    tokens: List[PositionedToken] = field(default_factory=list)
    frame: Optional[ImageFrame] = None
    engine: str = ""

    @property
    def has_text(self) -> bool:
        return bool((self.full_text or "").strip())


class OcrEngine(Protocol):
    name: str

    def recognize(self, image: ImagePayload) -> OcrResponse: ...


def _box_polygon(left: float, top: float, width: float, height: float) -> Tuple[Tuple[float, float], ...]:
    right, bottom = left + width, top + height
    return ((left, top), (right, top), (right, bottom), (left, bottom))


# --------- Tesseract ---------

def _tess_config() -> str:
    # LSTM, bloc de texte uniforme, blacklist de chars parasites
    return (
        "--oem 1 --psm 6 "
        "-c tessedit_char_blacklist=\"|{}[]<>\\/@#~^*_`\""
    )


class TesseractOcr:
    name = "tesseract"

    def __init__(self, lang: str = "kor+eng", min_conf: float = 30):
        self.lang = lang
        self.min_conf = min_conf

    def recognize(self, image: ImagePayload) -> OcrResponse:
        try:
            img = image.to_pil().convert("L")
            data = pytesseract.image_to_data(
                img, lang=self.lang, config=_tess_config(),
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            raise OcrUnavailable(f"tesseract_error:{e}") from e
        return self._parse(data, img.size)

    def _parse(self, data: Dict[str, List[Any]], size: Tuple[int, int]) -> OcrResponse:
        tokens: List[PositionedToken] = []
        lines: Dict[Tuple[int, int, int], List[str]] = {}
        for i, raw in enumerate(data.get("text") or []):
            text = (raw or "").replace("\u00a0", " ").strip()
            if not text:
                continue
            try:
                conf = float(data["conf"][i])
            except (KeyError, IndexError, TypeError, ValueError):
                conf = -1.0
            if conf < self.min_conf:
                continue
            poly = _box_polygon(
                float(data["left"][i]), float(data["top"][i]),
                float(data["width"][i]), float(data["height"][i]),
            )
            tokens.append(PositionedToken(text=text, polygon=poly, order=len(tokens)))
            key = tuple(data[k][i] if k in data else 0 for k in ("block_num", "par_num", "line_num"))
            lines.setdefault(key, []).append(text)
        full = "\n".join(" ".join(words) for words in lines.values())
        return OcrResponse(full, tokens, ImageFrame(*size), self.name)


# --------- PaddleOCR ---------

def _get_paddle(lang: str = "korean"):
    engine = _PADDLE_OCR.get(lang)
    if engine is None:
        from paddleocr import PaddleOCR  # import tardif
        # CPU par défaut; use_angle_cls=True pour corriger rotations
        engine = _PADDLE_OCR[lang] = PaddleOCR(lang=lang, use_angle_cls=True, show_log=False)
    return engine


class PaddleOcr:
    name = "paddleocr"

    def __init__(self, lang: str = "korean", min_score: float = PADDLE_MIN_SCORE):
        self.lang = lang
        self.min_score = min_score

    def recognize(self, image: ImagePayload) -> OcrResponse:
        try:
            ocr = _get_paddle(lang=self.lang)
            img = image.to_pil().convert("RGB")
            result = ocr.ocr(np.array(img), cls=True)
        except Exception as e:
            raise OcrUnavailable(f"paddle_error:{e}") from e
        return self._parse(result, img.size)

    def _parse(self, result: Any, size: Tuple[int, int]) -> OcrResponse:
        tokens: List[PositionedToken] = []
        # result: list[pages] -> list[ [box, (text, score)], ... ]
        if result and result[0]:
            for det in result[0]:
                box, (text, score) = det[0], det[1]
                if not text or score < self.min_score:
                    continue
                poly = tuple((float(x), float(y)) for x, y in box)
                tokens.append(PositionedToken(text=text, polygon=poly, order=len(tokens)))
        full = "\n".join(t.text for t in tokens)
        return OcrResponse(full, tokens, ImageFrame(*size), self.name)


# --------- Google Cloud Vision (REST) ---------

class VisionApiOcr:
    name = "google-vision"

    def __init__(self, api_key: Optional[str], timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def recognize(self, image: ImagePayload) -> OcrResponse:
        if not self.api_key:
            raise OcrUnavailable("vision_error:missing GOOGLE_VISION_API_KEY")
        body = {
            "requests": [{
                "image": {"content": image.to_base64()},
                "features": [{"type": "TEXT_DETECTION", "maxResults": VISION_MAX_RESULTS}],
            }],
        }
        try:
            resp = self.session.post(
                VISION_URL, params={"key": self.api_key}, json=body, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise OcrUnavailable(f"vision_error:{e}") from e
        if not resp.ok:
            snippet = resp.text[:200] if resp.text else ""
            raise OcrUnavailable(f"vision_status:{resp.status_code}:{snippet}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise OcrUnavailable(f"vision_error:invalid json: {e}") from e
        return self._parse(payload)

    def _parse(self, payload: Any) -> OcrResponse:
        try:
            return self._parse_annotations(payload)
        except (AttributeError, TypeError, KeyError, IndexError, ValueError) as e:
            raise OcrUnavailable(f"vision_error:malformed response: {e}") from e

    def _parse_annotations(self, payload: Any) -> OcrResponse:
        if not isinstance(payload, dict):
            raise OcrUnavailable("vision_error:malformed response")
        first = (payload.get("responses") or [{}])[0] or {}
        if not isinstance(first, dict):
            raise OcrUnavailable("vision_error:malformed response")
        err = first.get("error")
        if err:
            msg = err.get("message", err) if isinstance(err, dict) else err
            raise OcrUnavailable(f"vision_error:{msg}")

        annotations = first.get("textAnnotations") or []
        if not annotations:
            return OcrResponse("", [], None, self.name)

        # la première annotation = texte complet, les suivantes = mots
        full = annotations[0].get("description") or ""
        tokens: List[PositionedToken] = []
        for i, word in enumerate(annotations[1:]):
            vertices = (word.get("boundingPoly") or {}).get("vertices") or []
            poly = tuple((float(v.get("x") or 0), float(v.get("y") or 0)) for v in vertices)
            tokens.append(PositionedToken(text=word.get("description") or "", polygon=poly, order=i))

        frame = None
        pages = (first.get("fullTextAnnotation") or {}).get("pages") or []
        if pages and pages[0].get("width") and pages[0].get("height"):
            frame = ImageFrame(pages[0]["width"], pages[0]["height"])
        return OcrResponse(full, tokens, frame, self.name)


def build_ocr(settings: Settings, engine: Optional[str] = None) -> OcrEngine:
    engine = (engine or settings.ocr_engine or "tesseract").lower()
    if engine == "paddle":
        return PaddleOcr(lang=settings.paddle_lang)
    if engine == "vision":
        return VisionApiOcr(settings.vision_api_key, timeout=settings.http_timeout)
    if engine == "tesseract":
        return TesseractOcr(lang=settings.ocr_lang, min_conf=settings.ocr_min_conf)
    raise ValueError(f"unknown OCR engine: {engine}")
