# nutriscan/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

OCR_ENGINES = ("tesseract", "paddle", "vision")


def _get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _get_int(key: str, default: int) -> int:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} must be an integer") from exc


def _get_float(key: str, default: float) -> float:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} must be a number") from exc


@dataclass
class Settings:
    ocr_engine: str = "tesseract"
    ocr_lang: str = "kor+eng"
    paddle_lang: str = "korean"
    ocr_min_conf: int = 30
    vision_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_temperature: float = 0.0
    http_timeout: float = 30.0
    record_store_path: Path = Path("data/db.json")
    log_level: str = "INFO"
    max_upload_mb: int = 16


def load_settings(dotenv: bool = True) -> Settings:
    if dotenv:
        load_dotenv()

    engine = (_get_env("OCR_ENGINE", "tesseract") or "tesseract").lower()
    if engine not in OCR_ENGINES:
        raise ValueError(f"OCR_ENGINE must be one of {', '.join(OCR_ENGINES)}")

    return Settings(
        ocr_engine=engine,
        ocr_lang=_get_env("OCR_LANG", "kor+eng"),
        paddle_lang=_get_env("PADDLE_LANG", "korean"),
        ocr_min_conf=_get_int("OCR_MIN_CONF", 30),
        vision_api_key=_get_env("GOOGLE_VISION_API_KEY"),
        gemini_api_key=_get_env("GEMINI_API_KEY"),
        gemini_model=_get_env("GEMINI_MODEL_NAME", "gemini-2.5-flash"),
        gemini_temperature=_get_float("GEMINI_TEMPERATURE", 0.0),
        http_timeout=max(1.0, _get_float("HTTP_TIMEOUT_SECONDS", 30.0)),
        record_store_path=Path(_get_env("RECORD_STORE_PATH", "data/db.json")),
        log_level=(_get_env("LOG_LEVEL", "INFO") or "INFO").upper(),
        max_upload_mb=max(1, _get_int("MAX_UPLOAD_MB", 16)),
    )
