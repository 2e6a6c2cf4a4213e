# nutriscan/main.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.datastructures import FileStorage

from .config import Settings, load_settings
from .log import configure_logging, get_logger
from .extractors.errors import ExtractionError, InvalidInput
from .extractors.generative import GenerativeModel, build_generative
from .extractors.ocr import OcrEngine, build_ocr
from .extractors.orchestrator import extract, extract_batch, extract_product_info
from .extractors.records import ProductRecord
from .extractors.store import JsonRecordStore, RecordStore
from .extractors.summary import build_record, to_product_record

ALLOWED_EXTS = {".pdf", ".png", ".jpg", ".jpeg", ".webp"}
ENGINES = {"auto", "tesseract", "paddle", "vision"}

log = get_logger(__name__)


class UnsupportedType(ExtractionError):
    code = "unsupported_type"
    status = 415


def create_app(
    settings: Optional[Settings] = None,
    ocr: Optional[OcrEngine] = None,
    generative: Optional[GenerativeModel] = None,
    store: Optional[RecordStore] = None,
) -> Flask:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_mb * 1024 * 1024
    CORS(app)

    store = store or JsonRecordStore(settings.record_store_path)

    def _ocr_for_request() -> OcrEngine:
        engine = (request.args.get("engine") or "auto").lower()   # auto | tesseract | paddle | vision
        if engine not in ENGINES:
            raise InvalidInput(f"unknown engine: {engine}")
        if ocr is not None and engine == "auto":
            return ocr
        return build_ocr(settings, None if engine == "auto" else engine)

    def _generative() -> GenerativeModel:
        return generative or build_generative(settings)

    @app.get("/")
    def root():
        return jsonify({"ok": True, "service": "nutriscan", "path": "/"}), 200

    @app.get("/health")
    def health():
        return jsonify({"ok": True}), 200

    @app.get("/healthz")
    def healthz():
        return jsonify({"ok": True, "service": "nutriscan"}), 200

    @app.post("/extract")
    def api_extract():
        try:
            body = request.get_json(silent=True) or {}
            file = request.files.get("file")
            image = _read_upload(file) if file is not None else body.get("image")
            frame = body.get("frame")
            if frame is None and request.form.get("width") and request.form.get("height"):
                frame = {"width": request.form["width"], "height": request.form["height"]}

            result = extract(image, frame, ocr=_ocr_for_request(), generative=_generative(), settings=settings)
            record = build_record(result)

            name = body.get("name") or request.form.get("name")
            if name:
                saved = store.add(to_product_record(
                    result, name,
                    brand=body.get("brand") or request.form.get("brand"),
                    flavor=body.get("flavor") or request.form.get("flavor"),
                ))
                record["id"] = saved.id

            return jsonify({"ok": True, "result": result.to_dict(), "record": record})
        except ExtractionError as e:
            return _json_err(e.code, str(e), e.status)
        except Exception as e:
            log.exception("extract_failed")
            return _json_err("internal_error", str(e), 500)

    @app.post("/extract-product-info")
    def api_extract_product_info():
        try:
            body = request.get_json(silent=True) or {}
            file = request.files.get("file")
            image = _read_upload(file) if file is not None else body.get("image")

            info = extract_product_info(image, ocr=_ocr_for_request(), generative=_generative(), settings=settings)
            return jsonify({"ok": True, "result": info.to_dict()})
        except ExtractionError as e:
            return _json_err(e.code, str(e), e.status)
        except Exception as e:
            log.exception("extract_product_info_failed")
            return _json_err("internal_error", str(e), 500)

    @app.post("/extract-batch")
    def api_extract_batch():
        try:
            body = request.get_json(silent=True) or {}
            files = request.files.getlist("files")
            images: List[Any] = [_read_upload(f) for f in files] if files else list(body.get("images") or [])

            items = extract_batch(images, store.list(), generative=_generative(), settings=settings)
            return jsonify({"ok": True, "items": items, "count": len(items)})
        except ExtractionError as e:
            return _json_err(e.code, str(e), e.status)
        except Exception as e:
            log.exception("extract_batch_failed")
            return _json_err("internal_error", str(e), 500)

    @app.get("/products")
    def list_products():
        return jsonify([p.to_dict() for p in store.list()])

    @app.post("/products")
    def add_product():
        body: Dict[str, Any] = request.get_json(silent=True) or {}
        if not body.get("name"):
            return _json_err("invalid_input", "name is required", 400)
        try:
            record = store.add(ProductRecord.from_dict(body))
        except ExtractionError as e:
            log.error("add_product_failed", code=e.code, error=str(e))
            return _json_err(e.code, str(e), e.status)
        except Exception as e:
            log.exception("add_product_failed")
            return _json_err("internal_error", str(e), 500)
        return jsonify(record.to_dict()), 201

    return app


def _read_upload(file: FileStorage) -> bytes:
    if not file or not getattr(file, "filename", ""):
        raise InvalidInput("Aucun fichier reçu")
    ext = Path(file.filename).suffix.lower()
    if ext not in ALLOWED_EXTS:
        raise UnsupportedType(f"Extension non supportée: {ext}")
    return file.read()


def _json_err(code: str, msg: str, status: int):
    return jsonify({"ok": False, "error": {"code": code, "message": msg}}), status
