import base64
import io
from typing import List, Optional, Sequence

import pytest
from PIL import Image

from nutriscan.config import Settings
from nutriscan.extractors.errors import GenerationUnavailable, OcrUnavailable
from nutriscan.extractors.ocr import OcrResponse
from nutriscan.extractors.records import PositionedToken


def box(x0, y0, x1, y1):
    return ((x0, y0), (x1, y0), (x1, y1), (x0, y1))


class FakeOcr:
    name = "fake-ocr"

    def __init__(self, response: Optional[OcrResponse] = None, error: Optional[str] = None):
        self.response = response
        self.error = error
        self.calls = 0

    def recognize(self, image):
        self.calls += 1
        if self.error:
            raise OcrUnavailable(self.error)
        return self.response


class FakeGenerative:
    name = "fake-gemini"

    def __init__(self, text: str = "{}", error: Optional[str] = None):
        self.text = text
        self.error = error
        self.calls: List[tuple] = []

    def generate(self, prompt: str, images: Sequence) -> str:
        self.calls.append((prompt, list(images)))
        if self.error:
            raise GenerationUnavailable(self.error)
        return self.text


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, params=None, json=None, timeout=None):
        self.requests.append({"url": url, "params": params, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (320, 240), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_data_url(png_bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def label_response() -> OcrResponse:
    tokens = [
        PositionedToken("Protein:", box(10, 10, 90, 30), 0),
        PositionedToken("23.5g", box(100, 10, 150, 30), 1),
        PositionedToken("Sugar", box(10, 40, 70, 60), 2),
        PositionedToken("4g", box(80, 40, 100, 60), 3),
    ]
    return OcrResponse("Protein: 23.5g  Sugar 4g", tokens, None, "fake-ocr")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(record_store_path=tmp_path / "db.json", log_level="WARNING")
