# nutriscan/extractors/generative.py
from __future__ import annotations
from typing import Optional, Protocol, Sequence

from google import genai
from google.genai import types

from ..config import Settings
from .errors import GenerationUnavailable
from .io_image import ImagePayload

NUTRITION_PROMPT = """이 영양성분표에서 다음 정보를 JSON 형식으로 추출하라:
{
  "protein": "단백질 수치 (g)",
  "sugar": "당류 수치 (g)",
  "fat": "지방 수치 (g)",
  "carb": "탄수화물 수치 (g)",
  "calorie": "칼로리 수치 (kcal)",
  "gram": "1회 제공량 (g)"
}
표에 없는 값은 지어내지 말고 빈 문자열("")로 반환하라."""

LISTING_PROMPT = """이 이미지들은 이커머스 쇼핑몰의 상품 리스트 화면입니다.
이미지 내에 보이는 '모든' 상품 카드를 위에서 아래까지 하나도 빠짐없이 각각 추출하세요.

- brand: 상품명 앞의 브랜드명 (없으면 빈 문자열)
- name: 가장 크고 굵은 글씨의 상품명
- flavor: 상품명 근처의 맛 정보 (명시된 경우만)
- weight: kg, g, lb 단위의 용량 (예: "2.27kg", "907g")
- category_large: 단백질 보충제, 운동보조제, 단백질 드링크, 단백질 간식, 영양제, 닭가슴살 중 하나
- category_small: 소분류 (예: WPC, WPI, 프로틴바)

가격, 배송일, 리뷰 수, 별점은 무시하세요.
다음 형식의 JSON 배열로 응답하세요 (반드시 배열 형태):
[
  {"brand": "", "name": "", "flavor": "", "weight": "", "category_large": "", "category_small": ""}
]"""


PRODUCT_INFO_PROMPT = """이 이미지에서 다음 정보만 추출하라:

1. 상품제목 (name): 이미지에 보이는 제품명을 정확히 추출하라. 브랜드명이 포함되어 있으면 함께 포함하라.
2. 리뷰수 (reviewCount): "리뷰 1,234개", "Review 1,234", "리뷰수 1234" 등의 형식에서 숫자만 추출하라 (쉼표 제거). 리뷰수가 없으면 빈 문자열("")로 반환하라.

다음 JSON 형식으로 응답하라:
{
  "name": "상품제목 (한국어로 번역, 없으면 영어 그대로)",
  "reviewCount": "리뷰수 (숫자만, 쉼표 제거, 없으면 빈 문자열)"
}"""


class GenerativeModel(Protocol):
    name: str

    def generate(self, prompt: str, images: Sequence[ImagePayload]) -> str: ...


class GeminiModel:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        temperature: float = 0.0,
        timeout: float = 30.0,
        client: Optional[genai.Client] = None,
    ):
        self.api_key = api_key
        self.name = model
        self.temperature = temperature
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise GenerationUnavailable("GEMINI_API_KEY not set")
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        return self._client

    def generate(self, prompt: str, images: Sequence[ImagePayload]) -> str:
        client = self._get_client()
        # résolution d'origine conservée, une seule requête pour toutes les images
        parts = [types.Part.from_bytes(data=img.data, mime_type=img.mime_type) for img in images]
        try:
            resp = client.models.generate_content(
                model=self.name,
                contents=[prompt, *parts],
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            raise GenerationUnavailable(f"gemini_error:{type(e).__name__}:{e}") from e
        text = resp.text or ""
        if not text.strip():
            raise GenerationUnavailable("gemini returned no text")
        return text


def build_generative(settings: Settings) -> GenerativeModel:
    return GeminiModel(
        settings.gemini_api_key,
        model=settings.gemini_model,
        temperature=settings.gemini_temperature,
        timeout=settings.http_timeout,
    )
