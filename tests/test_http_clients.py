"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import pytest

from meal_insights.adapters.image_client import HttpxImageClient
from meal_insights.adapters.openai_meal_analyzer import (
    OpenAIMealAnalyzer,
    build_prompt,
    detect_mime_type,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n-rest"


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str) -> None:
        self.responses = _FakeResponses(output_text)


def test_openai_meal_analyzer_parses_output() -> None:
    fake = _FakeOpenAI(json.dumps({"name": "Soup", "calories": 180}))
    analyzer = OpenAIMealAnalyzer(client=fake, model="gpt-5.2")

    result = asyncio.run(analyzer.analyze(PNG_BYTES, "english", hint_text="tomato"))

    assert result == {"name": "Soup", "calories": 180}
    payload = fake.responses.last_payload
    assert payload["model"] == "gpt-5.2"
    assert payload["store"] is False
    assert payload["text"]["format"]["name"] == "meal_analysis"
    content = payload["input"][0]["content"]
    assert "tomato" in content[0]["text"]
    assert content[1]["image_url"].startswith("data:image/png;base64,")


def test_openai_meal_analyzer_rejects_empty_output() -> None:
    analyzer = OpenAIMealAnalyzer(client=_FakeOpenAI(""), model="gpt-5.2")

    with pytest.raises(RuntimeError):
        asyncio.run(analyzer.analyze(PNG_BYTES, "english"))


def test_build_prompt_lists_edited_ingredients() -> None:
    prompt = build_prompt("spanish", None, [{"name": "rice"}, {"name": "beans"}, {}])

    assert "spanish" in prompt
    assert "rice, beans" in prompt
    assert "correction" not in prompt


def test_detect_mime_type() -> None:
    assert detect_mime_type(PNG_BYTES) == "image/png"
    assert detect_mime_type(b"\xff\xd8\xff\xe0") == "image/jpeg"
    assert detect_mime_type(b"RIFF\x00\x00\x00\x00WEBPVP8") == "image/webp"
    assert detect_mime_type(b"unknown") == "image/jpeg"


def test_image_client_downloads_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/meal.jpg"
        return httpx.Response(200, content=b"image-bytes")

    transport = httpx.MockTransport(handler)
    client = HttpxImageClient(http_client=httpx.AsyncClient(transport=transport))

    data = asyncio.run(client.download("https://cdn.test/meal.jpg"))

    assert data == b"image-bytes"


def test_image_client_raises_for_missing_image() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    transport = httpx.MockTransport(handler)
    client = HttpxImageClient(http_client=httpx.AsyncClient(transport=transport))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.download("https://cdn.test/missing.jpg"))
