"""OpenAI Responses API client for meal nutrient estimation."""

import base64
import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from meal_insights.services.analysis import ANALYSIS_SCHEMA, MealAnalyzer


@dataclass
class OpenAIMealAnalyzer(MealAnalyzer):
    """Meal analyzer backed by OpenAI Responses API structured outputs."""

    client: AsyncOpenAI
    model: str
    store: bool = False

    @classmethod
    def create(
        cls, api_key: str, model: str, store: bool = False
    ) -> "OpenAIMealAnalyzer":
        """Create an OpenAI meal analyzer."""
        return cls(client=AsyncOpenAI(api_key=api_key), model=model, store=store)

    async def analyze(
        self,
        image_bytes: bytes,
        language: str,
        hint_text: str | None = None,
        hint_ingredients: list[dict[str, object]] | None = None,
    ) -> dict[str, object]:
        """Estimate the meal's nutrients from a photo."""
        prompt = build_prompt(language, hint_text, hint_ingredients)
        request_payload: dict[str, object] = {
            "model": self.model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": to_data_url(image_bytes)},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "meal_analysis",
                    "strict": True,
                    "schema": ANALYSIS_SCHEMA,
                }
            },
            "store": self.store,
        }
        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return json.loads(output_text)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()


def build_prompt(
    language: str,
    hint_text: str | None,
    hint_ingredients: list[dict[str, object]] | None,
) -> str:
    """Compose the estimation prompt, including user corrections if any."""
    parts = [
        "Identify the meal in the image and estimate its nutrition. "
        "Return the meal name, total calories, macronutrients in grams, "
        "sodium and cholesterol in milligrams, a confidence from 0 to 100 "
        "and each visible ingredient with its own estimates. "
        f"Write names and notes in {language}."
    ]
    if hint_text:
        parts.append(f"The user added this correction: {hint_text}")
    if hint_ingredients:
        names = ", ".join(
            str(item.get("name")) for item in hint_ingredients if item.get("name")
        )
        if names:
            parts.append(
                f"Please re-analyze considering these ingredients: {names}. "
                "Provide updated nutritional information."
            )
    return "\n".join(parts)


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
