import base64
import json
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

# Import from centralized config
from prendas.config import (
    EMBEDDING_DIMENSIONS,
    GEMINI_EMBEDDING_MODEL,
    GEMINI_IMAGE_MODEL,
    GEMINI_KEY,
    GEMINI_METADATA_MODEL,
    logger,
)
from prendas.core.errors import UpstreamServiceError
from prendas.core.image_ops import guess_mime_type
from prendas.core.ports import GenerativeImageService, MetadataService
from prendas.core.prompt_templates import build_metadata_prompt
from prendas.models import GarmentMetadata

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
GENERATION_TIMEOUT_SECONDS = 120.0
METADATA_TIMEOUT_SECONDS = 60.0

logger.info(f"Gemini module initialized with API key: {bool(GEMINI_KEY)}")


def _inline_image(image: bytes, mime_type: Optional[str] = None) -> Dict[str, Any]:
    return {
        "inline_data": {
            "mime_type": mime_type or guess_mime_type(image),
            "data": base64.b64encode(image).decode("utf-8"),
        }
    }


async def _post_gemini(
    url: str,
    payload: Dict[str, Any],
    api_key: Optional[str],
    timeout: float,
    service: str,
) -> Dict[str, Any]:
    """POST a JSON payload to the Gemini REST API and return the decoded body."""

    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["x-goog-api-key"] = api_key

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            api_result = response.json()
    except httpx.HTTPStatusError as exc:
        raise UpstreamServiceError(
            service,
            f"HTTP error: {exc.response.status_code} - {exc.response.text}",
            status_code=exc.response.status_code,
        ) from exc
    except httpx.RequestError as exc:
        raise UpstreamServiceError(service, f"Network error: {exc}") from exc

    if "error" in api_result:
        raise UpstreamServiceError(service, f"API error: {api_result['error']}")

    return api_result


def _candidate_parts(api_result: Dict[str, Any]) -> List[Dict[str, Any]]:
    candidates = api_result.get("candidates") or []
    if not candidates:
        return []
    return candidates[0].get("content", {}).get("parts", []) or []


def _extract_json(raw_text: str) -> Dict[str, Any]:
    """Parse a JSON object from the model's text output."""

    cleaned = raw_text.strip()

    # Remove markdown code block delimiters
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        if first_newline > 0:
            cleaned = cleaned[first_newline + 1 :]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        cleaned = cleaned.strip()

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error(f"Failed to parse JSON from metadata response. Raw text: {raw_text[:500]}")
        raise UpstreamServiceError(
            "gemini-metadata", f"Response was not valid JSON: {exc}"
        ) from exc


class GeminiImageService(GenerativeImageService):
    """Composites garments onto an anchor image with a Gemini image model."""

    def __init__(self, api_key: Optional[str] = GEMINI_KEY, model: str = GEMINI_IMAGE_MODEL):
        self.api_key = api_key
        self.model = model

    async def compose(
        self, anchor_image: bytes, garment_images: List[bytes], instruction: str
    ) -> Optional[bytes]:
        """
        Generate a try-on image.

        Args:
            anchor_image: Anchor (mannequin) image, sent as Image 1
            garment_images: Normalized garment images, in session order
            instruction: Natural-language compositing instruction

        Returns:
            bytes of the generated image, or None when the response holds no image

        Raises:
            UpstreamServiceError: If the API call fails
        """
        # Order: anchor image first, then garment images, then text prompt
        content_parts = [_inline_image(anchor_image, "image/png")]
        content_parts.extend(_inline_image(image, "image/png") for image in garment_images)
        content_parts.append({"text": instruction})

        payload = {
            "contents": [{"parts": content_parts}],
            "generationConfig": {
                "temperature": 0.2,
                "topP": 0.95,
                "responseModalities": ["TEXT", "IMAGE"],
            },
        }

        logger.info(
            f"Calling {self.model} with anchor and {len(garment_images)} garment image(s)"
        )
        api_result = await _post_gemini(
            f"{GEMINI_BASE_URL}/{self.model}:generateContent",
            payload,
            self.api_key,
            GENERATION_TIMEOUT_SECONDS,
            "gemini-image",
        )

        # Find the image in the response parts
        for part in _candidate_parts(api_result):
            # Check both camelCase and snake_case formats
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                return base64.b64decode(inline["data"])

        logger.warning(
            f"Gemini returned no image part: {json.dumps(api_result)[:1000]}"
        )
        return None


class GeminiMetadataService(MetadataService):
    """Extracts taxonomy metadata and text embeddings through Gemini."""

    def __init__(
        self,
        api_key: Optional[str] = GEMINI_KEY,
        model: str = GEMINI_METADATA_MODEL,
        embedding_model: str = GEMINI_EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
    ):
        self.api_key = api_key
        self.model = model
        self.embedding_model = embedding_model
        self.dimensions = dimensions

    async def extract(self, image: bytes) -> Dict[str, Any]:
        payload = {
            "contents": [
                {"parts": [{"text": build_metadata_prompt()}, _inline_image(image)]}
            ],
            "generationConfig": {
                "temperature": 0.1,
                "topP": 0.95,
                "responseMimeType": "application/json",
            },
        }

        api_result = await _post_gemini(
            f"{GEMINI_BASE_URL}/{self.model}:generateContent",
            payload,
            self.api_key,
            METADATA_TIMEOUT_SECONDS,
            "gemini-metadata",
        )

        text_output = "".join(
            part.get("text", "") for part in _candidate_parts(api_result)
        )
        if not text_output:
            raise UpstreamServiceError("gemini-metadata", "Response contained no text output")

        try:
            metadata = GarmentMetadata.model_validate(_extract_json(text_output))
        except PydanticValidationError as exc:
            raise UpstreamServiceError(
                "gemini-metadata", f"Metadata did not match the taxonomy: {exc}"
            ) from exc

        return metadata.model_dump()

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValueError("Cannot embed an empty description")

        payload = {
            "model": f"models/{self.embedding_model}",
            "content": {"parts": [{"text": text}]},
            "outputDimensionality": self.dimensions,
        }

        api_result = await _post_gemini(
            f"{GEMINI_BASE_URL}/{self.embedding_model}:embedContent",
            payload,
            self.api_key,
            METADATA_TIMEOUT_SECONDS,
            "gemini-embedding",
        )

        values = api_result.get("embedding", {}).get("values")
        if not values:
            raise UpstreamServiceError("gemini-embedding", "Response contained no embedding")
        return [float(value) for value in values]


__all__ = ["GeminiImageService", "GeminiMetadataService"]
