import base64

import httpx
from google import genai
from google.genai import errors, types

from imagery.services.ai_provider import (
    GenerationResult,
    ImageEditProvider,
    ProviderError,
    ProviderErrorKind,
    kind_for_status,
)
import logging

logger = logging.getLogger(__name__)

SAFETY_FINISH_REASONS = {
    "SAFETY",
    "IMAGE_SAFETY",
    "PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
    "RECITATION",
}


def _enum_name(value) -> str:
    return getattr(value, "name", None) or str(value or "")


def parse_response(response) -> GenerationResult:
    """Collect the first inline image and all text parts of a Gemini response."""
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None and getattr(feedback, "block_reason", None):
        raise ProviderError(ProviderErrorKind.SAFETY, f"prompt blocked: {_enum_name(feedback.block_reason)}")

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        raise ProviderError(ProviderErrorKind.NO_IMAGE, "empty response")

    candidate = candidates[0]
    finish_reason = _enum_name(getattr(candidate, "finish_reason", None))
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []

    image_data = None
    mime_type = None
    texts = []
    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        if inline_data is not None and getattr(inline_data, "data", None):
            if image_data is None:
                image_data = inline_data.data
                mime_type = inline_data.mime_type or "image/png"
        elif getattr(part, "text", None):
            texts.append(part.text)

    if image_data is None:
        if finish_reason in SAFETY_FINISH_REASONS:
            raise ProviderError(ProviderErrorKind.SAFETY, f"finish reason {finish_reason}")
        raise ProviderError(ProviderErrorKind.NO_IMAGE, "".join(texts)[:200])

    if isinstance(image_data, bytes):
        image_data = base64.b64encode(image_data).decode("ascii")

    return GenerationResult(image_base64=image_data, mime_type=mime_type, text="".join(texts).strip())


class GeminiImageProvider(ImageEditProvider):
    name = "gemini"

    def __init__(self, api_key: str, model: str, timeout: float = 60.0):
        self.model = model
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )

    def edit_image(self, image_bytes: bytes, mime_type: str, instruction: str) -> GenerationResult:
        contents = [
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            self.build_prompt(instruction),
        ]
        logger.info(f"Calling Gemini model {self.model}")
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            )
        except errors.APIError as e:
            logger.error(f"Gemini API error {e.code}: {e.message}")
            raise ProviderError(kind_for_status(e.code), str(e.message or e)) from e
        except httpx.TimeoutException as e:
            logger.error(f"Gemini request timed out: {str(e)}")
            raise ProviderError(ProviderErrorKind.TIMEOUT, str(e)) from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini transport error: {str(e)}")
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, str(e)) from e

        return parse_response(response)
