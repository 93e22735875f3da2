import openai
from openai import OpenAI

from imagery.services.ai_provider import (
    GenerationResult,
    ImageEditProvider,
    ProviderError,
    ProviderErrorKind,
    kind_for_status,
)
import logging

logger = logging.getLogger(__name__)

SAFETY_ERROR_CODES = {"moderation_blocked", "content_policy_violation"}

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def classify_error(error: Exception) -> ProviderErrorKind:
    # APITimeoutError subclasses APIConnectionError, so it goes first
    if isinstance(error, openai.APITimeoutError):
        return ProviderErrorKind.TIMEOUT
    if isinstance(error, openai.APIConnectionError):
        return ProviderErrorKind.UNAVAILABLE
    if isinstance(error, openai.APIStatusError):
        if getattr(error, "code", None) in SAFETY_ERROR_CODES:
            return ProviderErrorKind.SAFETY
        return kind_for_status(error.status_code)
    return ProviderErrorKind.UNKNOWN


class OpenAIImageProvider(ImageEditProvider):
    name = "openai"

    def __init__(self, api_key: str, model: str, timeout: float = 60.0):
        self.model = model
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def edit_image(self, image_bytes: bytes, mime_type: str, instruction: str) -> GenerationResult:
        filename = f"upload.{EXTENSIONS.get(mime_type, 'png')}"
        logger.info(f"Calling OpenAI image edit with model {self.model}")
        try:
            response = self.client.images.edit(
                model=self.model,
                image=(filename, image_bytes, mime_type),
                prompt=self.build_prompt(instruction),
            )
        except openai.OpenAIError as e:
            kind = classify_error(e)
            logger.error(f"OpenAI image edit failed ({kind.value}): {str(e)}")
            raise ProviderError(kind, str(e)) from e

        data = response.data or []
        if not data or not data[0].b64_json:
            raise ProviderError(ProviderErrorKind.NO_IMAGE, "no image data in response")

        return GenerationResult(
            image_base64=data[0].b64_json,
            mime_type="image/png",
            text=data[0].revised_prompt or "",
        )
