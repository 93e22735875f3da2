"""
Provider-neutral contract for image edits.

Route code only sees `ImageEditProvider`, `GenerationResult` and
`ProviderError`; the vendor SDKs and their error shapes stay inside the
adapter modules.
"""
import enum
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "Act as a professional photo editor. Apply the user's instruction to the attached photo "
    "and return the edited photo as an image. Preserve the subject's identity, pose and the "
    "overall composition unless the instruction explicitly asks to change them. "
    "Keep the result photorealistic, well lit and high resolution."
)


class ProviderErrorKind(str, enum.Enum):
    BAD_INPUT = "bad_input"
    SAFETY = "safety"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    NO_IMAGE = "no_image"
    UNKNOWN = "unknown"


# kind -> (HTTP status, user facing message)
ERROR_RESPONSES = {
    ProviderErrorKind.BAD_INPUT: (400, "The AI rejected the request. The image might be unclear or in an unsupported format."),
    ProviderErrorKind.SAFETY: (400, "Request blocked by safety filters. Please try a different image or instruction."),
    ProviderErrorKind.AUTH: (500, "Server configuration error: the AI service rejected our credentials."),
    ProviderErrorKind.RATE_LIMITED: (429, "Too many requests. Please wait a moment and try again."),
    ProviderErrorKind.UNAVAILABLE: (503, "AI service is currently busy. Please try again in a few seconds."),
    ProviderErrorKind.TIMEOUT: (504, "The AI service took too long to respond. Please try again."),
    ProviderErrorKind.NO_IMAGE: (502, "The AI did not return an edited image. Please try a different instruction."),
    ProviderErrorKind.UNKNOWN: (500, "Generation Failed. Please try again."),
}


def kind_for_status(status_code: int | None) -> ProviderErrorKind:
    if status_code is None:
        return ProviderErrorKind.UNKNOWN
    if status_code in (400, 413, 415, 422):
        return ProviderErrorKind.BAD_INPUT
    if status_code in (401, 403):
        return ProviderErrorKind.AUTH
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status_code in (408, 504):
        return ProviderErrorKind.TIMEOUT
    if status_code in (500, 502, 503):
        return ProviderErrorKind.UNAVAILABLE
    return ProviderErrorKind.UNKNOWN


class ProviderError(Exception):
    def __init__(self, kind: ProviderErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail

    @property
    def status_code(self) -> int:
        return ERROR_RESPONSES[self.kind][0]

    @property
    def user_message(self) -> str:
        return ERROR_RESPONSES[self.kind][1]


@dataclass
class GenerationResult:
    image_base64: str
    mime_type: str
    text: str = ""


class ImageEditProvider:
    name = "base"

    def edit_image(self, image_bytes: bytes, mime_type: str, instruction: str) -> GenerationResult:
        raise NotImplementedError

    @staticmethod
    def build_prompt(instruction: str) -> str:
        return f"{SYSTEM_INSTRUCTION}\n\nInstruction: {instruction.strip()}"


def build_provider(settings) -> ImageEditProvider | None:
    """Instantiate the configured provider, or None when its key is missing."""
    provider = (settings.AI_PROVIDER or "gemini").lower()

    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            logger.error("OPENAI_API_KEY is not configured")
            return None
        from imagery.services.openai_provider import OpenAIImageProvider
        return OpenAIImageProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_IMAGE_MODEL,
            timeout=settings.AI_TIMEOUT_SECONDS,
        )

    if provider == "gemini":
        if not settings.GEMINI_API_KEY:
            logger.error("GEMINI_API_KEY is not configured")
            return None
        from imagery.services.gemini_provider import GeminiImageProvider
        return GeminiImageProvider(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            timeout=settings.AI_TIMEOUT_SECONDS,
        )

    raise ValueError(f"Unknown AI_PROVIDER: {settings.AI_PROVIDER}")
