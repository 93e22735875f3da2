import base64
from types import SimpleNamespace

import httpx
import openai
import pytest
from google.genai import errors

from imagery.config.settings import Settings
from imagery.services.ai_provider import (
    ImageEditProvider,
    ProviderError,
    ProviderErrorKind,
    build_provider,
    kind_for_status,
)
from imagery.services.gemini_provider import GeminiImageProvider, parse_response
from imagery.services.openai_provider import OpenAIImageProvider, classify_error

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/images/edits")


def gemini_response(parts, finish_reason="STOP", block_reason=None):
    return SimpleNamespace(
        prompt_feedback=SimpleNamespace(block_reason=block_reason) if block_reason else None,
        candidates=[SimpleNamespace(finish_reason=finish_reason, content=SimpleNamespace(parts=parts))],
    )


def image_part(data=b"\x89PNG-edited", mime_type="image/png"):
    return SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type), text=None)


def text_part(text):
    return SimpleNamespace(inline_data=None, text=text)


def openai_status_error(cls, status_code, code=None):
    response = httpx.Response(status_code, request=OPENAI_REQUEST)
    body = {"message": "rejected", "code": code} if code else None
    return cls("rejected", response=response, body=body)


class TestGeminiResponseParsing:
    def test_image_and_text_parts(self):
        response = gemini_response([text_part("Here is your photo. "), image_part(), text_part("Enjoy!")])

        result = parse_response(response)

        assert base64.b64decode(result.image_base64) == b"\x89PNG-edited"
        assert result.mime_type == "image/png"
        assert result.text == "Here is your photo. Enjoy!"

    def test_first_image_wins(self):
        response = gemini_response([image_part(b"first"), image_part(b"second", "image/jpeg")])

        result = parse_response(response)

        assert base64.b64decode(result.image_base64) == b"first"

    def test_text_only_response_is_no_image(self):
        response = gemini_response([text_part("I cannot edit images of real people.")])

        with pytest.raises(ProviderError) as exc_info:
            parse_response(response)

        assert exc_info.value.kind == ProviderErrorKind.NO_IMAGE
        assert exc_info.value.status_code == 502

    def test_empty_candidates(self):
        with pytest.raises(ProviderError) as exc_info:
            parse_response(SimpleNamespace(prompt_feedback=None, candidates=[]))

        assert exc_info.value.kind == ProviderErrorKind.NO_IMAGE

    def test_blocked_prompt(self):
        response = gemini_response([], block_reason=SimpleNamespace(name="PROHIBITED_CONTENT"))

        with pytest.raises(ProviderError) as exc_info:
            parse_response(response)

        assert exc_info.value.kind == ProviderErrorKind.SAFETY

    def test_safety_finish_without_image(self):
        response = gemini_response([], finish_reason=SimpleNamespace(name="IMAGE_SAFETY"))

        with pytest.raises(ProviderError) as exc_info:
            parse_response(response)

        assert exc_info.value.kind == ProviderErrorKind.SAFETY
        assert exc_info.value.status_code == 400


class TestGeminiProvider:
    def make_provider(self, generate_content):
        provider = GeminiImageProvider(api_key="test-key", model="gemini-2.5-flash-image")
        provider.client = SimpleNamespace(models=SimpleNamespace(generate_content=generate_content))
        return provider

    def test_sends_image_and_instruction(self):
        captured = {}

        def generate_content(model, contents, config):
            captured.update(model=model, contents=contents)
            return gemini_response([image_part()])

        result = self.make_provider(generate_content).edit_image(b"\xff\xd8photo", "image/jpeg", "add a hat")

        assert captured["model"] == "gemini-2.5-flash-image"
        assert captured["contents"][0].inline_data.data == b"\xff\xd8photo"
        assert captured["contents"][0].inline_data.mime_type == "image/jpeg"
        assert captured["contents"][1].endswith("Instruction: add a hat")
        assert result.mime_type == "image/png"

    @pytest.mark.parametrize("code, kind", [
        (400, ProviderErrorKind.BAD_INPUT),
        (403, ProviderErrorKind.AUTH),
        (429, ProviderErrorKind.RATE_LIMITED),
        (503, ProviderErrorKind.UNAVAILABLE),
        (504, ProviderErrorKind.TIMEOUT),
    ])
    def test_api_errors_are_classified(self, code, kind):
        def generate_content(**kwargs):
            raise errors.APIError(code, {"error": {"code": code, "message": "upstream", "status": "ERROR"}})

        with pytest.raises(ProviderError) as exc_info:
            self.make_provider(generate_content).edit_image(b"img", "image/jpeg", "add a hat")

        assert exc_info.value.kind == kind

    def test_transport_timeout(self):
        def generate_content(**kwargs):
            raise httpx.ReadTimeout("timed out")

        with pytest.raises(ProviderError) as exc_info:
            self.make_provider(generate_content).edit_image(b"img", "image/jpeg", "add a hat")

        assert exc_info.value.kind == ProviderErrorKind.TIMEOUT

    def test_transport_failure(self):
        def generate_content(**kwargs):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(ProviderError) as exc_info:
            self.make_provider(generate_content).edit_image(b"img", "image/jpeg", "add a hat")

        assert exc_info.value.kind == ProviderErrorKind.UNAVAILABLE


class TestOpenAIProvider:
    @pytest.mark.parametrize("error, kind", [
        (openai.APITimeoutError(request=OPENAI_REQUEST), ProviderErrorKind.TIMEOUT),
        (openai.APIConnectionError(request=OPENAI_REQUEST), ProviderErrorKind.UNAVAILABLE),
        (openai_status_error(openai.RateLimitError, 429), ProviderErrorKind.RATE_LIMITED),
        (openai_status_error(openai.AuthenticationError, 401), ProviderErrorKind.AUTH),
        (openai_status_error(openai.BadRequestError, 400), ProviderErrorKind.BAD_INPUT),
        (openai_status_error(openai.BadRequestError, 400, "moderation_blocked"), ProviderErrorKind.SAFETY),
        (openai_status_error(openai.InternalServerError, 500), ProviderErrorKind.UNAVAILABLE),
    ])
    def test_classify_error(self, error, kind):
        assert classify_error(error) == kind

    def make_provider(self, edit):
        provider = OpenAIImageProvider(api_key="sk-test", model="gpt-image-1")
        provider.client = SimpleNamespace(images=SimpleNamespace(edit=edit))
        return provider

    def test_returns_b64_image(self):
        captured = {}

        def edit(model, image, prompt):
            captured.update(model=model, image=image, prompt=prompt)
            return SimpleNamespace(data=[SimpleNamespace(b64_json="aGVsbG8=", revised_prompt=None)])

        result = self.make_provider(edit).edit_image(b"\xff\xd8photo", "image/jpeg", "add a hat")

        assert captured["image"] == ("upload.jpg", b"\xff\xd8photo", "image/jpeg")
        assert captured["prompt"].endswith("Instruction: add a hat")
        assert result.image_base64 == "aGVsbG8="
        assert result.mime_type == "image/png"
        assert result.text == ""

    def test_empty_data_is_no_image(self):
        provider = self.make_provider(lambda **kwargs: SimpleNamespace(data=[]))

        with pytest.raises(ProviderError) as exc_info:
            provider.edit_image(b"img", "image/png", "add a hat")

        assert exc_info.value.kind == ProviderErrorKind.NO_IMAGE

    def test_sdk_error_is_wrapped(self):
        def edit(**kwargs):
            raise openai_status_error(openai.RateLimitError, 429)

        with pytest.raises(ProviderError) as exc_info:
            self.make_provider(edit).edit_image(b"img", "image/png", "add a hat")

        assert exc_info.value.kind == ProviderErrorKind.RATE_LIMITED
        assert exc_info.value.status_code == 429


@pytest.mark.parametrize("status_code, kind", [
    (None, ProviderErrorKind.UNKNOWN),
    (413, ProviderErrorKind.BAD_INPUT),
    (401, ProviderErrorKind.AUTH),
    (408, ProviderErrorKind.TIMEOUT),
    (502, ProviderErrorKind.UNAVAILABLE),
    (418, ProviderErrorKind.UNKNOWN),
])
def test_kind_for_status(status_code, kind):
    assert kind_for_status(status_code) == kind


def test_build_prompt_includes_instruction():
    prompt = ImageEditProvider.build_prompt("  remove the background  ")

    assert "professional photo editor" in prompt
    assert prompt.endswith("Instruction: remove the background")


class TestBuildProvider:
    def test_gemini_without_key(self):
        settings = Settings(DATABASE_URL="sqlite://", AI_PROVIDER="gemini", GEMINI_API_KEY=None)

        assert build_provider(settings) is None

    def test_openai(self):
        settings = Settings(DATABASE_URL="sqlite://", AI_PROVIDER="openai", OPENAI_API_KEY="sk-test")

        provider = build_provider(settings)

        assert isinstance(provider, OpenAIImageProvider)
        assert provider.model == "gpt-image-1"

    def test_gemini(self):
        settings = Settings(DATABASE_URL="sqlite://", AI_PROVIDER="Gemini", GEMINI_API_KEY="test-key")

        assert isinstance(build_provider(settings), GeminiImageProvider)

    def test_unknown_provider(self):
        settings = Settings(DATABASE_URL="sqlite://", AI_PROVIDER="midjourney")

        with pytest.raises(ValueError):
            build_provider(settings)
