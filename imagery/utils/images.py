import base64
import binascii
import re

DEFAULT_MIME_TYPE = "image/jpeg"

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,", re.IGNORECASE)


class InvalidImagePayload(ValueError):
    pass


def parse_image_payload(value: str) -> tuple[str, str]:
    """Split an uploaded image into (mime type, bare base64 data).

    Accepts either a data URI or plain base64. Plain base64 is assumed to be
    JPEG, which is what the web client sends after resizing.
    """
    value = value.strip()
    match = DATA_URI_PATTERN.match(value)
    if not match:
        if value.startswith("data:"):
            raise InvalidImagePayload("Malformed data URI.")
        return DEFAULT_MIME_TYPE, value

    mime_type = match.group("mime").lower()
    if not mime_type.startswith("image/"):
        raise InvalidImagePayload("Only image uploads are supported.")
    return mime_type, value[match.end():]


def decode_image_data(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImagePayload("Image data is not valid base64.")


def to_data_uri(mime_type: str, data: str) -> str:
    return f"data:{mime_type};base64,{data}"
