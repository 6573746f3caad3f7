import base64
import binascii
import re
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

import requests

from src.shared import settings
from src.specs.common.errors import InputValidationError

DEFAULT_MIME_TYPE = "image/png"
FETCH_CHUNK_SIZE = 65536

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[\w.+-]+=[\w.+-]+)*);base64,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class InlineImage:
    """Base64 image payload tagged with its media type."""

    data: str
    mime_type: str

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


def encode_image(source: Union[bytes, bytearray, BinaryIO], mime_type: Optional[str]) -> InlineImage:
    """Read `source` fully and wrap it as an inline base64 payload.

    Errors raised by the read propagate unchanged.
    """
    if isinstance(source, (bytes, bytearray)):
        raw = bytes(source)
    else:
        raw = source.read()
    return InlineImage(
        data=base64.b64encode(raw).decode("ascii"),
        mime_type=mime_type or DEFAULT_MIME_TYPE,
    )


def to_data_uri(data: Union[bytes, str], mime_type: Optional[str]) -> str:
    # SDK parts usually carry raw bytes; some transports hand back base64 text
    if isinstance(data, (bytes, bytearray)):
        payload = base64.b64encode(bytes(data)).decode("ascii")
    else:
        payload = data
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{payload}"


def parse_data_uri(uri: str) -> InlineImage:
    match = _DATA_URI_RE.match((uri or "").strip())
    if not match:
        raise InputValidationError("Image must be a base64 data URI")
    payload = re.sub(r"\s+", "", match.group("data"))
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputValidationError("Image data is not valid base64") from exc
    return InlineImage(data=payload, mime_type=match.group("mime") or DEFAULT_MIME_TYPE)


def require_image_type(image: InlineImage) -> InlineImage:
    if not image.mime_type.startswith("image/"):
        raise InputValidationError(
            "Only image files can be uploaded",
            details={"mimeType": image.mime_type},
        )
    return image


def load_image_bytes(ref: str) -> InlineImage:
    """Resolve a data URI or an http(s) URL to an inline image."""
    ref = (ref or "").strip()
    if ref.startswith("data:"):
        return parse_data_uri(ref)
    if ref.startswith(("http://", "https://")):
        return _fetch_image(ref)
    raise InputValidationError("Image reference must be a data URI or an http(s) URL")


def _too_large(limit: int) -> InputValidationError:
    return InputValidationError("Image is too large", details={"maxBytes": limit})


def _fetch_image(url: str) -> InlineImage:
    limit = settings.max_fetch_bytes()
    with requests.get(url, timeout=settings.fetch_timeout(), stream=True) as r:
        r.raise_for_status()
        declared = r.headers.get("Content-Length", "")
        if declared.isdigit() and int(declared) > limit:
            raise _too_large(limit)
        buf = bytearray()
        for chunk in r.iter_content(chunk_size=FETCH_CHUNK_SIZE):
            buf.extend(chunk)
            if len(buf) > limit:
                raise _too_large(limit)
        content_type = r.headers.get("Content-Type", DEFAULT_MIME_TYPE).split(";")[0].strip()
    return encode_image(bytes(buf), content_type)
