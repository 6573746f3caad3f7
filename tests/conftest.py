from __future__ import annotations

import io
import json
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from PIL import Image

from src.shared.state import SessionStore


LISTING = {
    "productName": "Blue Ankara Kaftan",
    "shortDescription": "A flowing blue kaftan in classic Ankara print. Light, breathable and made for Lagos heat.",
    "longDescription": "Cut from soft cotton Ankara fabric, this kaftan pairs bold prints with a relaxed fit.",
    "suggestedPrice": "₦15,000 - ₦20,000",
    "seoKeywords": ["blue kaftan", "ankara kaftan", "men's kaftan", "native wear"],
    "hashtags": ["#Kaftan", "#AnkaraStyle", "#NaijaFashion"],
    "socialMediaPost": "Step out in style ✨ Our Blue Ankara Kaftan is here!",
    "targetAudience": "Fashion-conscious Nigerian men aged 20-45.",
}


class FakeTransport:
    """Records generate_content calls and replays canned responses."""

    def __init__(self) -> None:
        self.calls: List[dict] = []
        self.responses: List[Any] = []
        self.error: Exception | None = None

    def generate_content(self, *, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    # helpers for assertions
    def parts(self, call: int = -1) -> list:
        return list(self.calls[call]["contents"][0].parts)

    def prompt(self, call: int = -1) -> str:
        return "\n".join(p.text for p in self.parts(call) if getattr(p, "text", None))

    def inline_parts(self, call: int = -1) -> list:
        return [p for p in self.parts(call) if getattr(p, "inline_data", None) is not None]


class TransportFactory:
    def __init__(self, transport: FakeTransport) -> None:
        self.transport = transport
        self.keys: List[str] = []

    def __call__(self, api_key: str) -> FakeTransport:
        self.keys.append(api_key)
        return self.transport


def text_response(body: str | None) -> SimpleNamespace:
    return SimpleNamespace(text=body)


def image_response(*parts: SimpleNamespace) -> SimpleNamespace:
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def inline_part(data: bytes, mime_type: str | None = "image/png") -> SimpleNamespace:
    return SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type))


def text_part(text: str) -> SimpleNamespace:
    return SimpleNamespace(text=text, inline_data=None)


def make_png(size=(100, 100), color=(30, 160, 90, 255), fmt: str = "PNG") -> bytes:
    mode = "RGBA" if fmt == "PNG" else "RGB"
    img = Image.new(mode, size, color if mode == "RGBA" else color[:3])
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def api_key(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("API_KEY", raising=False)
    return "test-key"


@pytest.fixture()
def no_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)


@pytest.fixture()
def listing_payload() -> dict:
    return dict(LISTING)


@pytest.fixture()
def text_transport(listing_payload: dict) -> FakeTransport:
    transport = FakeTransport()
    transport.responses = [text_response(json.dumps(listing_payload))]
    return transport


@pytest.fixture()
def image_transport() -> FakeTransport:
    transport = FakeTransport()
    transport.responses = [image_response(text_part("Here you go"), inline_part(make_png((640, 640))))]
    return transport


@pytest.fixture()
def png_factory() -> Callable[..., bytes]:
    return make_png


@pytest.fixture(autouse=True)
def _clear_sessions():
    SessionStore.clear()
    yield
    SessionStore.clear()
