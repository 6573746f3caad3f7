import json
import re

import pytest
from google.genai import types

from conftest import FakeTransport, TransportFactory, text_response
from src.agents.copywriter_agent import (
    GENERATION_FAILED_MESSAGE,
    ContentGenerationClient,
    build_listing_schema,
)
from src.media.image_encoding import encode_image
from src.specs.common.errors import ConfigurationError, ContentGenerationError, InputValidationError
from src.specs.models.listing import ProductListing

NAIRA_PRICE = re.compile(r"₦[\d,]+")


def test_text_only_listing(api_key, text_transport: FakeTransport) -> None:
    factory = TransportFactory(text_transport)
    listing = ContentGenerationClient(factory).generate(None, "Blue kaftan for men, size L")

    assert isinstance(listing, ProductListing)
    assert listing.productName == "Blue Ankara Kaftan"
    assert NAIRA_PRICE.search(listing.suggestedPrice)
    assert "blue kaftan" in listing.seoKeywords
    assert factory.keys == ["test-key"]
    assert len(text_transport.calls) == 1
    assert 'User provided context: "Blue kaftan for men, size L"' in text_transport.prompt()
    assert text_transport.inline_parts() == []


def test_request_is_schema_constrained(api_key, text_transport: FakeTransport, monkeypatch) -> None:
    monkeypatch.setenv("MERCHANTAI_TEXT_MODEL", "gemini-test-model")
    ContentGenerationClient(TransportFactory(text_transport)).generate(None, "red sneakers")

    call = text_transport.calls[0]
    assert call["model"] == "gemini-test-model"
    config = call["config"]
    assert config.response_mime_type == "application/json"
    assert "Naira" in str(config.system_instruction)
    assert config.response_schema.required == list(ProductListing.model_fields)


def test_image_part_follows_prompt(api_key, text_transport: FakeTransport, png_factory) -> None:
    image = encode_image(png_factory(), "image/png")
    ContentGenerationClient(TransportFactory(text_transport)).generate(image, None)

    parts = text_transport.parts()
    assert len(parts) == 2
    assert parts[0].text and "User provided context" not in parts[0].text
    assert parts[1].inline_data.mime_type == "image/png"
    assert parts[1].inline_data.data == image.raw_bytes()


def test_blank_input_makes_no_call(api_key) -> None:
    transport = FakeTransport()
    with pytest.raises(InputValidationError):
        ContentGenerationClient(TransportFactory(transport)).generate(None, "   ")
    assert transport.calls == []


def test_missing_credential_makes_no_call(no_api_key) -> None:
    transport = FakeTransport()
    factory = TransportFactory(transport)
    with pytest.raises(ConfigurationError) as info:
        ContentGenerationClient(factory).generate(None, "blue kaftan")
    assert str(info.value) == "API Key is missing. Please check your environment variables."
    assert factory.keys == []
    assert transport.calls == []


def test_credential_is_checked_before_input(no_api_key) -> None:
    transport = FakeTransport()
    with pytest.raises(ConfigurationError):
        ContentGenerationClient(TransportFactory(transport)).generate(None, "")
    assert transport.calls == []


def test_legacy_key_variable_is_honoured(monkeypatch, text_transport: FakeTransport) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "  legacy-key ")
    factory = TransportFactory(text_transport)
    ContentGenerationClient(factory).generate(None, "blue kaftan")
    assert factory.keys == ["legacy-key"]


@pytest.mark.parametrize(
    "body",
    [
        None,
        "",
        "not json at all",
        json.dumps({"productName": "Only a name"}),
    ],
)
def test_bad_responses_become_generic_failure(api_key, body) -> None:
    transport = FakeTransport()
    transport.responses = [text_response(body)]
    with pytest.raises(ContentGenerationError) as info:
        ContentGenerationClient(TransportFactory(transport)).generate(None, "blue kaftan")
    assert str(info.value) == GENERATION_FAILED_MESSAGE
    assert info.value.__cause__ is not None


def test_wrong_array_type_is_rejected(api_key, listing_payload) -> None:
    listing_payload["hashtags"] = "#Kaftan #AnkaraStyle"
    transport = FakeTransport()
    transport.responses = [text_response(json.dumps(listing_payload))]
    with pytest.raises(ContentGenerationError):
        ContentGenerationClient(TransportFactory(transport)).generate(None, "blue kaftan")


def test_transport_error_is_chained(api_key) -> None:
    transport = FakeTransport()
    transport.error = RuntimeError("quota exceeded")
    with pytest.raises(ContentGenerationError) as info:
        ContentGenerationClient(TransportFactory(transport)).generate(None, "blue kaftan")
    assert str(info.value) == GENERATION_FAILED_MESSAGE
    assert isinstance(info.value.__cause__, RuntimeError)
    assert len(transport.calls) == 1


def test_schema_lists_every_field() -> None:
    schema = build_listing_schema()
    assert schema.type == types.Type.OBJECT
    assert len(schema.required) == 8
    assert set(schema.properties) == set(schema.required)
    for name in ("seoKeywords", "hashtags"):
        assert schema.properties[name].type == types.Type.ARRAY
        assert schema.properties[name].items.type == types.Type.STRING
    assert schema.properties["suggestedPrice"].type == types.Type.STRING
    assert "Naira" in schema.properties["suggestedPrice"].description
