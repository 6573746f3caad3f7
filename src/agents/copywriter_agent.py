from __future__ import annotations

from typing import List, Optional

from google.genai import types
from pydantic import ValidationError

from src.agents.base import Agent
from src.agents.listing_instructions import COPYWRITER_SYSTEM_INSTRUCTION, build_copywriter_prompt
from src.agents.transport import TransportFactory
from src.media.image_encoding import InlineImage
from src.shared import settings
from src.shared.logging_utils import error as log_error, info as log_info
from src.specs.common.errors import ContentGenerationError, InputValidationError
from src.specs.models.listing import LISTING_FIELDS, ProductListing

GENERATION_FAILED_MESSAGE = "Failed to generate content. Please try again."
MISSING_INPUT_MESSAGE = "Please provide an image or text description."


def build_listing_schema() -> types.Schema:
    """Response schema requiring exactly the ProductListing fields."""
    properties = {}
    for field in LISTING_FIELDS:
        if field.kind == "array":
            properties[field.name] = types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(type=types.Type.STRING),
                description=field.description,
            )
        else:
            properties[field.name] = types.Schema(
                type=types.Type.STRING,
                description=field.description,
            )
    return types.Schema(
        type=types.Type.OBJECT,
        properties=properties,
        required=[field.name for field in LISTING_FIELDS],
    )


def build_listing_parts(image: Optional[InlineImage], text: Optional[str]) -> List[types.Part]:
    parts = [types.Part.from_text(text=build_copywriter_prompt(text))]
    if image is not None:
        parts.append(types.Part.from_bytes(data=image.raw_bytes(), mime_type=image.mime_type))
    return parts


class ContentGenerationClient(Agent):
    """Copywriter agent: one schema-constrained call per listing, no retries."""

    def __init__(self, transport_factory: TransportFactory | None = None, *, model: Optional[str] = None) -> None:
        super().__init__(transport_factory)
        self._model = model

    def generate(self, image: Optional[InlineImage], text: Optional[str]) -> ProductListing:
        transport = self._open_transport()
        text = (text or "").strip() or None
        if image is None and text is None:
            raise InputValidationError(MISSING_INPUT_MESSAGE)

        model = self._model or settings.text_model()
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=build_listing_schema(),
            system_instruction=COPYWRITER_SYSTEM_INSTRUCTION,
        )
        contents = [types.Content(role="user", parts=build_listing_parts(image, text))]

        log_info(self._trace_id, "copywriter:request", model=model, hasImage=image is not None, hasText=text is not None)
        try:
            response = transport.generate_content(model=model, contents=contents, config=config)
            body = getattr(response, "text", None)
            if not body:
                raise ValueError("No response generated")
            listing = ProductListing.model_validate_json(body)
        except (ValueError, ValidationError) as exc:
            log_error(self._trace_id, "copywriter:invalid_response", exc_info=True, error=str(exc))
            raise ContentGenerationError(GENERATION_FAILED_MESSAGE) from exc
        except Exception as exc:
            log_error(self._trace_id, "copywriter:service_error", exc_info=True, error=str(exc))
            raise ContentGenerationError(GENERATION_FAILED_MESSAGE) from exc

        log_info(self._trace_id, "copywriter:completed", productName=listing.productName)
        return listing

    def run(self, image: Optional[InlineImage] = None, text: Optional[str] = None) -> ProductListing:
        return self.generate(image, text)


__all__ = ["ContentGenerationClient", "build_listing_schema", "build_listing_parts"]
