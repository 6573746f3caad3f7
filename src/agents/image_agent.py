from __future__ import annotations

from typing import Any, List, Optional

from google.genai import types

from src.agents.base import Agent
from src.agents.listing_instructions import build_lifestyle_prompt
from src.agents.transport import TransportFactory
from src.media.image_encoding import DEFAULT_MIME_TYPE, InlineImage, to_data_uri
from src.shared import settings
from src.shared.logging_utils import error as log_error, info as log_info
from src.specs.common.errors import MediaGenerationError

IMAGE_FAILED_MESSAGE = "Failed to generate lifestyle image."
NO_IMAGE_MESSAGE = "No image generated by the model."


def build_lifestyle_parts(
    original_image: Optional[InlineImage],
    product_name: str,
    description: str,
    edit_instruction: str = "",
) -> List[types.Part]:
    parts: List[types.Part] = []
    # Reference photo goes ahead of the prompt text
    if original_image is not None:
        parts.append(types.Part.from_bytes(data=original_image.raw_bytes(), mime_type=original_image.mime_type))
    prompt = build_lifestyle_prompt(
        product_name,
        description,
        edit_instruction,
        has_reference_image=original_image is not None,
    )
    parts.append(types.Part.from_text(text=prompt))
    return parts


def first_inline_image(response: Any) -> Optional[str]:
    """Return the first inline image part of the first candidate as a data URI."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None) if inline is not None else None
        if data:
            return to_data_uri(data, getattr(inline, "mime_type", None) or DEFAULT_MIME_TYPE)
    return None


class ImageGenerationClient(Agent):
    """Lifestyle-photo agent.

    Edits are plain prompt concatenation: callers re-invoke with the original
    product photo and a new instruction, never with the previously generated
    image.
    """

    missing_key_message = "API Key is missing."

    def __init__(self, transport_factory: TransportFactory | None = None, *, model: Optional[str] = None) -> None:
        super().__init__(transport_factory)
        self._model = model

    def generate_image(
        self,
        original_image: Optional[InlineImage],
        product_name: str,
        description: str,
        edit_instruction: str = "",
    ) -> str:
        transport = self._open_transport()
        edit_instruction = (edit_instruction or "").strip()
        model = self._model or settings.image_model()
        contents = [
            types.Content(
                role="user",
                parts=build_lifestyle_parts(original_image, product_name, description, edit_instruction),
            )
        ]
        # No response schema: the reply carries binary image parts
        config = types.GenerateContentConfig()

        log_info(
            self._trace_id,
            "image:request",
            model=model,
            hasReference=original_image is not None,
            isEdit=bool(edit_instruction),
        )
        try:
            response = transport.generate_content(model=model, contents=contents, config=config)
        except Exception as exc:
            log_error(self._trace_id, "image:service_error", exc_info=True, error=str(exc))
            raise MediaGenerationError(IMAGE_FAILED_MESSAGE) from exc

        data_uri = first_inline_image(response)
        if data_uri is None:
            log_error(self._trace_id, "image:no_inline_data")
            raise MediaGenerationError(NO_IMAGE_MESSAGE)
        log_info(self._trace_id, "image:completed")
        return data_uri

    def run(
        self,
        original_image: Optional[InlineImage] = None,
        product_name: str = "",
        description: str = "",
        edit_instruction: str = "",
    ) -> str:
        return self.generate_image(original_image, product_name, description, edit_instruction)


__all__ = ["ImageGenerationClient", "build_lifestyle_parts", "first_inline_image"]
