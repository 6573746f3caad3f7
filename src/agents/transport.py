from __future__ import annotations

from typing import Any, Callable, List, Protocol

from google import genai
from google.genai import types


class GenerativeTransport(Protocol):
    """The one call both agents make against the generation service."""

    def generate_content(
        self,
        *,
        model: str,
        contents: List[types.Content],
        config: types.GenerateContentConfig,
    ) -> Any:
        ...


TransportFactory = Callable[[str], GenerativeTransport]


class GeminiTransport:
    """google-genai client bound to one api key."""

    def __init__(self, api_key: str) -> None:
        self._client = genai.Client(api_key=api_key)

    def generate_content(
        self,
        *,
        model: str,
        contents: List[types.Content],
        config: types.GenerateContentConfig,
    ) -> Any:
        return self._client.models.generate_content(
            model=model,
            contents=contents,
            config=config,
        )


def gemini_transport(api_key: str) -> GenerativeTransport:
    return GeminiTransport(api_key)


__all__ = ["GenerativeTransport", "TransportFactory", "GeminiTransport", "gemini_transport"]
