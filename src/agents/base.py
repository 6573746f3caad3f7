from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.agents.transport import GenerativeTransport, TransportFactory, gemini_transport
from src.shared import settings
from src.specs.common.errors import ConfigurationError


class Agent(ABC):
    """Abstract base class for the generation agents.

    Provides a standard ``run`` interface, a ``trace_id`` used for logging,
    and credential resolution ahead of any network call.
    """

    missing_key_message = "API Key is missing. Please check your environment variables."

    def __init__(self, transport_factory: TransportFactory | None = None) -> None:
        self._trace_id: str | None = None
        self._transport_factory: TransportFactory = transport_factory or gemini_transport

    def with_trace(self, trace_id: str | None) -> "Agent":
        """Attach a trace id (the session id) for downstream logging."""

        self._trace_id = trace_id
        return self

    def _open_transport(self) -> GenerativeTransport:
        api_key = settings.get_api_key()
        if not api_key:
            raise ConfigurationError(
                self.missing_key_message,
                details={"env": settings.API_KEY_ENV},
            )
        return self._transport_factory(api_key)

    @abstractmethod
    def run(self, *args: Any, **kwargs: Any) -> Any:
        """Execute the agent and return its structured output."""


__all__ = ["Agent"]
