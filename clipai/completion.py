"""Async chat-completions client for an OpenAI-compatible endpoint."""

from __future__ import annotations

from collections.abc import Iterable
import logging
import time
from typing import Any

import httpx

from .content import ChatMessage
from .exceptions import InvalidResponseShape, TransportFailure
from .model_selector import ModelParameters

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class CompletionClient:
    """Send a full transcript to ``/chat/completions`` and return the reply text.

    The client never retries. Non-success statuses and network errors raise
    ``TransportFailure``; a success body without ``choices[0].message.content``
    as a string raises ``InvalidResponseShape``.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 120,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def set_credentials(self, api_key: str, base_url: str | None = None) -> None:
        """Update the bearer credential and, optionally, the endpoint base URL."""
        self.api_key = api_key.strip()
        if base_url and base_url.strip():
            self.base_url = base_url.strip().rstrip("/")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> CompletionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def build_payload(
        self, messages: Iterable[ChatMessage], params: ModelParameters
    ) -> dict[str, Any]:
        return {
            "model": params.model_name,
            "messages": [message.to_wire() for message in messages],
            "max_tokens": params.max_output_tokens,
            "temperature": params.temperature,
        }

    async def complete(
        self, messages: Iterable[ChatMessage], params: ModelParameters
    ) -> str:
        """Request a completion for ``messages`` and return the assistant text."""
        payload = self.build_payload(messages, params)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        started = time.monotonic()
        LOGGER.info(
            "completion.request.start",
            extra={
                "event": "completion.request.start",
                "model": params.model_name,
                "message_count": len(payload["messages"]),
                "max_tokens": params.max_output_tokens,
            },
        )

        try:
            response = await self._http.post(
                self.endpoint, json=payload, headers=headers, timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "completion.request.failed",
                extra={
                    "event": "completion.request.failed",
                    "model": params.model_name,
                    "reason": str(exc),
                },
            )
            raise TransportFailure(
                f"Unable to reach {self.base_url}: {exc}"
            ) from exc

        if not response.is_success:
            message = self._error_message(response)
            LOGGER.warning(
                "completion.request.failed",
                extra={
                    "event": "completion.request.failed",
                    "model": params.model_name,
                    "status": response.status_code,
                    "reason": message,
                },
            )
            raise TransportFailure(message, status_code=response.status_code)

        content = self._extract_content(response)
        LOGGER.info(
            "completion.request.complete",
            extra={
                "event": "completion.request.complete",
                "model": params.model_name,
                "elapsed_ms": int((time.monotonic() - started) * 1000),
                "chars": len(content),
            },
        )
        return content

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        fallback = f"HTTP {response.status_code}: {response.reason_phrase}"
        try:
            data = response.json()
        except ValueError:
            return fallback
        if not isinstance(data, dict):
            return fallback
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        return fallback

    @staticmethod
    def _extract_content(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError as exc:
            raise InvalidResponseShape(
                "Invalid response format from API", status_code=response.status_code
            ) from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise InvalidResponseShape(
                "Invalid response format from API", status_code=response.status_code
            )
        content = message.get("content")
        if not isinstance(content, str):
            raise InvalidResponseShape(
                "API response content is not a string", status_code=response.status_code
            )
        return content
