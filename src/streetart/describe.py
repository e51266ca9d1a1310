"""Generative image description service.

The application only depends on :class:`DescriptionService`. The
production implementation calls the Generative Language REST API with the
spot's cover image and a fixed instruction.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from streetart._redact import redact_for_log
from streetart.config import StreetArtConfig
from streetart.exceptions import DescriptionServiceError, StreetArtConfigError
from streetart.images import split_data_url

_logger = logging.getLogger(__name__)


class DescriptionService(Protocol):
    """Describes one encoded image; raises :class:`DescriptionServiceError` on failure."""

    async def describe(self, image_data_url: str) -> str: ...


def build_generate_request(image_data_url: str, prompt: str) -> dict[str, Any]:
    """Build a ``generateContent`` body with the image inline plus the prompt."""
    try:
        mime_type, payload = split_data_url(image_data_url)
    except ValueError as exc:
        raise DescriptionServiceError(f"Cover image is not an encoded image: {exc}") from exc
    return {
        "contents": [
            {
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": payload}},
                    {"text": prompt},
                ]
            }
        ]
    }


def parse_generate_response(body: Any) -> str:
    """Concatenate the text parts of the first candidate.

    Raises :class:`DescriptionServiceError` when the response carries no text.
    """
    if not isinstance(body, dict):
        raise DescriptionServiceError("Description response is not a JSON object")

    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = body.get("promptFeedback")
        raise DescriptionServiceError(f"Description response has no candidates: {redact_for_log(feedback)}")

    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise DescriptionServiceError("Description response has no content parts")

    text = "".join(part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str))
    text = text.strip()
    if not text:
        raise DescriptionServiceError("Description response text is empty")
    return text


class GeminiDescriptionService:
    """:class:`DescriptionService` backed by the Generative Language API."""

    def __init__(self, config: StreetArtConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    @property
    def endpoint(self) -> str:
        base = self._config.gemini_base_url.rstrip("/")
        return f"{base}/v1beta/models/{self._config.gemini_model}:generateContent"

    async def describe(self, image_data_url: str) -> str:
        if not self._config.api_key:
            raise StreetArtConfigError("An API key is required for image descriptions")

        body = build_generate_request(image_data_url, self._config.description_prompt)
        headers = {
            "content-type": "application/json",
            "x-goog-api-key": self._config.api_key,
        }
        url = self.endpoint
        timeout = aiohttp.ClientTimeout(total=self._config.describe_timeout)

        _logger.debug("POST %s %s", url, redact_for_log(body))

        try:
            async with self._http.post(url, json=body, headers=headers, timeout=timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise DescriptionServiceError(
                        f"HTTP {resp.status} from description service: {text[:200]}",
                        status_code=resp.status,
                    )
        except DescriptionServiceError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise DescriptionServiceError(f"Description request failed: {exc}") from exc

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DescriptionServiceError(f"Invalid JSON from description service: {text[:200]}") from exc

        return parse_generate_response(payload)
