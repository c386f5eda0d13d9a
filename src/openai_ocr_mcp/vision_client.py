"""
Vision completion client: one chat-completions call per image.

Sends the image as a base64 data URL in the OpenAI vision message format
and returns the single completion text. There is no retry; any transport
failure or error payload surfaces as VisionServiceError.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from .config import Settings, mask_key, resolve_api_key, validate_api_key

logger = logging.getLogger(__name__)

NO_TEXT_EXTRACTED = "No text extracted"


class VisionServiceError(RuntimeError):
    """The completion service could not be reached or reported an error."""


def build_request(
    model: str,
    instruction: str,
    image_data_url: str,
    max_tokens: int,
) -> dict[str, Any]:
    """Chat-completions payload with one text part and one high-detail image part."""
    return {
        "model": model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": instruction},
                    {
                        "type": "image_url",
                        "image_url": {"url": image_data_url, "detail": "high"},
                    },
                ],
            }
        ],
        "max_tokens": max_tokens,
    }


def parse_completion(body: Any) -> str:
    """Pull the completion text out of a decoded response body."""
    if not isinstance(body, dict):
        raise VisionServiceError("Failed to parse OpenAI response: unexpected body")

    error = body.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise VisionServiceError(f"OpenAI API error: {message}")

    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise VisionServiceError(f"Failed to parse OpenAI response: missing {exc}") from exc

    return content or NO_TEXT_EXTRACTED


class VisionClient:
    """Async client for an OpenAI-compatible chat-completions endpoint."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._api_key = settings.api_key

    def _require_api_key(self) -> str:
        if not self._api_key:
            # The key may have been exported after startup.
            self._api_key = resolve_api_key()
        if not self._api_key:
            raise VisionServiceError(
                "OpenAI API key is not available. Please set the OPENAI_API_KEY environment variable."
            )
        issue = validate_api_key(self._api_key)
        if issue:
            raise VisionServiceError(f"Invalid API key: {issue}")
        return self._api_key

    async def complete(self, instruction: str, image_data_url: str) -> str:
        """Send one vision request and return the completion text."""
        api_key = self._require_api_key()
        url = f"{self.settings.base_url}/chat/completions"
        payload = build_request(
            self.settings.model, instruction, image_data_url, self.settings.max_tokens
        )
        headers = {"Authorization": f"Bearer {api_key}"}
        timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)

        logger.info(
            "Sending request to %s (model %s, key %s)",
            url,
            self.settings.model,
            mask_key(api_key),
        )
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, json=payload, headers=headers) as resp:
                    # Proxies may answer with non-UTF-8 bodies.
                    raw = (await resp.read()).decode("utf-8", errors="replace")
                    status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise VisionServiceError(f"Vision service unavailable at {url}: {exc}") from exc

        logger.debug("Vision response (%d): %s", status, raw[:500])
        try:
            body = json.loads(raw)
        except ValueError as exc:
            if status != 200:
                raise VisionServiceError(f"Vision service returned {status}: {raw[:200]}") from exc
            raise VisionServiceError(f"Failed to parse OpenAI response: {exc}") from exc

        if status != 200 and not (isinstance(body, dict) and body.get("error")):
            raise VisionServiceError(f"Vision service returned {status}: {raw[:200]}")
        return parse_completion(body)
