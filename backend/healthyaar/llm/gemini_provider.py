"""
Gemini LLM Provider.
Calls the generateContent endpoint of the Generative Language API.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ..errors import NetworkFailure, UpstreamNon2xx
from .base import GenerationResult, LLMMessage, LLMProvider, extract_text

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """
    Provider for Google Gemini models.
    The API key is sent in the ``x-goog-api-key`` header, never in the URL.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        default_temperature: float = 0.7,
        default_max_tokens: int = 2048,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, model, base_url.rstrip("/"), default_temperature, default_max_tokens)
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def _endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _build_payload(
        self,
        contents: List[LLMMessage],
        system_instruction: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": self._format_contents(contents),
            "generationConfig": {
                "temperature": temperature if temperature is not None else self.default_temperature,
                "maxOutputTokens": max_tokens or self.default_max_tokens,
            },
        }
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return payload

    async def generate(
        self,
        contents: List[LLMMessage],
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> GenerationResult:
        """Send request to the generateContent endpoint."""
        start_time = time.time()
        payload = self._build_payload(contents, system_instruction, temperature, max_tokens)

        if logger.isEnabledFor(logging.DEBUG):
            has_images = any("inlineData" in part for turn in contents for part in turn.parts)
            logger.debug(
                f"Gemini call starting: model={self.model}, turns={len(contents)}, "
                f"system_instruction={bool(system_instruction)}, has_images={has_images}"
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self._endpoint(), json=payload, headers=self._get_headers())
        except httpx.HTTPError as e:
            logger.error(
                f"Gemini call failed: {e}",
                extra={"extra_fields": {
                    "provider": "gemini",
                    "model": self.model,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise NetworkFailure(str(e)) from e

        duration_ms = round((time.time() - start_time) * 1000, 2)

        if not resp.is_success:
            detail = _error_message(resp)
            logger.error(
                f"Gemini call returned {resp.status_code}: {detail}",
                extra={"extra_fields": {
                    "provider": "gemini",
                    "model": self.model,
                    "status_code": resp.status_code,
                    "duration_ms": duration_ms,
                }}
            )
            raise UpstreamNon2xx(resp.status_code, detail)

        try:
            data = resp.json()
        except json.JSONDecodeError:
            logger.error("Gemini call returned a non-JSON body")
            return GenerationResult.malformed("response body is not JSON")

        result = extract_text(data)
        if not result.is_ok:
            logger.warning(f"Gemini response rejected: {result.error}")
            return result

        result.model = result.model or self.model
        logger.info(
            "Gemini call completed",
            extra={"extra_fields": {
                "provider": "gemini",
                "model": result.model,
                "prompt_tokens": result.usage.get("promptTokenCount", 0),
                "completion_tokens": result.usage.get("candidatesTokenCount", 0),
                "total_tokens": result.usage.get("totalTokenCount", 0),
                "duration_ms": duration_ms,
            }}
        )
        return result


def _error_message(resp: httpx.Response) -> str:
    """Best-effort ``error.message`` from an error body."""
    try:
        body = resp.json()
    except json.JSONDecodeError:
        return resp.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", ""))
    return str(body)[:200]
