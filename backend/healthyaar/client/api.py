"""
Backend API client - thin httpx wrapper over the Health Yaar endpoints.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import NetworkFailure, UnparseableResponse, UpstreamNon2xx
from .settings import ClientSettings

logger = logging.getLogger(__name__)


class BackendClient:
    """
    Calls the backend and maps transport problems onto the error types:
    ``NetworkFailure``, ``UpstreamNon2xx`` and ``UnparseableResponse``.
    """

    def __init__(self, settings: ClientSettings,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            settings: Client settings (base URL, timeout)
            transport: Optional httpx transport (tests, ASGI apps)
        """
        self.base_url = settings.base_url.rstrip("/")
        self.timeout = settings.request_timeout
        self._transport = transport

    @staticmethod
    def _headers(token: Optional[str]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body (None for 204).

        Raises:
            NetworkFailure: If the backend cannot be reached
            UpstreamNon2xx: If the backend answers with a non-2xx status
            UnparseableResponse: If a 2xx body is not JSON
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, json=payload, headers=self._headers(token))
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise NetworkFailure(str(e)) from e

        if not resp.is_success:
            detail = _detail(resp)
            logger.warning(f"{method} {path} returned {resp.status_code}: {detail}")
            raise UpstreamNon2xx(resp.status_code, detail)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise UnparseableResponse(f"{method} {path} returned a non-JSON body") from e

    # Auth

    async def sign_in_anonymously(self) -> Dict[str, Any]:
        return await self.request("POST", "/auth/anonymous")

    async def sign_in_with_custom_token(self, custom_token: str) -> Dict[str, Any]:
        return await self.request("POST", "/auth/custom-token", payload={"token": custom_token})

    async def get_me(self, token: str) -> Dict[str, Any]:
        return await self.request("GET", "/auth/me", token=token)

    async def logout(self, token: str) -> None:
        await self.request("POST", "/auth/logout", token=token)

    # Profile

    async def get_profile(self, token: str) -> Dict[str, Any]:
        return await self.request("GET", "/profile", token=token)

    async def save_profile(self, token: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("PUT", "/profile", token=token, payload=fields)

    # AI proxy

    async def chat(self, token: str, messages: List[Dict[str, str]],
                   profile: Optional[Dict[str, Any]] = None) -> Any:
        payload: Dict[str, Any] = {"messages": messages}
        if profile is not None:
            payload["profile"] = profile
        return await self.request("POST", "/api/chat", token=token, payload=payload)

    async def generate_health_summary(self, token: str, form_data: Dict[str, Any]) -> Any:
        return await self.request(
            "POST", "/api/generateHealthSummary", token=token, payload={"formData": form_data}
        )

    async def analyze_report_image(self, token: str, image_base64: str, mime_type: str) -> Any:
        return await self.request(
            "POST", "/api/analyzeReportImage", token=token,
            payload={"image": image_base64, "mimeType": mime_type},
        )


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except json.JSONDecodeError:
        return resp.text[:200]
    if isinstance(body, dict):
        for key in ("detail", "message", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)[:200]
