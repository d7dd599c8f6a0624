"""
AI Gateway Client - sends chat, summary and report requests to the backend
proxy, one request in flight per feature.

Each feature moves IDLE -> SENDING -> (SUCCESS | FAILED) -> IDLE. A trigger
while SENDING is ignored. Any failure yields the feature's fallback text so
callers never see a raw error.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..errors import HealthYaarError, UnparseableResponse
from ..llm.base import extract_text
from .api import BackendClient
from .session import SessionManager

logger = logging.getLogger(__name__)

CHAT = "chat"
SUMMARY = "summary"
REPORT = "report"

FALLBACK_TEXT = {
    CHAT: "Sorry, I encountered an error connecting to the AI. Please try again.",
    SUMMARY: "Could not generate summary at this time.",
    REPORT: "Could not analyze the report.",
}


class GatewayState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    SUCCESS = "success"
    FAILED = "failed"


class FeatureChannel:
    """Busy flag and last outcome for one feature."""

    def __init__(self, name: str):
        self.name = name
        self.state = GatewayState.IDLE
        self.last_outcome: Optional[GatewayState] = None
        self.calls = 0

    @property
    def busy(self) -> bool:
        return self.state == GatewayState.SENDING


@dataclass
class GatewayReply:
    text: str
    ok: bool


class AIGatewayClient:
    """Routes AI requests through the backend proxy."""

    def __init__(self, api: BackendClient, session: SessionManager):
        self.api = api
        self.session = session
        self.channels: Dict[str, FeatureChannel] = {
            name: FeatureChannel(name) for name in FALLBACK_TEXT
        }

    def is_busy(self, feature: str) -> bool:
        return self.channels[feature].busy

    async def _call(
        self,
        feature: str,
        send: Callable[[str], Awaitable[Any]],
    ) -> Optional[GatewayReply]:
        """
        Run one request on a feature channel.

        Returns:
            GatewayReply with the generated text or the fallback text, or
            None if the feature already had a request in flight
        """
        channel = self.channels[feature]
        if channel.busy:
            logger.debug(f"Ignoring {feature} request: one is already in flight")
            return None

        channel.state = GatewayState.SENDING
        channel.calls += 1
        try:
            token = self.session.require().token
            result = extract_text(await send(token))
            if not result.is_ok:
                raise UnparseableResponse(result.error)
        except HealthYaarError as e:
            logger.error(
                f"AI {feature} request failed: {e}",
                extra={"extra_fields": {"feature": feature, "error_type": type(e).__name__}}
            )
            channel.last_outcome = GatewayState.FAILED
            return GatewayReply(FALLBACK_TEXT[feature], ok=False)
        finally:
            channel.state = GatewayState.IDLE

        channel.last_outcome = GatewayState.SUCCESS
        return GatewayReply(result.text, ok=True)

    async def chat(self, history: List[Dict[str, str]],
                   profile: Optional[Dict[str, Any]] = None) -> Optional[GatewayReply]:
        """Ask for the next assistant turn given the transcript without the greeting."""
        return await self._call(CHAT, lambda token: self.api.chat(token, history, profile))

    async def summary(self, form_data: Dict[str, Any]) -> Optional[GatewayReply]:
        """Ask for a personalized health summary."""
        return await self._call(
            SUMMARY, lambda token: self.api.generate_health_summary(token, form_data)
        )

    async def analyze_report(self, image_base64: str, mime_type: str) -> Optional[GatewayReply]:
        """Ask for an analysis of a report image."""
        return await self._call(
            REPORT, lambda token: self.api.analyze_report_image(token, image_base64, mime_type)
        )
