"""
Health summary and medical report analysis workflows.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import InvalidUpload
from .gateway import REPORT, SUMMARY, AIGatewayClient
from .notifications import NotificationCenter
from .profile import ProfileForm

logger = logging.getLogger(__name__)


class SummaryGenerator:
    """Generates the personalized health summary from the profile form."""

    def __init__(self, gateway: AIGatewayClient, form: ProfileForm, notifications: NotificationCenter):
        self.gateway = gateway
        self.form = form
        self.notifications = notifications
        self.summary = ""

    @property
    def is_loading(self) -> bool:
        return self.gateway.is_busy(SUMMARY)

    async def generate(self) -> bool:
        data = self.form.data
        if not str(data.height).strip() or not str(data.weight).strip():
            self.notifications.error("Please provide at least height and weight for an accurate summary.")
            return False
        if self.is_loading:
            return False

        self.summary = ""
        generation = self.gateway.session.generation
        reply = await self.gateway.summary(data.to_document())
        if reply is None or not self.gateway.session.is_current(generation):
            return False
        self.summary = reply.text
        return reply.ok


@dataclass
class PendingImage:
    """Report image waiting for analysis."""
    filename: str
    data: bytes
    mime_type: str

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def preview_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


class ReportAnalyzer:
    """Holds the uploaded report image and runs its analysis."""

    def __init__(self, gateway: AIGatewayClient, notifications: NotificationCenter):
        self.gateway = gateway
        self.notifications = notifications
        self.pending: Optional[PendingImage] = None
        self.preview: Optional[str] = None
        self.analysis = ""

    @property
    def is_loading(self) -> bool:
        return self.gateway.is_busy(REPORT)

    def clear(self) -> None:
        self.pending = None
        self.preview = None

    def select_image(self, filename: str, data: bytes, mime_type: Optional[str]) -> PendingImage:
        """
        Accept an upload as the pending report image.

        Raises:
            InvalidUpload: If the file is not an image; the pending state is
                cleared first
        """
        if not mime_type or not mime_type.startswith("image/") or not data:
            self.clear()
            self.notifications.error("Please upload a valid image file (PNG, JPG, etc.).")
            raise InvalidUpload(f"{filename} is not an image ({mime_type})")

        self.pending = PendingImage(filename, data, mime_type)
        self.preview = self.pending.preview_url
        logger.debug(f"Report image selected: {filename} ({mime_type}, {len(data)} bytes)")
        return self.pending

    async def analyze(self) -> bool:
        if self.pending is None:
            self.notifications.error("Please upload a report image first.")
            return False
        if self.is_loading:
            return False

        pending = self.pending
        self.analysis = ""
        generation = self.gateway.session.generation
        reply = await self.gateway.analyze_report(pending.to_base64(), pending.mime_type)
        if reply is None or not self.gateway.session.is_current(generation):
            return False

        self.analysis = reply.text
        if self.pending is pending:
            self.clear()
        return reply.ok
