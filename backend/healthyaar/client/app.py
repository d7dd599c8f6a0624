"""
Application workflow - wires the session, profile form and AI features
together the way the screen uses them.
"""

import logging
from typing import Optional

import httpx

from .api import BackendClient
from .chat import ChatSession
from .gateway import AIGatewayClient
from .notifications import NotificationCenter
from .profile import ProfileForm
from .reports import ReportAnalyzer, SummaryGenerator
from .session import CredentialStore, SessionIdentity, SessionManager
from .settings import ClientSettings

logger = logging.getLogger(__name__)


class HealthApp:
    """
    Client-side state of the application.

    Build it once with the client settings; call ``start()`` to resolve the
    identity and load the stored profile.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        credentials: Optional[CredentialStore] = None,
    ):
        self.settings = settings or ClientSettings()
        self.notifications = NotificationCenter(ttl=self.settings.notification_ttl)
        self.api = BackendClient(self.settings, transport=transport)
        self.session = SessionManager(self.settings, self.api, self.notifications, credentials)
        self.gateway = AIGatewayClient(self.api, self.session)
        self.profile = ProfileForm(self.api, self.session, self.notifications)
        self.chat = ChatSession(self.gateway, self.profile)
        self.summary = SummaryGenerator(self.gateway, self.profile, self.notifications)
        self.report = ReportAnalyzer(self.gateway, self.notifications)

        self.session.subscribe(self._on_identity_changed)

    def _on_identity_changed(self, identity: Optional[SessionIdentity]) -> None:
        if identity is not None:
            return
        # Signed out: nothing of the previous user may stay on screen
        self.profile.reset()
        self.chat.reset()
        self.summary.summary = ""
        self.report.analysis = ""
        self.report.clear()

    async def start(self, initial_token: Optional[str] = None) -> bool:
        """Resolve the identity, then load the stored profile."""
        if not await self.session.resolve(initial_token):
            return False
        await self.profile.load()
        return True

    async def logout(self) -> None:
        await self.session.logout()
