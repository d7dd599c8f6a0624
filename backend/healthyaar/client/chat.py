"""
Chat transcript and send workflow.
"""

import logging
from typing import List

from ..models import ChatMessage
from .gateway import CHAT, AIGatewayClient
from .profile import ProfileForm

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I'm the Health Yaar AI assistant. How can I help you today? "
    "You can ask me general health questions."
)


class ChatSession:
    """
    Append-only transcript that opens with the assistant greeting.
    The greeting is never sent to the gateway.
    """

    def __init__(self, gateway: AIGatewayClient, form: ProfileForm):
        self.gateway = gateway
        self.form = form
        self.messages: List[ChatMessage] = []
        self.reset()

    def reset(self) -> None:
        self.messages = [ChatMessage(role="assistant", text=GREETING)]

    def outbound_history(self) -> List[dict]:
        """Transcript without the greeting, oldest first."""
        return [m.model_dump() for m in self.messages[1:]]

    @property
    def is_loading(self) -> bool:
        return self.gateway.is_busy(CHAT)

    async def send(self, text: str) -> bool:
        """
        Send a user message and append exactly one assistant reply.

        Returns:
            bool: False if the text is blank, a reply is still pending, or the
            identity changed before the reply arrived
        """
        if not text.strip() or self.is_loading:
            return False

        session = self.gateway.session
        generation = session.generation
        self.messages.append(ChatMessage(role="user", text=text))
        reply = await self.gateway.chat(self.outbound_history(), self.form.data.to_document())
        if reply is None:
            # Another chat request is in flight
            self.messages.pop()
            return False
        if not session.is_current(generation):
            logger.info("Dropping chat reply that arrived after the identity changed")
            return False

        self.messages.append(ChatMessage(role="assistant", text=reply.text))
        return True
