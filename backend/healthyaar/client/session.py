"""
Session Manager - establishes the identity every other operation needs.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, List, Optional

import aiofiles

from ..errors import HealthYaarError, IdentityUnavailable, UpstreamNon2xx
from .api import BackendClient
from .notifications import NotificationCenter
from .settings import ClientSettings

logger = logging.getLogger(__name__)


@dataclass
class SessionIdentity:
    """Established principal; ``token`` is the opaque identity handle."""
    uid: str
    token: str
    is_anonymous: bool = True


IdentityListener = Callable[[Optional[SessionIdentity]], None]


class CredentialStore:
    """Keeps the access token between runs in a small JSON file."""

    def __init__(self, path: Optional[str]):
        self.path = Path(path) if path else None

    async def load(self) -> Optional[SessionIdentity]:
        if self.path is None or not self.path.exists():
            return None
        try:
            async with aiofiles.open(self.path, 'r', encoding='utf-8') as f:
                return SessionIdentity(**json.loads(await f.read()))
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable credential file {self.path}: {e}")
            return None

    async def save(self, identity: SessionIdentity) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(asdict(identity)))
        except OSError as e:
            logger.warning(f"Could not persist credential to {self.path}: {e}")

    def clear(self) -> None:
        if self.path is None:
            return
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove credential file {self.path}: {e}")


class SessionManager:
    """
    Resolves one identity in priority order: persisted credential, then the
    one-time custom token, then a new anonymous identity.

    ``ready`` stays false after a failed resolution; there is no retry.
    """

    def __init__(
        self,
        settings: ClientSettings,
        api: BackendClient,
        notifications: NotificationCenter,
        credentials: Optional[CredentialStore] = None,
    ):
        self.settings = settings
        self.api = api
        self.notifications = notifications
        self.credentials = credentials or CredentialStore(settings.credential_path)
        self.identity: Optional[SessionIdentity] = None
        self.ready = False
        # Bumped on every identity change; work started under an older
        # generation must not write its result back
        self.generation = 0
        self._resolving = False
        self._listeners: List[IdentityListener] = []

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Call ``listener`` on every identity change; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _set_identity(self, identity: Optional[SessionIdentity]) -> None:
        self.identity = identity
        self.ready = identity is not None
        self.generation += 1
        for listener in list(self._listeners):
            listener(identity)

    def require(self) -> SessionIdentity:
        """
        Return the established identity.

        Raises:
            IdentityUnavailable: If no identity is ready
        """
        if not self.ready or self.identity is None:
            raise IdentityUnavailable("No identity established")
        return self.identity

    def is_current(self, generation: int) -> bool:
        """True if no identity change happened since ``generation`` was read."""
        return generation == self.generation

    async def _from_persisted(self) -> Optional[SessionIdentity]:
        stored = await self.credentials.load()
        if stored is None:
            return None
        try:
            me = await self.api.get_me(stored.token)
        except UpstreamNon2xx as e:
            if e.status_code != 401:
                raise
            logger.info("Persisted credential rejected, signing in again")
            self.credentials.clear()
            return None
        return SessionIdentity(uid=me["uid"], token=stored.token,
                               is_anonymous=me.get("is_anonymous", True))

    @staticmethod
    def _from_token(body) -> SessionIdentity:
        return SessionIdentity(uid=body["uid"], token=body["access_token"],
                               is_anonymous=body.get("is_anonymous", True))

    async def resolve(self, initial_token: Optional[str] = None) -> bool:
        """
        Establish an identity.

        Args:
            initial_token: One-time custom token; defaults to
                ``settings.initial_auth_token``

        Returns:
            bool: The ``ready`` signal after resolution
        """
        if self._resolving or self.ready:
            return self.ready
        self._resolving = True
        custom_token = initial_token or self.settings.initial_auth_token

        try:
            identity = await self._from_persisted()
            source = "persisted"
            if identity is None and custom_token:
                identity = self._from_token(
                    await self.api.sign_in_with_custom_token(custom_token)
                )
                source = "custom-token"
            if identity is None:
                identity = self._from_token(await self.api.sign_in_anonymously())
                source = "anonymous"
        except (HealthYaarError, KeyError, TypeError) as e:
            logger.error(f"Identity resolution failed: {e}")
            self.notifications.error("Could not connect to essential services.")
            return False
        finally:
            self._resolving = False

        await self.credentials.save(identity)
        logger.info(f"Session ready: uid={identity.uid}, source={source}")
        self._set_identity(identity)
        return True

    async def logout(self) -> None:
        """
        Drop the identity and every piece of state tied to it.

        Local state is cleared before the token is revoked on the backend;
        a failed revocation is only logged.
        """
        identity = self.identity
        if identity is None:
            return

        self._set_identity(None)
        self.credentials.clear()

        try:
            await self.api.logout(identity.token)
        except HealthYaarError as e:
            logger.warning(f"Token revocation failed for uid={identity.uid}: {e}")

        self.notifications.show("You have been logged out.")
