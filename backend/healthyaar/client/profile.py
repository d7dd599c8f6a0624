"""
Profile form state and its load/save workflow.
"""

import logging
from typing import Any

from pydantic import ValidationError

from ..errors import HealthYaarError, IdentityUnavailable
from ..models import Profile
from .api import BackendClient
from .notifications import NotificationCenter
from .session import SessionManager

logger = logging.getLogger(__name__)


class ProfileForm:
    """
    In-memory questionnaire. Starts at the defaults, is filled from the
    stored document on load and sent as a merge save on save.
    """

    def __init__(self, api: BackendClient, session: SessionManager, notifications: NotificationCenter):
        self.api = api
        self.session = session
        self.notifications = notifications
        self.data = Profile()
        self.loading = False
        self.saving = False

    def update(self, **fields: Any) -> None:
        """
        Change form fields (snake_case or camelCase names).

        Raises:
            pydantic.ValidationError: On unknown field names
        """
        self.data = self.data.merged_with(fields)

    def reset(self) -> None:
        self.data = Profile()

    async def load(self) -> bool:
        """
        Fill the form from the stored profile.

        Returns:
            bool: True if a stored profile was found; defaults are kept otherwise
        """
        if self.loading:
            return False
        self.loading = True
        generation = self.session.generation
        try:
            token = self.session.require().token
            body = await self.api.get_profile(token)
            if not self.session.is_current(generation):
                logger.info("Dropping profile that arrived after the identity changed")
                return False
            if not body.get("exists"):
                logger.info("No stored profile yet, keeping defaults")
                return False
            self.data = self.data.merged_with(body.get("profile") or {})
            return True
        except IdentityUnavailable:
            logger.warning("Profile load attempted without an identity")
            self.notifications.error("Cannot load. Not connected.")
            return False
        except (HealthYaarError, ValidationError, AttributeError) as e:
            logger.error(f"Error fetching profile: {e}")
            self.notifications.error("Failed to load your profile data.")
            return False
        finally:
            self.loading = False

    async def save(self) -> bool:
        """Merge-save the whole form."""
        if self.saving:
            return False
        self.saving = True
        try:
            token = self.session.require().token
            await self.api.save_profile(token, self.data.to_document())
        except IdentityUnavailable:
            logger.warning("Profile save attempted without an identity")
            self.notifications.error("Cannot save. Not connected.")
            return False
        except HealthYaarError as e:
            logger.error(f"Error saving profile: {e}")
            self.notifications.error("Failed to save profile.")
            return False
        finally:
            self.saving = False

        self.notifications.show("Profile saved successfully!")
        return True
