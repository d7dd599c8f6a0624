"""
Profile Store - reads and merge-writes the per-user profile document.
"""

import logging
from typing import Any, Dict, Optional

from ..config import Settings
from ..errors import IdentityUnavailable
from ..models import Identity, Profile, ProfileUpdate
from .interface import DocumentStore, document_path, is_valid_segment

logger = logging.getLogger(__name__)


class ProfileStore:
    """
    Adapter between identities and their profile documents.

    Documents live at ``artifacts/{app_id}/users/{uid}/biodata/profile``.
    """

    COLLECTION = "biodata"
    DOCUMENT = "profile"

    def __init__(self, settings: Settings, store: DocumentStore):
        """
        Args:
            settings: Application settings (supplies ``app_id``)
            store: Document store implementation
        """
        self.settings = settings
        self.store = store

    def profile_path(self, identity: Identity) -> str:
        return document_path(
            "artifacts", self.settings.app_id,
            "users", identity.uid,
            self.COLLECTION, self.DOCUMENT,
        )

    @staticmethod
    def _require(identity: Optional[Identity]) -> Identity:
        if identity is None or not identity.uid:
            raise IdentityUnavailable("No identity established")
        if not is_valid_segment(identity.uid):
            raise IdentityUnavailable(f"Unusable uid: {identity.uid!r}")
        return identity

    async def load(self, identity: Optional[Identity]) -> Optional[Profile]:
        """
        Load a profile.

        Returns:
            The stored profile over the defaults, or None when the user has
            not saved one yet

        Raises:
            IdentityUnavailable: If no usable identity is given
            StoreUnavailable: If the store cannot be read
        """
        identity = self._require(identity)
        document = await self.store.get_document(self.profile_path(identity))
        if document is None:
            logger.debug(f"No profile stored for {identity.uid}")
            return None
        return Profile().merged_with(_known_fields(document))

    async def save(self, identity: Optional[Identity], fields: Dict[str, Any]) -> Profile:
        """
        Merge-save profile fields; fields not submitted keep their stored value.

        Args:
            identity: Owner of the profile
            fields: Profile fields, camelCase or snake_case keys

        Returns:
            The full profile after the merge

        Raises:
            IdentityUnavailable: If no usable identity is given
            pydantic.ValidationError: If ``fields`` contains unknown keys
            StoreUnavailable: If the store cannot be written
        """
        identity = self._require(identity)
        changes = ProfileUpdate.model_validate(fields).changes()
        document = await self.store.set_document(self.profile_path(identity), changes, merge=True)
        logger.info(
            "Profile saved",
            extra={"extra_fields": {"uid": identity.uid, "fields": sorted(changes)}}
        )
        return Profile().merged_with(_known_fields(document))


def _known_fields(document: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys that are not profile fields (e.g. written by an older client)."""
    aliases = {field.alias for field in Profile.model_fields.values()}
    return {k: v for k, v in document.items() if k in aliases}
