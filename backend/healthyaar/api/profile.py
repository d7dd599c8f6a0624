"""
Profile API endpoints - load and merge-save the health questionnaire.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from ..errors import IdentityUnavailable, StoreUnavailable
from ..models import Identity, Profile, ProfileResponse
from ..storage import ProfileStore
from ..utils.auth import get_current_identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


def unusable_identity_error(e: IdentityUnavailable) -> HTTPException:
    logger.warning(f"Profile access refused: {e}")
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_profile_store(request: Request) -> ProfileStore:
    """Dependency returning the application's profile store."""
    return request.app.state.profile_store


@router.get("", response_model=ProfileResponse)
async def load_profile(
    identity: Identity = Depends(get_current_identity),
    store: ProfileStore = Depends(get_profile_store)
):
    """
    Load the caller's profile.

    Returns:
        ProfileResponse: ``exists`` is false and defaults are returned when
        nothing has been saved yet
    """
    try:
        profile = await store.load(identity)
    except IdentityUnavailable as e:
        raise unusable_identity_error(e)
    except StoreUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    if profile is None:
        return ProfileResponse(exists=False, profile=Profile().to_document())
    return ProfileResponse(exists=True, profile=profile.to_document())


@router.put("", response_model=ProfileResponse)
async def save_profile(
    fields: Dict[str, Any],
    identity: Identity = Depends(get_current_identity),
    store: ProfileStore = Depends(get_profile_store)
):
    """
    Merge-save profile fields. Fields not submitted keep their stored value.

    Raises:
        HTTPException: 401 on an unusable identity, 422 on unknown fields, 503 if the store is unavailable
    """
    try:
        profile = await store.save(identity, fields)
    except IdentityUnavailable as e:
        raise unusable_identity_error(e)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )
    except StoreUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return ProfileResponse(exists=True, profile=profile.to_document())
