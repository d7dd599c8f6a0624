"""
Authentication API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from ..models import CustomTokenRequest, Identity, Token, TokenData
from ..utils.auth import AuthProvider, get_auth_provider, get_current_identity, get_current_token

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/anonymous", response_model=Token, status_code=status.HTTP_201_CREATED)
async def sign_in_anonymously(auth: AuthProvider = Depends(get_auth_provider)):
    """
    Create an anonymous identity.

    Returns:
        Token: Access token for the new principal
    """
    return auth.sign_in_anonymously()


@router.post("/custom-token", response_model=Token)
async def sign_in_with_custom_token(
    body: CustomTokenRequest,
    auth: AuthProvider = Depends(get_auth_provider)
):
    """
    Exchange a one-time custom token for an access token.

    Raises:
        HTTPException: If the custom token is invalid or expired
    """
    token = auth.sign_in_with_custom_token(body.token)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid custom token",
        )
    return token


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token_data: TokenData = Depends(get_current_token),
    auth: AuthProvider = Depends(get_auth_provider)
):
    """Revoke the caller's access token."""
    auth.sign_out(token_data)


@router.get("/me", response_model=Identity)
async def get_current_user(identity: Identity = Depends(get_current_identity)):
    """Return the caller's identity; used to validate a persisted credential."""
    return identity
