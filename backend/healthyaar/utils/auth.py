"""
Authentication utilities - identity issuing and JWT token handling.

Stands in for a managed auth provider: anonymous sign-in, custom-token
sign-in and sign-out.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Set

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..config import Settings
from ..models import Identity, Token, TokenData
from ..storage import is_valid_segment

logger = logging.getLogger(__name__)

# Bearer token security
security = HTTPBearer(auto_error=False)


class AuthProvider:
    """Issues and verifies access tokens for session principals."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._revoked: Set[str] = set()

    def create_access_token(self, identity: Identity, expires_delta: Optional[timedelta] = None) -> Token:
        """
        Create a JWT access token for an identity.

        Args:
            identity: Principal to encode
            expires_delta: Optional expiration time delta

        Returns:
            Token: Encoded token with the principal's uid
        """
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=self.settings.access_token_expire_minutes)
        )
        claims = {
            "sub": identity.uid,
            "anon": identity.is_anonymous,
            "jti": uuid.uuid4().hex,
            "exp": expire,
        }
        encoded = jwt.encode(claims, self.settings.secret_key, algorithm=self.settings.algorithm)
        return Token(access_token=encoded, uid=identity.uid, is_anonymous=identity.is_anonymous)

    def decode_access_token(self, token: str) -> Optional[TokenData]:
        """
        Decode and verify an access token.

        Returns:
            Optional[TokenData]: Token data if valid and not revoked, None otherwise
        """
        try:
            payload = jwt.decode(token, self.settings.secret_key, algorithms=[self.settings.algorithm])
        except JWTError:
            return None

        uid = payload.get("sub")
        jti = payload.get("jti")
        if not uid or not jti or jti in self._revoked:
            return None
        return TokenData(uid=uid, jti=jti, is_anonymous=bool(payload.get("anon", True)))

    def sign_in_anonymously(self) -> Token:
        """Create a fresh anonymous principal."""
        identity = Identity(uid=uuid.uuid4().hex, is_anonymous=True, created_at=datetime.now(timezone.utc))
        logger.info(f"Anonymous sign-in: uid={identity.uid}")
        return self.create_access_token(identity)

    def sign_in_with_custom_token(self, custom_token: str) -> Optional[Token]:
        """
        Exchange a one-time custom token for an access token.

        Custom tokens are JWTs signed with ``custom_token_secret`` carrying
        a ``uid`` claim.

        Returns:
            Optional[Token]: Access token, or None if the custom token is
            invalid or its uid cannot address a profile document
        """
        try:
            payload = jwt.decode(
                custom_token,
                self.settings.custom_token_secret,
                algorithms=[self.settings.algorithm],
            )
        except JWTError as e:
            logger.warning(f"Custom token rejected: {e}")
            return None

        uid = payload.get("uid")
        if not uid:
            logger.warning("Custom token rejected: missing uid claim")
            return None
        if not is_valid_segment(str(uid)):
            logger.warning(f"Custom token rejected: unusable uid {uid!r}")
            return None

        identity = Identity(uid=str(uid), is_anonymous=False, created_at=datetime.now(timezone.utc))
        logger.info(f"Custom token sign-in: uid={identity.uid}")
        return self.create_access_token(identity)

    def create_custom_token(self, uid: str, expires_delta: timedelta = timedelta(hours=1)) -> str:
        """Mint a custom token for ``uid`` (used by trusted servers that hand out sign-ins)."""
        claims = {"uid": uid, "exp": datetime.now(timezone.utc) + expires_delta}
        return jwt.encode(claims, self.settings.custom_token_secret, algorithm=self.settings.algorithm)

    def sign_out(self, token_data: TokenData) -> None:
        """Revoke the token identified by ``token_data``."""
        self._revoked.add(token_data.jti)
        logger.info(f"Signed out: uid={token_data.uid}")


def get_auth_provider(request: Request) -> AuthProvider:
    """Dependency returning the application's auth provider."""
    return request.app.state.auth


async def get_current_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: AuthProvider = Depends(get_auth_provider),
) -> TokenData:
    """
    Dependency to get the verified token of the caller.

    Raises:
        HTTPException: If the token is missing, invalid or revoked
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    token_data = auth.decode_access_token(credentials.credentials)
    if token_data is None:
        raise credentials_exception
    return token_data


async def get_current_identity(token_data: TokenData = Depends(get_current_token)) -> Identity:
    """Dependency to get the caller's identity."""
    return Identity(uid=token_data.uid, is_anonymous=token_data.is_anonymous)
