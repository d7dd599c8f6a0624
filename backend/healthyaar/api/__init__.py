"""API module."""

from .auth import router as auth_router
from .profile import router as profile_router
from .ai import router as ai_router

__all__ = ['auth_router', 'profile_router', 'ai_router']
