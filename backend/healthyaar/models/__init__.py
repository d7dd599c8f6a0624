"""Models module."""

from .user import Identity, CustomTokenRequest, Token, TokenData
from .profile import Profile, ProfileUpdate, ProfileResponse, PROFILE_FIELDS
from .chat import ChatMessage, ChatRequest, SummaryRequest, ReportAnalysisRequest, GenerationPayload

__all__ = [
    'Identity', 'CustomTokenRequest', 'Token', 'TokenData',
    'Profile', 'ProfileUpdate', 'ProfileResponse', 'PROFILE_FIELDS',
    'ChatMessage', 'ChatRequest', 'SummaryRequest', 'ReportAnalysisRequest', 'GenerationPayload',
]
