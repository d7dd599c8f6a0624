"""Client module - the application-side workflow talking to the backend proxy."""

from .app import HealthApp
from .api import BackendClient
from .chat import ChatSession, GREETING
from .gateway import AIGatewayClient, GatewayReply, GatewayState, FALLBACK_TEXT
from .notifications import Notification, NotificationCenter
from .profile import ProfileForm
from .reports import PendingImage, ReportAnalyzer, SummaryGenerator
from .session import CredentialStore, SessionIdentity, SessionManager
from .settings import ClientSettings

__all__ = [
    'HealthApp', 'BackendClient', 'ChatSession', 'GREETING',
    'AIGatewayClient', 'GatewayReply', 'GatewayState', 'FALLBACK_TEXT',
    'Notification', 'NotificationCenter', 'ProfileForm',
    'PendingImage', 'ReportAnalyzer', 'SummaryGenerator',
    'CredentialStore', 'SessionIdentity', 'SessionManager', 'ClientSettings',
]
