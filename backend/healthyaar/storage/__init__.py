"""Storage module - document store interface, local implementation and profile adapter."""

from .interface import DocumentStore, document_path, is_valid_segment
from .local_storage import LocalDocumentStore
from .profile_store import ProfileStore

__all__ = ['DocumentStore', 'document_path', 'is_valid_segment', 'LocalDocumentStore', 'ProfileStore']
