"""
Document Store Interface - abstract base for profile document persistence.
A managed cloud document database can implement the same contract.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


def is_valid_segment(segment: str) -> bool:
    """True if ``segment`` can be used as one level of a document path."""
    return bool(segment) and "/" not in segment and "\\" not in segment and segment not in (".", "..")


def document_path(*segments: str) -> str:
    """
    Join path segments into a document path.

    Raises:
        ValueError: If a segment is empty or contains a separator
    """
    for segment in segments:
        if not is_valid_segment(segment):
            raise ValueError(f"Invalid document path segment: {segment!r}")
    return "/".join(segments)


class DocumentStore(ABC):
    """Contract for storing JSON documents addressed by slash-separated paths."""

    @abstractmethod
    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        """
        Read a document.

        Args:
            path: Document path (e.g. "artifacts/app/users/123/biodata/profile")

        Returns:
            Optional[Dict]: Document fields, or None if the document doesn't exist

        Raises:
            StoreUnavailable: If the store cannot be read
        """
        pass

    @abstractmethod
    async def set_document(
        self,
        path: str,
        data: Dict[str, Any],
        merge: bool = False
    ) -> Dict[str, Any]:
        """
        Write a document.

        Args:
            path: Document path
            data: Fields to write
            merge: Update only the given fields instead of replacing the document

        Returns:
            Dict: The document as stored after the write

        Raises:
            StoreUnavailable: If the store cannot be written
        """
        pass
