from abc import ABC, abstractmethod
from typing import Any, Dict, List


class VisitBackend(ABC):
    """Abstract base class for backends that serve pipeline-produced visit artifacts."""

    @abstractmethod
    async def fetch_visit_record(self, visit_id: str) -> Dict[str, Any]:
        """
        Fetch the visit record for a session.

        Args:
            visit_id: Session/visit identifier

        Returns:
            Raw visit record payload

        Raises:
            MissingKeyError: If no identifier was supplied
            NotFoundError: If the record does not exist (yet)
            TransportError: On network or permission failures
        """
        pass

    @abstractmethod
    async def fetch_transcript(self, session_id: str) -> Dict[str, Any]:
        """
        Fetch the finished transcript for a session.

        Args:
            session_id: Session identifier

        Returns:
            Raw transcript payload
        """
        pass

    @abstractmethod
    async def fetch_visit_artifacts_by_category(self, visit_id: str) -> List[Dict[str, Any]]:
        """
        Fetch the flat list of per-category artifacts for a visit.

        The list mixes the care plan pseudo-category with every specialist
        category; callers partition it by ``dataCategory``.

        Args:
            visit_id: Session/visit identifier

        Returns:
            List of raw category entries
        """
        pass

    async def aclose(self) -> None:
        """Release any held connections."""
        pass


class ArtifactFetchError(Exception):
    """Base exception for failures fetching an artifact from the backend."""
    pass


class TransportError(ArtifactFetchError):
    """Network or permission failure; indistinguishable from 'not ready yet'."""
    pass


class NotFoundError(ArtifactFetchError):
    """The backend has not created the resource (yet)."""
    pass


class MissingKeyError(ArtifactFetchError):
    """No session/visit identifier was supplied; waiting can never fix this."""
    pass
