from .base import (
    ArtifactFetchError,
    MissingKeyError,
    NotFoundError,
    TransportError,
    VisitBackend,
)
from .http_backend import HttpVisitBackend
from .mock_backend import MockVisitBackend

__all__ = [
    "ArtifactFetchError",
    "MissingKeyError",
    "NotFoundError",
    "TransportError",
    "VisitBackend",
    "HttpVisitBackend",
    "MockVisitBackend",
]
