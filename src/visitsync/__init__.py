"""
VisitSync - Visit Artifact Reconciliation for an Ambient Clinical Scribe

Tracks live recording sessions and polls the visit backend until the
asynchronously produced SOAP note, transcript, care plan and specialist
recommendations are ready.
"""

__version__ = "1.0.0"
__author__ = "VisitSync Contributors"

from .main import VisitSyncApp
from .config.settings import Config

__all__ = ["VisitSyncApp", "Config"]
