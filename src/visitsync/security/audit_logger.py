"""
Privacy-preserving audit trail for recording sessions and visit artifacts.
"""

import hashlib
import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

from ..config.settings import Config
from ..models.artifact import ArtifactKey, ArtifactResult, Failed, Ready


class AuditLogger:
    """Audit logger for session lifecycle and artifact delivery events."""

    def __init__(self, config: Config):
        self.config = config
        self.enabled = config.security.enable_audit_logging
        self.logger = logging.getLogger("audit_logger")

        # Setup audit log file handler
        if self.enabled and not self._has_handler(config.security.audit_log_path):
            directory = os.path.dirname(config.security.audit_log_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            audit_handler = logging.FileHandler(config.security.audit_log_path)
            audit_formatter = logging.Formatter(
                '%(asctime)s - AUDIT - %(levelname)s - %(message)s'
            )
            audit_handler.setFormatter(audit_formatter)
            self.logger.addHandler(audit_handler)
            self.logger.setLevel(logging.INFO)

    def _has_handler(self, path: str) -> bool:
        target = os.path.abspath(path)
        return any(
            isinstance(h, logging.FileHandler) and h.baseFilename == target
            for h in self.logger.handlers
        )

    def log_session_started(self, session_id: str):
        """Log the start of a live recording session."""
        self._write({
            'event_type': 'session_start',
            'session_id_hash': self._hash_identifier(session_id),
            'action': 'Live recording session started'
        })

    def log_session_rejected(self, session_id: str, reason: str):
        """Log a session start that the controller refused."""
        self._write({
            'event_type': 'session_rejected',
            'session_id_hash': self._hash_identifier(session_id),
            'reason': reason,
            'action': 'Session start rejected'
        }, level=logging.WARNING)

    def log_session_ended(self, session_id: str, fragment_count: int):
        """Log the end of a live recording session."""
        self._write({
            'event_type': 'session_end',
            'session_id_hash': self._hash_identifier(session_id),
            'fragment_count': fragment_count,
            'action': 'Live recording session ended; artifact polling handed off'
        })

    def log_artifact_settled(self, session_id: Optional[str], key: ArtifactKey, result: ArtifactResult):
        """Log an artifact reaching a terminal state."""
        entry: Dict[str, Any] = {
            'event_type': 'artifact_settled',
            'session_id_hash': self._hash_identifier(session_id),
            'artifact': str(key),
            'status': result.status,
        }
        if isinstance(result, Ready):
            entry['attempts'] = result.attempts
            entry['action'] = 'Artifact delivered to client'
            self._write(entry)
        elif isinstance(result, Failed):
            entry['attempts'] = result.attempts
            entry['reason'] = result.reason.value
            entry['action'] = 'Artifact polling gave up'
            self._write(entry, level=logging.WARNING)

    def log_refresh(self, session_id: Optional[str], scope: str):
        """Log a manual refresh or retry."""
        self._write({
            'event_type': 'manual_refresh',
            'session_id_hash': self._hash_identifier(session_id),
            'scope': scope,
            'action': f"User requested refresh of {scope}"
        })

    def _write(self, audit_entry: Dict[str, Any], level: int = logging.INFO):
        if not self.enabled:
            return
        audit_entry['timestamp'] = datetime.now().isoformat()
        self.logger.log(level, json.dumps(audit_entry))

    def _hash_identifier(self, identifier: Optional[str]) -> str:
        """Hash session identifiers for audit logging privacy."""
        if not identifier:
            return "unknown"

        # Use SHA-256 for one-way hashing of identifiers
        return hashlib.sha256(identifier.encode()).hexdigest()[:16]
