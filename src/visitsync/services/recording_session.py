import logging
import time
from typing import Callable, Optional
from ..models.session import Session, SessionStatus, TranscriptFragment
from ..security.audit_logger import AuditLogger

logger = logging.getLogger(__name__)

StateChangeSink = Callable[[SessionStatus, str], None]
FragmentSink = Callable[[TranscriptFragment], None]
SessionEndedSink = Callable[[str], None]


class RecordingSessionController:
    """State machine for one live recording: Idle -> Recording -> Ended.

    Only entering Recording and entering Ended are reported through
    ``on_state_change``. Transcript fragments go to ``on_fragment``. When the
    session ends its id is handed to ``on_session_ended`` exactly once.
    Ended is terminal; a new recording needs a new controller.
    """

    def __init__(
        self,
        on_state_change: Optional[StateChangeSink] = None,
        on_fragment: Optional[FragmentSink] = None,
        on_session_ended: Optional[SessionEndedSink] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        self.on_state_change = on_state_change
        self.on_fragment = on_fragment
        self.on_session_ended = on_session_ended
        self.audit_logger = audit_logger

        self._status = SessionStatus.IDLE
        self._session: Optional[Session] = None
        self._closed = False

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def session_id(self) -> Optional[str]:
        return self._session.id if self._session else None

    @property
    def current_text(self) -> str:
        return self._session.current_text if self._session else ""

    def session_started(self, session_id: str) -> bool:
        """
        Move Idle -> Recording under ``session_id``.

        A repeat with the current id is a no-op. A different id while
        recording, or any start after the session ended, is rejected and the
        first id stays authoritative.

        Returns:
            True if the controller is recording under ``session_id`` afterwards
        """
        if self._closed:
            logger.warning("Ignoring session start on a closed controller")
            return False

        if not session_id or not session_id.strip():
            logger.warning("Ignoring session start without a session ID")
            return False

        if self._status is SessionStatus.RECORDING:
            if session_id == self._session.id:
                logger.debug(f"Session {session_id} already recording")
                return True
            logger.warning(
                f"Rejected session start {session_id}: session {self._session.id} is still recording"
            )
            self._audit_rejected(session_id, "overlapping session")
            return False

        if self._status is SessionStatus.ENDED:
            logger.warning(f"Rejected session start {session_id}: session {self._session.id} already ended")
            self._audit_rejected(session_id, "session already ended")
            return False

        self._session = Session(id=session_id, status=SessionStatus.RECORDING)
        self._status = SessionStatus.RECORDING
        logger.info(f"🎙️  Recording session {session_id}")
        if self.audit_logger:
            self.audit_logger.log_session_started(session_id)
        self._emit(self.on_state_change, SessionStatus.RECORDING, session_id)
        return True

    def transcript_fragment(self, text: str, is_partial: bool, timestamp: Optional[float] = None) -> bool:
        """
        Apply a live transcript fragment to the current session.

        Args:
            text: Fragment text
            is_partial: Whether the next fragment supersedes this one
            timestamp: Epoch seconds; the receive time when omitted

        Returns:
            True if the fragment became the current fragment
        """
        if self._closed or self._status is not SessionStatus.RECORDING:
            logger.debug(f"Dropping transcript fragment while {self._status.value}")
            return False

        fragment = TranscriptFragment(
            text=text,
            is_partial=is_partial,
            timestamp=time.time() if timestamp is None else timestamp
        )
        if not self._session.apply_fragment(fragment):
            logger.debug(f"Dropping stale transcript fragment at {fragment.timestamp}")
            return False

        self._emit(self.on_fragment, fragment)
        return True

    def session_ended(self) -> Optional[str]:
        """
        Move Recording -> Ended and hand off the session id.

        Returns:
            The ended session id, or None if there was nothing to end
        """
        if self._closed or self._status is not SessionStatus.RECORDING:
            logger.warning(f"Ignoring session end while {self._status.value}")
            return None

        session_id = self._session.id
        self._session.status = SessionStatus.ENDED
        self._status = SessionStatus.ENDED
        logger.info(
            f"Session {session_id} ended with {len(self._session.transcript_fragments)} transcript fragment(s)"
        )
        if self.audit_logger:
            self.audit_logger.log_session_ended(session_id, len(self._session.transcript_fragments))

        self._emit(self.on_state_change, SessionStatus.ENDED, session_id)
        self._emit(self.on_session_ended, session_id)
        return session_id

    def handle_session_update(self, session_id: Optional[str]) -> bool:
        """Combined callback form: an id means the session started, None means it ended."""
        if session_id:
            return self.session_started(session_id)
        return self.session_ended() is not None

    def close(self) -> None:
        """Discard the session. Later events are ignored."""
        if self._closed:
            return
        self._closed = True
        self._session = None
        logger.debug("Recording session controller closed")

    def _audit_rejected(self, session_id: str, reason: str) -> None:
        if self.audit_logger:
            self.audit_logger.log_session_rejected(session_id, reason)

    @staticmethod
    def _emit(sink: Optional[Callable], *args) -> None:
        if sink is None:
            return
        try:
            sink(*args)
        except Exception as e:
            logger.error(f"Session listener failed: {e}", exc_info=True)
