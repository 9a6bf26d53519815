import json
import logging
from typing import Any, AsyncIterable, Dict, Optional, Union
from pydantic import ValidationError
from .models.live_messages import (
    SessionEndedMessage,
    SessionStartedMessage,
    TranscriptFragmentMessage,
)
from .models.session import SessionStatus
from .services.recording_session import RecordingSessionController

logger = logging.getLogger(__name__)

RawMessage = Union[str, bytes, Dict[str, Any]]


class LiveTranscriptionHandler:
    """Feeds the live transcription event stream into a RecordingSessionController."""

    def __init__(self, controller: RecordingSessionController):
        self.controller = controller

    async def handle_stream(self, messages: AsyncIterable[RawMessage]) -> Optional[str]:
        """
        Consume events until the session ends or the stream closes.

        A stream that closes while still recording ends the session, so the
        visit artifacts are still fetched.

        Returns:
            The ended session id, or None if no session ended
        """
        ended_id: Optional[str] = None
        try:
            async for raw in messages:
                ended_id = self.handle_message(raw)
                if ended_id:
                    break
        except Exception as e:
            logger.error(f"Live transcription stream error: {str(e)}", exc_info=True)
        finally:
            if ended_id is None and self.controller.status is SessionStatus.RECORDING:
                logger.info("Live stream closed while recording, ending session")
                ended_id = self.controller.session_ended()
        return ended_id

    def handle_message(self, raw: RawMessage) -> Optional[str]:
        """
        Dispatch one event.

        Returns:
            The session id if this event ended the session
        """
        try:
            message = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except ValueError as e:
            logger.warning(f"Ignoring undecodable live message: {e}")
            return None

        if not isinstance(message, dict):
            logger.warning(f"Ignoring live message that is not an object: {message!r}")
            return None

        message_type = message.get("type")
        logger.debug(f"Received message type: {message_type}")

        try:
            if message_type == "session_started":
                start_msg = SessionStartedMessage(**message)
                self.controller.session_started(start_msg.session_id)

            elif message_type == "transcript_fragment":
                fragment_msg = TranscriptFragmentMessage(**message)
                self.controller.transcript_fragment(
                    fragment_msg.text,
                    fragment_msg.is_partial,
                    fragment_msg.timestamp
                )

            elif message_type == "session_ended":
                SessionEndedMessage(**message)
                return self.controller.session_ended()

            else:
                logger.warning(f"Unknown message type: {message_type}")

        except ValidationError as e:
            logger.warning(f"Invalid {message_type} message: {e}")

        return None
