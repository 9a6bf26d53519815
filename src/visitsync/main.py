"""
Main application entry point for VisitSync.
"""

import asyncio
import logging
import sys
from typing import AsyncIterable, Dict, List, Optional

from .config.settings import Config
from .live_handler import LiveTranscriptionHandler, RawMessage
from .models.artifact import ArtifactKey, ArtifactResult, Failed, Pending, Ready
from .security.audit_logger import AuditLogger
from .services.backend_service import BackendService
from .services.recording_session import RecordingSessionController
from .services.retry_scheduler import RetryScheduler
from .services.visit_aggregator import VisitDataAggregator


class VisitSyncApp:
    """Main application wiring live sessions to visit artifact polling."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        config: Optional[Config] = None,
        scheduler: Optional[RetryScheduler] = None
    ):
        self.config = config or Config(config_path)

        # Setup logging
        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if self.config.log_file:
            handlers.append(logging.FileHandler(self.config.log_file))
        logging.basicConfig(
            level=getattr(logging, str(self.config.log_level).upper(), logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=handlers
        )
        self.logger = logging.getLogger(__name__)

        if not self.config.validate():
            raise ValueError("Invalid configuration")

        self.backend = BackendService(self.config)
        self.audit_logger = AuditLogger(self.config)
        self.scheduler = scheduler or RetryScheduler()
        self.aggregators: Dict[str, VisitDataAggregator] = {}

    def new_recording(self, **sinks) -> RecordingSessionController:
        """Create a controller whose ended session is handed straight to artifact polling."""
        return RecordingSessionController(
            on_session_ended=self.watch_visit,
            audit_logger=self.audit_logger,
            **sinks
        )

    def watch_visit(self, session_id: Optional[str]) -> VisitDataAggregator:
        """Start polling every artifact of a visit, reusing a running aggregator for the same id."""
        if session_id and session_id in self.aggregators:
            return self.aggregators[session_id]

        self.logger.info(f"Watching visit artifacts for session {session_id}")
        aggregator = VisitDataAggregator.from_config(
            self.config,
            backend=self.backend,
            session_id=session_id,
            scheduler=self.scheduler,
            audit_logger=self.audit_logger
        )
        if session_id:
            self.aggregators[session_id] = aggregator
        aggregator.start()
        return aggregator

    async def follow_live_session(self, messages: AsyncIterable[RawMessage]) -> Optional[VisitDataAggregator]:
        """
        Track a live transcription stream, then poll the artifacts of the session it produced.

        Args:
            messages: Live transcription events

        Returns:
            Aggregator for the ended session, or None if no session ended
        """
        controller = self.new_recording()
        handler = LiveTranscriptionHandler(controller)
        try:
            session_id = await handler.handle_stream(messages)
        finally:
            controller.close()

        if not session_id:
            self.logger.warning("Live stream finished without a session")
            return None
        return self.aggregators.get(session_id)

    async def close(self):
        """Stop all polling and release the backend."""
        for aggregator in self.aggregators.values():
            aggregator.close()
        self.aggregators.clear()
        await self.backend.aclose()


def describe_result(key: ArtifactKey, result: ArtifactResult) -> str:
    if isinstance(result, Ready):
        return f"{key}: ready after {result.attempts} attempt(s)"
    if isinstance(result, Failed):
        detail = f" ({result.last_error})" if result.last_error else ""
        return f"{key}: failed, {result.reason.value} after {result.attempts} attempt(s){detail}"
    if isinstance(result, Pending):
        return f"{key}: pending, attempt {result.attempt}/{result.max_attempts}"
    return f"{key}: unknown"


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI usage."""
    import argparse

    parser = argparse.ArgumentParser(description='VisitSync - wait for visit artifacts to be produced')
    parser.add_argument('--session-id', type=str, required=True, help='Session/visit ID to watch')
    parser.add_argument('--config', type=str, help='Path to config file')
    parser.add_argument('--backend', type=str, choices=sorted(BackendService.PROVIDERS), help='Visit backend provider')
    parser.add_argument('--base-url', type=str, help='Visit API base URL')

    args = parser.parse_args(argv)

    config = Config(args.config)
    if args.backend:
        config.backend.provider = args.backend
    if args.base_url:
        config.backend.base_url = args.base_url

    app = VisitSyncApp(config=config)
    try:
        aggregator = app.watch_visit(args.session_id)
        snapshot = await aggregator.wait_settled()
    finally:
        await app.close()

    for key, result in snapshot.items():
        print(describe_result(key, result))

    # Only the visit note and transcript are required
    required = (ArtifactKey.visit_note(), ArtifactKey.transcript())
    return 1 if any(isinstance(snapshot[key], Failed) for key in required) else 0


def run():
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
