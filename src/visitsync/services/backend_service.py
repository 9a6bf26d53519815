import logging
from typing import Any, Dict, List, Type
from ..providers.base import VisitBackend
from ..providers.http_backend import HttpVisitBackend
from ..providers.mock_backend import MockVisitBackend
from ..config.settings import Config

logger = logging.getLogger(__name__)


class BackendService(VisitBackend):
    """Visit backend service with provider abstraction."""

    PROVIDERS: Dict[str, Type[VisitBackend]] = {
        "http": HttpVisitBackend,
        "mock": MockVisitBackend,
    }

    def __init__(self, config: Config):
        self.config = config
        self.provider = self._create_provider()

    def _create_provider(self) -> VisitBackend:
        """Factory method to create the visit backend from config."""
        provider_name = self.config.backend.provider

        if provider_name not in self.PROVIDERS:
            raise ValueError(f"Unknown visit backend provider: {provider_name}")

        provider_class = self.PROVIDERS[provider_name]

        if provider_name == "http":
            if not self.config.backend.base_url:
                raise ValueError("Visit backend base_url not configured")
            return provider_class(
                base_url=self.config.backend.base_url,
                api_token=self.config.api_token,
                timeout=self.config.backend.timeout
            )

        elif provider_name == "mock":
            return provider_class(
                categories=[s.data_category for s in self.config.specialists],
                ready_after=self.config.backend.mock_ready_after
            )

        raise ValueError(f"Provider initialization not implemented: {provider_name}")

    async def fetch_visit_record(self, visit_id: str) -> Dict[str, Any]:
        return await self.provider.fetch_visit_record(visit_id)

    async def fetch_transcript(self, session_id: str) -> Dict[str, Any]:
        return await self.provider.fetch_transcript(session_id)

    async def fetch_visit_artifacts_by_category(self, visit_id: str) -> List[Dict[str, Any]]:
        return await self.provider.fetch_visit_artifacts_by_category(visit_id)

    async def aclose(self) -> None:
        await self.provider.aclose()
