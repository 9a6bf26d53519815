"""
HTTP Visit Backend

Reads pipeline artifacts from the visit REST API.
Uses httpx for HTTP requests - no additional SDK required.
"""

import logging
from typing import Any, Dict, List, Optional
import httpx
from .base import VisitBackend, TransportError, NotFoundError, MissingKeyError

logger = logging.getLogger(__name__)


class HttpVisitBackend(VisitBackend):
    """Visit backend over the REST API."""

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self.client = client or httpx.AsyncClient(timeout=timeout, headers=headers)
        logger.info(f"Initialized HTTP visit backend at {self.base_url}")

    async def fetch_visit_record(self, visit_id: str) -> Dict[str, Any]:
        return await self._get_json(f"/visits/{self._require_key(visit_id)}")

    async def fetch_transcript(self, session_id: str) -> Dict[str, Any]:
        return await self._get_json(f"/transcripts/{self._require_key(session_id)}")

    async def fetch_visit_artifacts_by_category(self, visit_id: str) -> List[Dict[str, Any]]:
        data = await self._get_json(f"/visits/{self._require_key(visit_id)}/artifacts")
        if isinstance(data, dict):
            data = data.get("items")
        if not isinstance(data, list):
            # Treated downstream as "not processed yet"
            logger.debug(f"Artifacts response for {visit_id} is not a list")
            return []
        return data

    async def aclose(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _require_key(key: Optional[str]) -> str:
        if not key or not key.strip():
            raise MissingKeyError("No session ID available")
        return key.strip()

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Request to {path} failed: {e}")
            raise TransportError(f"Request to {path} failed: {e}")

        if response.status_code == 404:
            logger.debug(f"{path} not found yet")
            raise NotFoundError(f"{path} not found")

        if response.status_code >= 400:
            error_text = response.text[:500]
            logger.error(f"Visit API error {response.status_code} on {path}: {error_text}")
            raise TransportError(f"Visit API error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {path}: {e}")
