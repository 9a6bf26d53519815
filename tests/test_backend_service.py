import pytest

from visitsync.config.settings import Config
from visitsync.providers.base import MissingKeyError, NotFoundError
from visitsync.providers.http_backend import HttpVisitBackend
from visitsync.providers.mock_backend import MockVisitBackend
from visitsync.services.backend_service import BackendService
from visitsync.services.readiness import (
    Complete,
    Incomplete,
    care_plan_readiness,
    specialist_readiness,
    visit_note_readiness,
)


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.delenv("VISITSYNC_BACKEND", raising=False)
    monkeypatch.delenv("VISITSYNC_BASE_URL", raising=False)
    return Config(str(tmp_path / "config.yaml"))


def test_creates_http_backend(config):
    config.backend.provider = "http"
    config.backend.base_url = "https://visits.example.test"

    service = BackendService(config)

    assert isinstance(service.provider, HttpVisitBackend)
    assert service.provider.base_url == "https://visits.example.test"


def test_http_backend_requires_base_url(config):
    config.backend.provider = "http"
    config.backend.base_url = ""

    with pytest.raises(ValueError):
        BackendService(config)


def test_unknown_provider_is_rejected(config):
    config.backend.provider = "carrier-pigeon"

    with pytest.raises(ValueError):
        BackendService(config)


def test_mock_backend_covers_configured_specialists(config):
    config.backend.provider = "mock"
    config.backend.mock_ready_after = 1

    service = BackendService(config)

    assert isinstance(service.provider, MockVisitBackend)
    assert service.provider.categories == [s.data_category for s in config.specialists]
    assert service.provider.ready_after == 1


@pytest.mark.asyncio
async def test_mock_backend_becomes_ready_after_configured_polls():
    backend = MockVisitBackend(categories=["adaExpert", "kidneyExpert"], ready_after=2, latency=0,
                               silent_categories=["kidneyExpert"])

    for _ in range(2):
        assert isinstance(visit_note_readiness(await backend.fetch_visit_record("v-1")), Incomplete)
        with pytest.raises(NotFoundError):
            await backend.fetch_transcript("v-1")
        assert await backend.fetch_visit_artifacts_by_category("v-1") == []

    assert isinstance(visit_note_readiness(await backend.fetch_visit_record("v-1")), Complete)
    assert (await backend.fetch_transcript("v-1"))["sessionId"] == "v-1"

    artifacts = await backend.fetch_visit_artifacts_by_category("v-1")
    assert isinstance(care_plan_readiness()(artifacts), Complete)
    assert isinstance(specialist_readiness("adaExpert")(artifacts), Complete)
    assert isinstance(specialist_readiness("kidneyExpert")(artifacts), Incomplete)


@pytest.mark.asyncio
async def test_mock_backend_rejects_missing_key():
    backend = MockVisitBackend(latency=0)

    with pytest.raises(MissingKeyError):
        await backend.fetch_visit_record("")


@pytest.mark.asyncio
async def test_service_delegates_to_provider(config):
    config.backend.provider = "mock"
    config.backend.mock_ready_after = 0
    service = BackendService(config)
    service.provider.latency = 0

    record = await service.fetch_visit_record("v-1")
    assert record["soapNote"] is not None
    assert service.provider.calls == {"visit": 1}
    await service.aclose()
