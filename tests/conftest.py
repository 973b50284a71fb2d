"""Shared fixtures for the roamsync test suite."""

from __future__ import annotations

import pytest

from roamsync.adapters.cache import ResponseCache
from roamsync.adapters.storage import InMemoryStorage
from roamsync.config import ApiConfig, CacheConfig, ProfileConfig, StorageConfig, reset_config
from roamsync.domain.models import Credential, Identity
from roamsync.services import (
    ApiGateway,
    BootstrapOrchestrator,
    ProfileResolver,
    SessionStore,
)

from tests.fakes import BASE_URL, FakeClock, FakeTransport


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def cache(clock):
    return ResponseCache(default_ttl_seconds=300, clock=clock)


@pytest.fixture
def cache_config():
    return CacheConfig(
        default_ttl_seconds=300, location_ttl_seconds=120, catalog_ttl_seconds=600
    )


@pytest.fixture
def gateway(transport, cache, cache_config):
    return ApiGateway(
        transport=transport,
        cache=cache,
        api_config=ApiConfig(base_url=BASE_URL),
        cache_config=cache_config,
    )


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def storage_config(tmp_path):
    return StorageConfig(backend="memory", path=tmp_path / "storage.json")


@pytest.fixture
def session(gateway, storage, storage_config):
    return SessionStore(gateway=gateway, storage=storage, storage_config=storage_config)


@pytest.fixture
def profile_config():
    return ProfileConfig(local_fallback=False)


@pytest.fixture
def profiles(gateway, session, storage, storage_config, profile_config):
    resolver = ProfileResolver(
        gateway=gateway,
        sessions=session,
        storage=storage,
        profile_config=profile_config,
        storage_config=storage_config,
    )
    yield resolver
    resolver.close()


@pytest.fixture
def orchestrator(session, profiles):
    orch = BootstrapOrchestrator(session=session, profiles=profiles)
    yield orch
    orch.close()


@pytest.fixture
def identity():
    return Identity(id="u1", email="ana@example.com", email_verified=True, username="ana")


@pytest.fixture
def credential():
    return Credential(token="tok-1", refresh_token="refresh-1")
