"""End-to-end launch scenario through the default container."""

import pytest
import pytest_asyncio

from roamsync.config import ApiConfig, AppConfig, StorageConfig
from roamsync.container import Container
from roamsync.domain.models import Credential, Identity
from roamsync.domain.states import ProfileStatus, RouteKind, SessionState
from roamsync.ports.storage import KeyValueStoragePort
from roamsync.ports.transport import HttpTransportPort
from roamsync.services import BootstrapOrchestrator

from tests.fakes import BASE_URL, FakeTransport, envelope, error_body, user_json


@pytest_asyncio.fixture
async def app(tmp_path):
    config = AppConfig(
        api=ApiConfig(base_url=BASE_URL),
        storage=StorageConfig(backend="memory", path=tmp_path / "storage.json"),
    )
    transport = FakeTransport()
    container = Container.create_default(config)
    container.register(HttpTransportPort, lambda: transport)
    yield container, transport
    await container.aclose()


@pytest.mark.asyncio
async def test_fresh_install_to_home(app):
    container, transport = app
    orchestrator = container.resolve(BootstrapOrchestrator)
    session = orchestrator.session
    profiles = orchestrator.profiles

    # Fresh install: nothing stored, no network
    route = await orchestrator.start()
    assert session.state == SessionState.anonymous()
    assert route.kind is RouteKind.GO_LOGIN
    assert transport.calls == []

    # Sign-in, then the backend has no profile yet
    transport.add("GET", "/users/u1/profile", 404, error_body("Profile not found"))
    await session.sign_in(
        Credential(token="tok-1"), Identity(id="u1", email="ana@example.com")
    )
    # The profile loads as soon as the identity is known
    assert profiles.state.status is ProfileStatus.NEEDS_ONBOARDING
    assert orchestrator.route.kind is RouteKind.GO_ONBOARDING

    # Onboarding completes
    transport.add("PUT", "/users/u1/profile", 200, envelope(None))
    result = await profiles.update_profile(
        {"selectedModes": ["hitchhiking"], "onboardingCompleted": True}
    )

    assert result.is_success
    assert profiles.state.status is ProfileStatus.READY
    assert orchestrator.route.kind is RouteKind.GO_HOME
    assert transport.calls_to("PUT", "/users/u1/profile")[0].authorization == "Bearer tok-1"


@pytest.mark.asyncio
async def test_relaunch_restores_session(app):
    container, transport = app
    storage = container.resolve(KeyValueStoragePort)
    await storage.set_item(container.config.storage.token_key, {"accessToken": "tok-9"})
    transport.add("GET", "/auth/me", body=envelope(user_json()))
    transport.add(
        "GET",
        "/users/u1/profile",
        body=envelope({"userId": "u1", "travelModes": ["cycling"], "onboardingCompleted": True}),
    )

    orchestrator = container.resolve(BootstrapOrchestrator)
    route = await orchestrator.start()

    assert orchestrator.session.state.is_authenticated
    assert route.kind is RouteKind.GO_HOME
    assert [c.path for c in transport.calls] == ["/auth/me", "/users/u1/profile"]


@pytest.mark.asyncio
async def test_sign_out_returns_to_login(app):
    container, transport = app
    orchestrator = container.resolve(BootstrapOrchestrator)
    await orchestrator.start()
    await orchestrator.session.sign_in(
        Credential(token="tok-1"), Identity(id="u1", email="ana@example.com")
    )

    await orchestrator.session.sign_out()

    assert orchestrator.route.kind is RouteKind.GO_LOGIN
    assert orchestrator.profiles.state.status is ProfileStatus.IDLE


@pytest.mark.asyncio
async def test_shutdown_closes_transport(tmp_path):
    config = AppConfig(
        api=ApiConfig(base_url=BASE_URL),
        storage=StorageConfig(backend="memory", path=tmp_path / "storage.json"),
    )
    transport = FakeTransport()
    container = Container.create_default(config)
    container.register(HttpTransportPort, lambda: transport)
    await container.resolve(BootstrapOrchestrator).start()

    await container.aclose()

    assert transport.closed
