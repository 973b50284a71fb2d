"""Tests for the bootstrap decision and its orchestrator."""

import itertools

import pytest

from roamsync.domain.errors import ApiErrorKind
from roamsync.domain.models import Identity, TravelProfile
from roamsync.domain.states import (
    ProfileState,
    ProfileStatus,
    Route,
    RouteKind,
    SessionState,
    SessionStatus,
)
from roamsync.services import decide

from tests.fakes import envelope, error_body, profile_json

IDENTITY = Identity(id="u1", email="ana@example.com")


def session_states():
    return [
        SessionState.unknown(),
        SessionState.authenticating(),
        SessionState.authenticated(IDENTITY),
        SessionState.anonymous(),
    ]


def profile_states():
    return [
        ProfileState.idle(),
        ProfileState.loading(),
        ProfileState.ready(TravelProfile("u1", onboarding_completed=False)),
        ProfileState.ready(TravelProfile("u1", onboarding_completed=True)),
        ProfileState.needs_onboarding(),
        ProfileState.error("Backend down", ApiErrorKind.SERVER),
    ]


class TestDecide:
    """The pure decision table."""

    def test_every_pair_yields_exactly_one_route(self):
        for session, profile in itertools.product(session_states(), profile_states()):
            route = decide(session, profile)
            assert isinstance(route, Route)
            assert route.kind in RouteKind

    def test_every_status_is_covered(self):
        assert {s.status for s in session_states()} == set(SessionStatus)
        assert {p.status for p in profile_states()} == set(ProfileStatus)

    def test_all_route_kinds_are_reachable(self):
        kinds = {
            decide(s, p).kind
            for s, p in itertools.product(session_states(), profile_states())
        }
        assert kinds == set(RouteKind)

    @pytest.mark.parametrize("profile", profile_states())
    def test_unsettled_session_waits_for_login(self, profile):
        assert decide(SessionState.unknown(), profile).kind is RouteKind.WAIT_LOGIN
        assert decide(SessionState.authenticating(), profile).kind is RouteKind.WAIT_LOGIN

    @pytest.mark.parametrize("profile", profile_states())
    def test_anonymous_goes_to_login(self, profile):
        assert decide(SessionState.anonymous(), profile).kind is RouteKind.GO_LOGIN

    @pytest.mark.parametrize(
        "profile,kind",
        [
            (ProfileState.idle(), RouteKind.WAIT_PROFILE),
            (ProfileState.loading(), RouteKind.WAIT_PROFILE),
            (ProfileState.needs_onboarding(), RouteKind.GO_ONBOARDING),
            (ProfileState.ready(TravelProfile("u1")), RouteKind.GO_ONBOARDING),
            (
                ProfileState.ready(TravelProfile("u1", onboarding_completed=True)),
                RouteKind.GO_HOME,
            ),
            (ProfileState.error("Backend down"), RouteKind.SHOW_ERROR),
        ],
    )
    def test_authenticated_rows(self, profile, kind):
        assert decide(SessionState.authenticated(IDENTITY), profile).kind is kind

    def test_error_route_carries_reason(self):
        route = decide(
            SessionState.authenticated(IDENTITY), ProfileState.error("Backend down")
        )
        assert route == Route(RouteKind.SHOW_ERROR, "Backend down")
        assert route.offers_retry

    def test_waiting_routes(self):
        assert Route(RouteKind.WAIT_LOGIN).is_waiting
        assert Route(RouteKind.WAIT_PROFILE).is_waiting
        assert not Route(RouteKind.GO_HOME).is_waiting


class TestBootstrapOrchestrator:
    """Retry, skip and re-evaluation around ``decide``."""

    @pytest.mark.asyncio
    async def test_initial_route_waits_for_login(self, orchestrator):
        assert orchestrator.route.kind is RouteKind.WAIT_LOGIN

    @pytest.mark.asyncio
    async def test_sign_in_alone_loads_profile(
        self, orchestrator, session, transport, credential, identity
    ):
        transport.add("GET", "/users/u1/profile", body=envelope(profile_json()))

        await session.sign_in(credential, identity)

        assert orchestrator.route.kind is RouteKind.GO_HOME
        assert len(transport.calls_to("GET", "/users/u1/profile")) == 1

    @pytest.mark.asyncio
    async def test_sign_in_without_profile_goes_to_onboarding(
        self, orchestrator, session, transport, credential, identity
    ):
        transport.add("GET", "/users/u1/profile", 404, error_body("none"))

        await session.sign_in(credential, identity)

        assert orchestrator.route.kind is RouteKind.GO_ONBOARDING

    @pytest.mark.asyncio
    async def test_resolve_loads_idle_profile(
        self, orchestrator, profiles, session, transport, credential, identity
    ):
        transport.add("GET", "/users/u1/profile", body=envelope(profile_json()))
        await session.sign_in(credential, identity)
        await profiles.clear()
        assert orchestrator.route.kind is RouteKind.WAIT_PROFILE

        route = await orchestrator.resolve()

        assert route.kind is RouteKind.GO_HOME

    @pytest.mark.asyncio
    async def test_route_listeners_see_every_change(
        self, orchestrator, session, transport, credential, identity
    ):
        seen = []
        orchestrator.subscribe(seen.append)
        transport.add("GET", "/users/u1/profile", 404, error_body("none"))

        await orchestrator.start()
        await session.sign_in(credential, identity)
        await orchestrator.resolve()

        assert [r.kind for r in seen] == [
            RouteKind.GO_LOGIN,
            RouteKind.WAIT_PROFILE,
            RouteKind.GO_ONBOARDING,
        ]

    @pytest.mark.asyncio
    async def test_retry_reloads_after_error(
        self, orchestrator, session, transport, credential, identity
    ):
        transport.add("GET", "/users/u1/profile", 503, error_body("Maintenance"))
        transport.add("GET", "/users/u1/profile", body=envelope(profile_json()))
        await session.sign_in(credential, identity)

        first = await orchestrator.resolve()
        assert first == Route(RouteKind.SHOW_ERROR, "Maintenance")

        second = await orchestrator.retry()
        assert second.kind is RouteKind.GO_HOME

    @pytest.mark.asyncio
    async def test_retry_outside_error_does_nothing(self, orchestrator, transport):
        await orchestrator.start()
        route = await orchestrator.retry()

        assert route.kind is RouteKind.GO_LOGIN
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_skip_goes_home_until_identity_changes(
        self, orchestrator, session, transport, credential, identity
    ):
        transport.add("GET", "/users/u1/profile", 503, error_body("Maintenance"))
        await session.sign_in(credential, identity)
        await orchestrator.resolve()

        assert orchestrator.skip().kind is RouteKind.GO_HOME
        # Still skipped after another failed attempt
        await orchestrator.profiles.load_profile()
        assert orchestrator.route.kind is RouteKind.GO_HOME

        await session.sign_out(notify_backend=False)
        assert orchestrator.route.kind is RouteKind.GO_LOGIN

        await session.sign_in(credential, identity)
        await orchestrator.resolve()
        assert orchestrator.route.kind is RouteKind.SHOW_ERROR

    @pytest.mark.asyncio
    async def test_skip_outside_error_does_nothing(self, orchestrator):
        await orchestrator.start()
        assert orchestrator.skip().kind is RouteKind.GO_LOGIN
