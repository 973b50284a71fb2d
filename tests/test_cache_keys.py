"""Tests for canonical cache keys and the invalidation policy."""

from roamsync.domain.models import TransportMode
from roamsync.services.cache_keys import (
    body_digest,
    format_param,
    make_cache_key,
    split_endpoint,
)
from roamsync.services.invalidation import InvalidationPolicy, resource_family


def test_query_order_does_not_matter():
    a = make_cache_key("GET", "/spots", {"limit": 20, "offset": 40})
    b = make_cache_key("GET", "/spots", {"offset": 40, "limit": 20})
    assert a == b


def test_inline_query_equals_explicit_params():
    inline = make_cache_key("GET", "/spots?offset=40&limit=20")
    explicit = make_cache_key("get", "/spots", {"limit": 20, "offset": 40})
    assert inline == explicit


def test_none_params_are_dropped():
    assert make_cache_key("GET", "/spots", {"limit": 5, "spot_type": None}) == (
        make_cache_key("GET", "/spots", {"limit": 5})
    )


def test_body_field_order_does_not_matter():
    a = make_cache_key("POST", "/spots", body={"name": "Exit 12", "lat": 1.5})
    b = make_cache_key("POST", "/spots", body={"lat": 1.5, "name": "Exit 12"})
    assert a == b


def test_different_bodies_produce_different_keys():
    a = make_cache_key("POST", "/spots", body={"name": "A"})
    b = make_cache_key("POST", "/spots", body={"name": "B"})
    assert a != b


def test_method_is_part_of_the_key():
    assert make_cache_key("GET", "/spots") != make_cache_key("DELETE", "/spots")


def test_key_format():
    key = make_cache_key("get", "/spots?limit=5", {"offset": 10})
    assert key == "GET /spots?limit=5&offset=10#-"


def test_format_param_values():
    assert format_param(True) == "true"
    assert format_param(False) == "false"
    assert format_param([TransportMode.CYCLING, TransportMode.WALKING]) == "cycling,walking"
    assert format_param({"b", "a"}) == "a,b"
    assert format_param(2.5) == "2.5"


def test_split_endpoint_normalizes_path():
    path, query = split_endpoint("spots/nearby?radius=10", {"limit": 3})
    assert path == "/spots/nearby"
    assert query == {"radius": "10", "limit": "3"}


def test_body_digest_of_none():
    assert body_digest(None) == "-"
    assert len(body_digest({"a": 1})) == 16


class TestInvalidationPolicy:
    """Resource family to cache prefix map."""

    def test_resource_family_is_first_segment(self):
        assert resource_family("/spots/42/reviews") == "spots"
        assert resource_family("/users/u1/profile?x=1") == "users"
        assert resource_family("/") == ""

    def test_default_rules(self):
        policy = InvalidationPolicy()
        assert policy.prefixes_for("/spots/42") == ("/spots",)
        assert policy.prefixes_for("/users/u1/profile") == ("/users/",)
        assert "/auth/me" in policy.prefixes_for("/auth/logout")

    def test_unknown_family_invalidates_nothing(self):
        assert InvalidationPolicy().prefixes_for("/health") == ()

    def test_custom_rules(self):
        policy = InvalidationPolicy({"reviews": ("/spots", "/reviews")})
        assert policy.prefixes_for("/reviews/9") == ("/spots", "/reviews")
