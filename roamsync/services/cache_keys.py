"""Canonical cache keys.

Two logically identical requests must produce the same key, whatever the
order of their query parameters or body fields, and whether the query was
written into the path or passed separately.
"""

from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

NO_BODY = "-"


def format_param(value: Any) -> str:
    """Render one query value the way the backend expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value) if isinstance(value, (set, frozenset)) else value
        return ",".join(format_param(item) for item in items)
    if isinstance(value, Enum):
        return format_param(value.value)
    return str(value)


def split_endpoint(
    endpoint: str, params: Optional[Mapping[str, Any]] = None
) -> tuple[str, dict[str, str]]:
    """Separate an endpoint into its path and merged, rendered query.

    Args:
        endpoint: Path, possibly carrying a query string.
        params: Extra query parameters; None values are dropped.

    Returns:
        Tuple of (path, query parameters).
    """
    parts = urlsplit(endpoint)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    for name, value in (params or {}).items():
        if value is None:
            continue
        query[name] = format_param(value)
    path = parts.path or "/"
    if not path.startswith("/"):
        path = "/" + path
    return path, query


def body_digest(body: Any) -> str:
    """Stable short hash of a JSON body."""
    if body is None:
        return NO_BODY
    canonical = json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def make_cache_key(
    method: str,
    endpoint: str,
    params: Optional[Mapping[str, Any]] = None,
    body: Any = None,
) -> str:
    """Build the canonical key ``"<METHOD> <path>?<sorted query>#<body hash>"``.

    Example:
        >>> make_cache_key("get", "/spots?limit=5", {"offset": 10})
        'GET /spots?limit=5&offset=10#-'
    """
    path, query = split_endpoint(endpoint, params)
    encoded = urlencode(sorted(query.items()))
    return f"{method.upper()} {path}?{encoded}#{body_digest(body)}"
