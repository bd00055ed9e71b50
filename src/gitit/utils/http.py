"""HTTP helpers shared by providers and the cache store."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

import httpx

USER_AGENT = "gitit"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


def normalize_headers(headers: Optional[Mapping[str, Optional[str]]] = None) -> Dict[str, str]:
    """Lower-case header names and drop headers without a value."""
    normalized: Dict[str, str] = {}
    for key, value in (headers or {}).items():
        if not value:
            continue
        normalized[key.lower()] = value
    return normalized


def auth_headers(auth: Optional[str]) -> Dict[str, Optional[str]]:
    return {"Authorization": f"Bearer {auth}" if auth else None}


def new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=DEFAULT_TIMEOUT,
        headers={"User-Agent": USER_AGENT},
    )
