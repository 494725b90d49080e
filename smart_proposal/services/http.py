from __future__ import annotations

from typing import Optional

import httpx


_transport: Optional[httpx.AsyncBaseTransport] = None


def set_transport(transport: Optional[httpx.AsyncBaseTransport]) -> None:
    """Route every client built by :func:`async_client` through ``transport``."""
    global _transport
    _transport = transport


def async_client(timeout: float = 30.0, **kwargs) -> httpx.AsyncClient:
    if _transport is not None:
        kwargs.setdefault("transport", _transport)
    kwargs.setdefault("follow_redirects", True)
    return httpx.AsyncClient(timeout=timeout, **kwargs)
