"""Shared HTTP plumbing for gateway adapters.

Adapters either receive a long-lived ``httpx.AsyncClient`` (tests inject one
with a mock transport) or open a short-lived client per call. Every request
carries an explicit timeout.
"""

from contextlib import asynccontextmanager

import httpx


@asynccontextmanager
async def client_session(client: httpx.AsyncClient | None, timeout: float):
    if client is not None:
        yield client
    else:
        async with httpx.AsyncClient(timeout=timeout) as session:
            yield session


def json_body(response: httpx.Response) -> dict:
    """Decode a JSON object body; anything else decodes to an empty dict."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
