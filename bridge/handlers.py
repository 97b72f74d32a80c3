"""
Handler interface (Protocol) and the built-in handler wrappers.

Anything callable as `handler(request) -> InvocationResponse` can sit behind
the adapter. ASGI apps (FastAPI, Starlette) are driven in-process through
httpx's ASGI transport, one event loop per invocation.
"""
from __future__ import annotations

import asyncio
import importlib
from typing import Any, Protocol

import httpx

from bridge.errors import HandlerImportError
from bridge.models import InvocationRequest, InvocationResponse


# Recomputed by httpx from the buffered body
_FRAMING_HEADERS = {"content-length", "transfer-encoding"}


class Handler(Protocol):
    """Protocol every handler behind the adapter satisfies."""

    def __call__(self, request: InvocationRequest) -> InvocationResponse:
        ...


def group_header_items(items) -> dict[str, str | list[str]]:
    """Group (name, value) pairs, keeping order; repeated names become lists."""
    headers: dict[str, str | list[str]] = {}
    for name, value in items:
        existing = headers.get(name)
        if existing is None:
            headers[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            headers[name] = [existing, value]
    return headers


class AsgiHandler:
    """Runs an ASGI application as a handler."""

    def __init__(self, app: Any, base_url: str = "http://function.local", root_path: str = ""):
        self.app = app
        self.base_url = base_url
        self.root_path = root_path

    def __call__(self, request: InvocationRequest) -> InvocationResponse:
        return asyncio.run(self.dispatch(request))

    def build_request(self, request: InvocationRequest) -> httpx.Request:
        if request.raw_path:
            # Already percent-encoded; httpx keeps existing escapes such as %2F
            url = httpx.URL(self.base_url.rstrip("/") + request.raw_path)
        else:
            url = httpx.URL(self.base_url).copy_with(path=request.path)
        headers = [
            (name, value) for name, value in request.header_items()
            if name not in _FRAMING_HEADERS
        ]
        return httpx.Request(
            request.method,
            url,
            params=request.query_items(),
            headers=headers,
            content=request.body,
        )

    async def dispatch(self, request: InvocationRequest) -> InvocationResponse:
        transport = httpx.ASGITransport(app=self.app, root_path=self.root_path)
        # send() skips the client's default headers, so the app sees only
        # what the caller sent
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.send(self.build_request(request), stream=True)
            try:
                # Raw bytes: content-encoding and content-length stay valid
                body = b"".join([chunk async for chunk in response.aiter_raw()])
            finally:
                await response.aclose()
            return InvocationResponse(
                status=response.status_code,
                headers=group_header_items(response.headers.multi_items()),
                body=body,
            )


def load_handler(import_string: str, interface: str = "asgi") -> Handler:
    """Resolve a "module:attribute" string into a handler."""
    module_name, _, attribute = import_string.partition(":")
    if not module_name or not attribute:
        raise HandlerImportError(f"Expected 'module:attribute', got {import_string!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise HandlerImportError(f"Could not import {module_name!r}: {e}") from e

    target = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise HandlerImportError(f"{module_name!r} has no attribute {attribute!r}") from None

    if interface == "asgi":
        return AsgiHandler(target)
    if interface == "handler":
        if not callable(target):
            raise HandlerImportError(f"{import_string!r} is not callable")
        return target
    raise HandlerImportError(f"Unknown handler interface: {interface!r}")
