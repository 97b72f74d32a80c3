"""
Function adapter: platform invocation in, platform reply out.

The adapter owns the translation around a single invocation:

    platform request --decode--> InvocationRequest --handler--> InvocationResponse --encode--> platform reply

Providers subclass FunctionAdapter and override decode/encode. The base
class uses the generic shapes directly, which is what the local invoker and
the tests drive.

Nothing per-invocation is stored on the adapter. Everything an invocation
needs travels in its InvocationContext, so one adapter instance can be
reused across warm starts and entered from several threads at once.
"""
from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from bridge.config import Settings, get_settings
from bridge.errors import HandlerError, MalformedInvocationError, PayloadTooLargeError
from bridge.handlers import Handler
from bridge.models import COMPLETED, PENDING, InvocationRequest, InvocationResponse


@dataclass
class InvocationContext:
    """Per-invocation state. Created by handle(), dropped when it returns."""
    platform_request: Any
    invocation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: float = field(default_factory=time.time)
    request: InvocationRequest | None = None
    state: str = PENDING
    native: Any = None  # Provider scratch slot (e.g. the parsed event)

    @property
    def label(self) -> str:
        if self.request is None:
            return f"[{self.invocation_id[:8]}] <undecoded>"
        return f"[{self.invocation_id[:8]}] {self.request.method} {self.request.path}"

    @property
    def duration(self) -> float:
        return time.time() - self.started_at


def json_response(status: int, payload: dict) -> InvocationResponse:
    return InvocationResponse(
        status=status,
        headers={"content-type": "application/json"},
        body=json.dumps(payload).encode(),
    )


class FunctionAdapter:
    """Translates invocations for a wrapped handler."""

    def __init__(self, handler: Handler, settings: Settings | None = None):
        self.handler = handler
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Platform translation (overridden by providers)
    # -------------------------------------------------------------------------

    def decode(self, context: InvocationContext) -> InvocationRequest:
        request = context.platform_request
        if not isinstance(request, InvocationRequest):
            raise MalformedInvocationError(
                f"Expected InvocationRequest, got {type(request).__name__}"
            )
        return request

    def encode(self, response: InvocationResponse, context: InvocationContext) -> Any:
        return response

    def minimal_encode(self, response: InvocationResponse) -> Any:
        """Platform reply built without any per-invocation state; must not raise."""
        return response

    # -------------------------------------------------------------------------
    # Invocation cycle
    # -------------------------------------------------------------------------

    def handle(self, platform_request: Any) -> Any:
        """Run one invocation. Never raises for handler faults."""
        context = InvocationContext(platform_request=platform_request)

        try:
            context.request = self.apply_policy(self.decode(context))
        except MalformedInvocationError as e:
            self.log(context, f"REJECTED - Status: {e.status_code} - {e.message}")
            return self.complete(self.client_error(e), context)
        except Exception as e:
            self.log(context, f"ERROR - Decode failed: {type(e).__name__}: {e}")
            return self.complete(self.server_error(e), context)

        self.log(context, "START")
        response = self.dispatch(context)
        return self.complete(response, context)

    def apply_policy(self, request: InvocationRequest) -> InvocationRequest:
        """Strip the base path and enforce the body size limit."""
        limit = self.settings.max_request_body_bytes
        if limit and len(request.body) > limit:
            raise PayloadTooLargeError(
                f"Request body of {len(request.body)} bytes exceeds limit of {limit}"
            )

        base_path = self.settings.base_path.rstrip("/")
        if base_path:
            if request.path == base_path or request.path.startswith(base_path + "/"):
                return request.strip_prefix(base_path)
        return request

    def dispatch(self, context: InvocationContext) -> InvocationResponse:
        try:
            response = self.handler(context.request)
            if not isinstance(response, InvocationResponse):
                raise HandlerError(
                    f"Handler returned {type(response).__name__}, expected InvocationResponse"
                )
            return response.finalize()
        except Exception as e:
            self.log(context, f"ERROR - Error: {type(e).__name__}: {e}")
            return self.server_error(e)

    def complete(self, response: InvocationResponse, context: InvocationContext) -> Any:
        response.finalize()
        try:
            reply = self.encode(response, context)
        except Exception as e:
            self.log(context, f"ERROR - Encode failed: {type(e).__name__}: {e}")
            response = self.server_error(e).finalize()
            try:
                reply = self.encode(response, context)
            except Exception as e:
                self.log(context, f"ERROR - Error reply encode failed: {type(e).__name__}: {e}")
                reply = self.minimal_encode(response)

        context.state = COMPLETED
        self.log(context, f"END - Status: {response.status} - Duration: {context.duration:.2f}s")
        return reply

    # -------------------------------------------------------------------------
    # Error replies
    # -------------------------------------------------------------------------

    def client_error(self, error: MalformedInvocationError) -> InvocationResponse:
        return json_response(error.status_code, {"detail": error.message})

    def server_error(self, error: Exception) -> InvocationResponse:
        payload = {"detail": "Internal Server Error"}
        if self.settings.expose_errors:
            payload["error"] = f"{type(error).__name__}: {error}"
        return json_response(500, payload)

    def log(self, context: InvocationContext, message: str):
        if self.settings.log_invocations:
            print(f"DEBUG: INVOCATION {message} - {context.label}", flush=True)
