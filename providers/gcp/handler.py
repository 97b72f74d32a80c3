"""
GCP Cloud Functions handler for the function bridge.

This is the entry point for HTTP-triggered Cloud Functions. The
functions-framework hands each invocation over as a flask.Request; the
adapter turns it into an InvocationRequest, runs the configured app and
returns a flask.Response.

Deploy (from the repository root, where main.py re-exports `handler`):
    gcloud functions deploy bridge-example \\
        --entry-point=handler \\
        --runtime=python312 \\
        --trigger-http \\
        --allow-unauthenticated \\
        --source=.

Run locally:
    functions-framework --target=handler --source=main.py --port=8080
"""
from functools import lru_cache

import flask
import functions_framework
from werkzeug.datastructures import Headers
from werkzeug.exceptions import HTTPException

from bridge.adapter import FunctionAdapter, InvocationContext
from bridge.errors import MalformedInvocationError
from bridge.handlers import load_handler
from bridge.models import InvocationRequest, InvocationResponse
from providers.gcp.config import get_settings

print("DEBUG: Starting providers.gcp.handler module load...", flush=True)


class GcpFunctionAdapter(FunctionAdapter):
    """Adapter between flask.Request/flask.Response and the generic shapes."""

    def decode(self, context: InvocationContext) -> InvocationRequest:
        request = context.platform_request
        try:
            body = request.get_data()
        except HTTPException as e:
            raise MalformedInvocationError(e.description or e.name, status_code=e.code) from e

        # request.path is percent-decoded; the server's raw URI keeps %2F and friends
        environ = request.environ
        raw_uri = environ.get("RAW_URI") or environ.get("REQUEST_URI")

        return InvocationRequest.build(
            method=request.method,
            path=request.path,
            headers=list(request.headers.items()),
            query=list(request.args.lists()),
            body=body,
            raw_path=raw_uri,
        )

    def encode(self, response: InvocationResponse, context: InvocationContext) -> flask.Response:
        reply = flask.Response(response.body, status=response.status)
        # Replace wholesale so werkzeug's default Content-Type never sneaks in
        reply.headers = Headers(response.header_items())
        return reply

    def minimal_encode(self, response: InvocationResponse) -> flask.Response:
        return flask.Response(response.body, status=response.status, mimetype="application/json")


# =============================================================================
# Lazy initialization for cold start optimization
# =============================================================================

@lru_cache()
def get_adapter() -> GcpFunctionAdapter:
    """Build the adapter on first invocation; reused while the instance is warm."""
    settings = get_settings()
    print(f"DEBUG: Initializing GCP adapter for {settings.app_import}...", flush=True)
    adapter = GcpFunctionAdapter(
        load_handler(settings.app_import, settings.app_interface),
        settings=settings,
    )
    print("DEBUG: GCP adapter initialized", flush=True)
    return adapter


@functions_framework.http
def handler(request: flask.Request) -> flask.Response:
    return get_adapter().handle(request)


print("DEBUG: Module load complete, handler ready", flush=True)
