"""
AWS Lambda handler for the function bridge.

This is the entry point for AWS Lambda behind API Gateway (REST and HTTP
APIs), an Application Load Balancer, or CloudFront (Lambda@Edge). Mangum's
event handlers recognise the event shape, build the request scope and
shape the proxy-integration reply; the adapter in between stays the same
one the GCP entry point uses.
"""
from dataclasses import dataclass
from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl

from mangum.handlers import ALB, APIGateway, HTTPGateway, LambdaAtEdge
from mangum.types import LambdaConfig

from bridge.adapter import FunctionAdapter, InvocationContext
from bridge.errors import MalformedInvocationError
from bridge.handlers import group_header_items, load_handler
from bridge.models import InvocationRequest, InvocationResponse
from providers.aws.config import get_settings

print("DEBUG: Starting providers.aws.handler module load...", flush=True)

# Same inference order Mangum uses
EVENT_HANDLERS = (ALB, HTTPGateway, APIGateway, LambdaAtEdge)


@dataclass(frozen=True)
class LambdaInvocation:
    """The (event, context) pair Lambda passes to the handler."""
    event: Any
    context: Any = None


class LambdaFunctionAdapter(FunctionAdapter):
    """Adapter between Lambda proxy events and the generic shapes."""

    def lambda_config(self) -> LambdaConfig:
        return LambdaConfig(
            api_gateway_base_path="/",
            text_mime_types=list(self.settings.text_mime_types),
            exclude_headers=[],
        )

    def decode(self, context: InvocationContext) -> InvocationRequest:
        invocation = context.platform_request
        event = invocation.event
        if not isinstance(event, dict):
            raise MalformedInvocationError(f"Lambda event must be an object, got {type(event).__name__}")

        config = self.lambda_config()
        for event_handler in EVENT_HANDLERS:
            if event_handler.infer(event, invocation.context, config):
                break
        else:
            raise MalformedInvocationError("Unrecognized Lambda event shape")

        try:
            native = event_handler(event, invocation.context, config)
            scope = native.scope
            body = native.body
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedInvocationError(
                f"Malformed {event_handler.__name__} event: {type(e).__name__}: {e}"
            ) from e

        context.native = native
        return InvocationRequest.build(
            method=scope["method"],
            path=scope["path"],
            headers=[(k.decode("latin-1"), v.decode("latin-1")) for k, v in scope["headers"]],
            query=parse_qsl(scope["query_string"].decode("latin-1"), keep_blank_values=True),
            body=body,
        )

    def encode(self, response: InvocationResponse, context: InvocationContext) -> dict:
        if context.native is None:
            # Event never decoded
            return self.minimal_encode(response)

        return context.native({
            "status": response.status,
            "headers": [
                [name.encode("latin-1"), value.encode("latin-1")]
                for name, value in response.header_items()
            ],
            "body": response.body,
        })

    def minimal_encode(self, response: InvocationResponse) -> dict:
        """API Gateway v1 reply; repeated headers go to multiValueHeaders as Mangum does."""
        grouped = group_header_items(response.header_items())
        return {
            "statusCode": response.status,
            "headers": {k: v for k, v in grouped.items() if not isinstance(v, list)},
            "multiValueHeaders": {k: v for k, v in grouped.items() if isinstance(v, list)},
            "body": response.body.decode("utf-8", errors="replace"),
            "isBase64Encoded": False,
        }


# =============================================================================
# Lazy initialization for cold start optimization
# =============================================================================

@lru_cache()
def get_adapter() -> LambdaFunctionAdapter:
    """Build the adapter on first invocation; reused while the container is warm."""
    settings = get_settings()
    print(f"DEBUG: Initializing AWS adapter for {settings.app_import}...", flush=True)
    adapter = LambdaFunctionAdapter(
        load_handler(settings.app_import, settings.app_interface),
        settings=settings,
    )
    print("DEBUG: AWS adapter initialized", flush=True)
    return adapter


def handler(event, context):
    return get_adapter().handle(LambdaInvocation(event, context))


print("DEBUG: Module load complete, handler ready", flush=True)
