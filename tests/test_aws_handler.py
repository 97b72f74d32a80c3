import base64
import json

import pytest

from bridge.adapter import InvocationContext
from bridge.models import InvocationResponse
from providers.aws import config as aws_config
from providers.aws import handler as aws_handler
from providers.aws.handler import LambdaFunctionAdapter, LambdaInvocation


@pytest.fixture(autouse=True)
def fresh_caches():
    aws_config.get_settings.cache_clear()
    aws_handler.get_adapter.cache_clear()
    yield
    aws_config.get_settings.cache_clear()
    aws_handler.get_adapter.cache_clear()


@pytest.fixture
def lambda_adapter(sample_handler, settings):
    return LambdaFunctionAdapter(sample_handler, settings=settings)


def rest_api_event(method, path, body=None, headers=None, multi_query=None, base64_body=False):
    """API Gateway REST API (payload v1) proxy event."""
    headers = headers or {"Host": "abc123.execute-api.us-east-1.amazonaws.com", "Accept": "*/*"}
    event = {
        "resource": "/{proxy+}",
        "path": path,
        "httpMethod": method,
        "headers": headers,
        "multiValueHeaders": {k: [v] for k, v in headers.items()},
        "queryStringParameters": {k: v[-1] for k, v in multi_query.items()} if multi_query else None,
        "multiValueQueryStringParameters": multi_query,
        "pathParameters": {"proxy": path.lstrip("/")},
        "stageVariables": None,
        "requestContext": {
            "resourcePath": "/{proxy+}",
            "httpMethod": method,
            "path": f"/prod{path}",
            "stage": "prod",
            "requestId": "c6af9ac6-7b61-11e6-9a41-93e8deadbeef",
            "identity": {"sourceIp": "203.0.113.10", "userAgent": "curl/8.0"},
        },
        "isBase64Encoded": base64_body,
    }
    if body is not None:
        event["body"] = base64.b64encode(body).decode() if base64_body else body.decode()
    return event


def http_api_event(method, path, raw_query="", body=None):
    """API Gateway HTTP API (payload v2) event."""
    event = {
        "version": "2.0",
        "routeKey": "$default",
        "rawPath": path,
        "rawQueryString": raw_query,
        "headers": {"host": "abc123.execute-api.us-east-1.amazonaws.com", "accept": "*/*"},
        "requestContext": {
            "accountId": "123456789012",
            "apiId": "abc123",
            "domainName": "abc123.execute-api.us-east-1.amazonaws.com",
            "http": {
                "method": method,
                "path": path,
                "protocol": "HTTP/1.1",
                "sourceIp": "203.0.113.10",
                "userAgent": "curl/8.0",
            },
            "requestId": "JKJaXmPLvHcESHA=",
            "routeKey": "$default",
            "stage": "$default",
        },
        "isBase64Encoded": False,
    }
    if body is not None:
        event["body"] = body
    return event


def test_rest_api_get_hello(lambda_adapter):
    reply = lambda_adapter.handle(LambdaInvocation(rest_api_event("GET", "/hello")))

    assert reply["statusCode"] == 200
    assert reply["body"] == "Hello from Quarkus REST"
    assert reply["isBase64Encoded"] is False
    assert reply["headers"]["content-type"].startswith("text/plain")


def test_rest_api_post_base64_body(lambda_adapter):
    event = rest_api_event("POST", "/servlet/hello", body=b"world", base64_body=True)
    reply = lambda_adapter.handle(LambdaInvocation(event))

    assert reply["statusCode"] == 200
    assert reply["body"] == "hello world"


def test_http_api_get(lambda_adapter):
    reply = lambda_adapter.handle(LambdaInvocation(http_api_event("GET", "/test/int/10")))

    assert reply["statusCode"] == 200
    assert reply["body"] == "11"


def test_http_api_post(lambda_adapter):
    reply = lambda_adapter.handle(LambdaInvocation(http_api_event("POST", "/servlet/hello", body="world")))
    assert reply["body"] == "hello world"


def test_decode_translates_event(settings):
    seen = []

    def handler(request):
        seen.append(request)
        return InvocationResponse(status=204)

    event = rest_api_event(
        "GET",
        "/search",
        headers={"Host": "example.com", "X-Trace": "abc"},
        multi_query={"tag": ["x", "y"], "q": ["film"]},
    )
    LambdaFunctionAdapter(handler, settings=settings).handle(LambdaInvocation(event))

    request = seen[0]
    assert request.method == "GET"
    assert request.path == "/search"
    assert request.query == {"tag": ("x", "y"), "q": ("film",)}
    assert request.header("x-trace") == "abc"
    assert request.body == b""


def test_binary_body_is_base64_encoded(settings):
    def handler(request):
        return InvocationResponse(headers={"content-type": "image/png"}, body=b"\x89PNG\r\n")

    reply = LambdaFunctionAdapter(handler, settings=settings).handle(
        LambdaInvocation(rest_api_event("GET", "/logo.png"))
    )

    assert reply["isBase64Encoded"] is True
    assert base64.b64decode(reply["body"]) == b"\x89PNG\r\n"


def test_repeated_headers_use_multi_value_headers(settings):
    def handler(request):
        response = InvocationResponse(headers={"content-type": "text/plain"}, body=b"ok")
        response.add_header("set-cookie", "a=1")
        response.add_header("set-cookie", "b=2")
        return response

    reply = LambdaFunctionAdapter(handler, settings=settings).handle(
        LambdaInvocation(rest_api_event("GET", "/"))
    )

    assert reply["multiValueHeaders"]["set-cookie"] == ["a=1", "b=2"]


def test_undecoded_reply_keeps_repeated_headers(lambda_adapter):
    response = InvocationResponse(headers={"content-type": "text/plain"}, body=b"ok")
    response.add_header("set-cookie", "a=1")
    response.add_header("set-cookie", "b=2")

    reply = lambda_adapter.encode(response.finalize(), InvocationContext(platform_request=None))

    assert reply["statusCode"] == 200
    assert reply["headers"] == {"content-type": "text/plain"}
    assert reply["multiValueHeaders"] == {"set-cookie": ["a=1", "b=2"]}
    assert reply["body"] == "ok"


def test_failing_error_encode_still_returns_proxy_reply(settings):
    class HopelessAdapter(LambdaFunctionAdapter):
        def encode(self, response, context):
            raise ValueError("cannot encode anything")

    reply = HopelessAdapter(lambda request: InvocationResponse(), settings=settings).handle(
        LambdaInvocation(rest_api_event("GET", "/"))
    )

    assert reply["statusCode"] == 500
    assert reply["isBase64Encoded"] is False
    assert json.loads(reply["body"]) == {"detail": "Internal Server Error"}


def test_handler_fault_becomes_500(settings):
    def handler(request):
        raise RuntimeError("boom")

    reply = LambdaFunctionAdapter(handler, settings=settings).handle(
        LambdaInvocation(rest_api_event("GET", "/hello"))
    )

    assert reply["statusCode"] == 500
    assert json.loads(reply["body"]) == {"detail": "Internal Server Error"}


@pytest.mark.parametrize("event", [
    {"foo": "bar"},
    {"Records": []},
    ["not", "an", "object"],
    None,
])
def test_unrecognized_event_is_client_error(lambda_adapter, event):
    reply = lambda_adapter.handle(LambdaInvocation(event))

    assert reply["statusCode"] == 400
    assert reply["headers"]["content-type"] == "application/json"
    assert "detail" in json.loads(reply["body"])


def test_entry_point_handler():
    reply = aws_handler.handler(rest_api_event("GET", "/test"), None)

    assert reply["statusCode"] == 200
    assert reply["body"] == "TEST"
    assert aws_handler.get_adapter() is aws_handler.get_adapter()


def test_handler_name_mismatch_is_logged(monkeypatch, capsys):
    monkeypatch.setenv("AWS_LAMBDA_FUNCTION_NAME", "bridge-example")
    monkeypatch.setenv("_HANDLER", "main.handler")

    aws_config.get_settings()

    out = capsys.readouterr().out
    assert "Running in Lambda function bridge-example" in out
    assert "WARNING - _HANDLER" in out
