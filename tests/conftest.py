import flask
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from bridge.adapter import FunctionAdapter
from bridge.config import Settings
from bridge.handlers import AsgiHandler
from sample.app import app as sample_app


@pytest.fixture
def settings():
    return Settings(log_invocations=False)


@pytest.fixture
def sample_handler():
    return AsgiHandler(sample_app)


@pytest.fixture
def adapter(sample_handler, settings):
    return FunctionAdapter(sample_handler, settings=settings)


@pytest.fixture
def echo_app():
    """App that reports back exactly what it received."""
    app = FastAPI()

    @app.api_route("/echo/{rest:path}", methods=["GET", "POST", "PUT", "DELETE"])
    async def echo(request: Request, rest: str):
        return JSONResponse({
            "method": request.method,
            "path": request.url.path,
            "headers": [[k, v] for k, v in request.headers.items()],
            "query": [[k, v] for k, v in request.query_params.multi_items()],
            "body": (await request.body()).decode("utf-8"),
        })

    @app.get("/cookies")
    def cookies():
        response = JSONResponse({"ok": True}, status_code=201)
        response.set_cookie("a", "1")
        response.set_cookie("b", "2")
        return response

    @app.get("/stream")
    def stream():
        def chunks():
            for part in (b"one,", b"two,", b"three"):
                yield part
        return StreamingResponse(chunks(), media_type="text/plain")

    @app.get("/boom")
    def boom():
        raise RuntimeError("exploded")

    return app


@pytest.fixture
def make_flask_request():
    """Build real flask.Request objects the way functions-framework hands them over."""
    app = flask.Flask("bridge-tests")

    def make(path, **kwargs):
        return app.test_request_context(path, **kwargs).request

    return make
