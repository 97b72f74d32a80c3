"""
Sample FastAPI application served through the function bridge.

Exposes the example endpoints from the Cloud Functions deployment guide:
a REST resource, a servlet-style GET/POST pair, a reactive route, a funqy
function, and the /test resource the HTTP integration tests hit.
"""
import time

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse


app = FastAPI(
    title="Function Bridge Sample",
    description="Example endpoints for the Cloud Functions HTTP bridge",
    version="1.0.0",
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    print(f"DEBUG: REQUEST START - {request.method} {request.url.path}", flush=True)
    try:
        response = await call_next(request)
        duration = time.time() - start_time
        print(f"DEBUG: REQUEST END - {request.method} {request.url.path} - Status: {response.status_code} - Duration: {duration:.2f}s", flush=True)
        return response
    except Exception as e:
        duration = time.time() - start_time
        print(f"DEBUG: REQUEST ERROR - {request.method} {request.url.path} - Error: {type(e).__name__}: {e} - Duration: {duration:.2f}s", flush=True)
        raise


# =============================================================================
# Guide Endpoints
# =============================================================================

@app.get("/hello", response_class=PlainTextResponse)
def hello():
    return "Hello from Quarkus REST"


@app.get("/servlet/hello", response_class=PlainTextResponse)
def servlet_hello():
    return "hello servlet"


@app.post("/servlet/hello", response_class=PlainTextResponse)
async def servlet_greet(request: Request):
    """Echo the posted name back as a greeting."""
    name = (await request.body()).decode("utf-8")
    return f"hello {name}"


@app.get("/vertx/hello", response_class=PlainTextResponse)
def vertx_hello():
    return "Hello from Reactive Routes"


@app.api_route("/funqy", methods=["GET", "POST"])
def funqy():
    return "Make it funqy"


# =============================================================================
# Test Resource
# =============================================================================

@app.get("/test", response_class=PlainTextResponse)
def test_root():
    return "TEST"


@app.get("/test/int/{number}", response_class=PlainTextResponse)
async def test_increment(number: int):
    return str(number + 1)
