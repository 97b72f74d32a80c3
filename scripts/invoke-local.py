#!/usr/bin/env python3
"""
Invoke the function bridge locally, without a server or a cloud account.

Builds one request, pushes it through the same adapter the Cloud Functions
entry point uses, and prints the reply.

Usage:
    python scripts/invoke-local.py /hello
    python scripts/invoke-local.py /servlet/hello -X POST -d world
    python scripts/invoke-local.py /test/int/10 -H "Accept: text/plain" -i

    # Wrap a different app
    python scripts/invoke-local.py /health --app myservice.main:app

    # Plain handler callable instead of an ASGI app
    python scripts/invoke-local.py /ping --app myservice.fn:handle --interface handler

Or via environment variables:
    export APP_IMPORT=myservice.main:app
    export EXPOSE_ERRORS=true
    python scripts/invoke-local.py /hello
"""
import argparse
import os
import sys
from urllib.parse import parse_qsl, urlsplit

# Make the repository root importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bridge.adapter import FunctionAdapter  # noqa: E402
from bridge.config import get_settings  # noqa: E402
from bridge.errors import BridgeError  # noqa: E402
from bridge.handlers import load_handler  # noqa: E402
from bridge.models import InvocationRequest  # noqa: E402


def parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Header must look like 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Invoke the function bridge locally",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", help="Path with optional query string, e.g. /hello?name=x")
    parser.add_argument("-X", "--method", default=None, help="HTTP method (default: GET, or POST with -d)")
    parser.add_argument("-H", "--header", action="append", type=parse_header, default=[],
                        help="Request header 'Name: value' (repeatable)")
    parser.add_argument("-d", "--data", default=None, help="Request body; @file reads it from a file")
    parser.add_argument("--app", default=None, help="Handler import string (default: APP_IMPORT setting)")
    parser.add_argument("--interface", choices=["asgi", "handler"], default=None,
                        help="How to call the app (default: APP_INTERFACE setting)")
    parser.add_argument("-i", "--include", action="store_true", help="Print status line and headers")
    return parser


def read_body(data: str | None) -> bytes:
    if data is None:
        return b""
    if data.startswith("@"):
        with open(data[1:], "rb") as f:
            return f.read()
    return data.encode("utf-8")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    app_import = args.app or settings.app_import
    interface = args.interface or settings.app_interface

    try:
        handler = load_handler(app_import, interface)
    except BridgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    url = urlsplit(args.url)
    body = read_body(args.data)
    method = args.method or ("POST" if args.data is not None else "GET")

    try:
        request = InvocationRequest.build(
            method=method,
            path=url.path or "/",
            headers=args.header,
            query=parse_qsl(url.query, keep_blank_values=True),
            body=body,
        )
    except BridgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    response = FunctionAdapter(handler, settings=settings).handle(request)

    if args.include:
        print(f"HTTP {response.status}")
        for name, value in response.header_items():
            print(f"{name}: {value}")
        print()
    sys.stdout.write(response.body.decode("utf-8", errors="replace"))
    sys.stdout.write("\n")
    sys.stdout.flush()

    return 0 if response.status < 500 else 1


if __name__ == "__main__":
    sys.exit(main())
