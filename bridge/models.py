"""
Generic request/response shapes passed between the adapter and the handler.

A request/response pair lives for exactly one invocation. Requests are
immutable once built; responses are filled in by the handler and frozen by
the adapter (finalize) before they are handed to the platform.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from urllib.parse import unquote, urlencode

from bridge.errors import HandlerError, MalformedInvocationError, ResponseCompletedError


# RFC 9110 token characters
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

PENDING = "pending"
COMPLETED = "completed"


def _multi_items(source: Any) -> list[tuple[str, str]]:
    """Flatten a mapping or pair list into (name, value) pairs.

    Values may be a single string or an iterable of strings.
    """
    if source is None:
        return []
    items = source.items() if isinstance(source, Mapping) else source
    pairs = []
    for name, value in items:
        if isinstance(name, bytes):
            name = name.decode("latin-1")
        if isinstance(value, (str, bytes)):
            values = [value]
        else:
            values = list(value)
        for v in values:
            if isinstance(v, bytes):
                v = v.decode("latin-1")
            pairs.append((str(name), str(v)))
    return pairs


def _group(pairs: Iterable[tuple[str, str]], lower: bool = False) -> Mapping[str, tuple[str, ...]]:
    grouped: dict[str, list[str]] = {}
    for name, value in pairs:
        key = name.lower() if lower else name
        grouped.setdefault(key, []).append(value)
    return MappingProxyType({k: tuple(v) for k, v in grouped.items()})


@dataclass(frozen=True)
class InvocationRequest:
    """One HTTP request as seen by the handler."""
    method: str
    path: str
    headers: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    query: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    body: bytes = b""
    raw_path: str | None = None  # Path as sent on the wire, still percent-encoded

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        headers: Any = None,
        query: Any = None,
        body: bytes | str | None = None,
        raw_path: str | None = None,
    ) -> InvocationRequest:
        """Normalize raw platform values into a request.

        Header names are lower-cased; header and query values keep their
        arrival order. `raw_path` is kept only when it decodes to `path`.
        Raises MalformedInvocationError for an invalid method or path.
        """
        if not method or not _METHOD_RE.fullmatch(method):
            raise MalformedInvocationError(f"Invalid HTTP method: {method!r}")
        if not path or not path.startswith("/"):
            raise MalformedInvocationError(f"Invalid request path: {path!r}")

        if body is None:
            body = b""
        elif isinstance(body, str):
            body = body.encode("utf-8")
        elif not isinstance(body, bytes):
            body = bytes(body)

        if raw_path:
            raw_path = raw_path.partition("?")[0]
            if not raw_path.startswith("/") or unquote(raw_path) != path:
                raw_path = None

        return cls(
            method=method.upper(),
            path=path,
            headers=_group(_multi_items(headers), lower=True),
            query=_group(_multi_items(query)),
            body=body,
            raw_path=raw_path or None,
        )

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of a header, case-insensitive."""
        values = self.headers.get(name.lower())
        return values[0] if values else default

    def header_items(self) -> list[tuple[str, str]]:
        return [(name, value) for name, values in self.headers.items() for value in values]

    def query_items(self) -> list[tuple[str, str]]:
        return [(name, value) for name, values in self.query.items() for value in values]

    @property
    def query_string(self) -> str:
        return urlencode(self.query_items())

    def with_path(self, path: str, raw_path: str | None = None) -> InvocationRequest:
        return InvocationRequest(self.method, path, self.headers, self.query, self.body, raw_path)

    def strip_prefix(self, prefix: str) -> InvocationRequest:
        """Drop a leading path prefix from both the decoded and the raw path."""
        path = self.path[len(prefix):] or "/"
        raw_path = None
        if self.raw_path and self.raw_path.startswith(prefix):
            rest = self.raw_path[len(prefix):] or "/"
            if rest.startswith("/") and unquote(rest) == path:
                raw_path = rest
        return self.with_path(path, raw_path)


@dataclass
class InvocationResponse:
    """HTTP response produced by the handler.

    `body` may be bytes, text, or an iterable of byte chunks (streamed);
    finalize() collapses it to bytes.
    """
    status: int = 200
    headers: dict[str, str | list[str]] = field(default_factory=dict)
    body: Any = b""
    state: str = PENDING

    def _check_pending(self):
        if self.state == COMPLETED:
            raise ResponseCompletedError("Response already completed")

    def set_header(self, name: str, value: str):
        self._check_pending()
        self.headers[name] = value

    def add_header(self, name: str, value: str):
        """Append a header value, keeping earlier values for the same name."""
        self._check_pending()
        existing = self.headers.get(name)
        if existing is None:
            self.headers[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            self.headers[name] = [existing, value]

    def header_items(self) -> list[tuple[str, str]]:
        items = []
        for name, value in self.headers.items():
            if isinstance(value, (list, tuple)):
                items.extend((name, v) for v in value)
            else:
                items.append((name, value))
        return items

    @property
    def completed(self) -> bool:
        return self.state == COMPLETED

    def finalize(self) -> InvocationResponse:
        """Validate the response and materialize its body.

        Raises HandlerError if the status or body cannot be sent.
        """
        if self.completed:
            return self

        if isinstance(self.status, bool) or not isinstance(self.status, int):
            raise HandlerError(f"Invalid status code: {self.status!r}")
        if not 100 <= self.status <= 599:
            raise HandlerError(f"Status code out of range: {self.status}")

        body = self.body
        if body is None:
            body = b""
        elif isinstance(body, str):
            body = body.encode("utf-8")
        elif isinstance(body, (bytes, bytearray, memoryview)):
            body = bytes(body)
        else:
            chunks = []
            for chunk in body:
                chunks.append(chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk))
            body = b"".join(chunks)

        self.body = body
        self.state = COMPLETED
        return self
