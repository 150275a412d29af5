"""Requests, responses, HTML pages, redirects and error pages."""

from __future__ import annotations

import html
import traceback
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Callable, Iterable, Mapping, Optional, TextIO
from urllib.parse import parse_qsl, quote

from .errors import AgoraError, InternalError

_PATH_SAFE = "/!$&'()*+,;=:@"


@dataclass
class Request:
    """An incoming HTTP request; ``path`` is the still percent-encoded URI path."""

    method: str = "GET"
    path: str = "/"
    query: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    @property
    def uri(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def query_parameter(self, name: str) -> Optional[str]:
        """The last value given for ``name`` in the query string."""
        values = [value for key, value in parse_qsl(self.query, keep_blank_values=True) if key == name]
        return values[-1] if values else None

    @classmethod
    def from_environ(cls, environ: Mapping[str, object]) -> Request:
        raw_uri = environ.get("RAW_URI") or environ.get("REQUEST_URI")
        if raw_uri:
            path, _, query = str(raw_uri).partition("?")
        else:
            decoded = str(environ.get("SCRIPT_NAME", "")) + str(environ.get("PATH_INFO", ""))
            path = quote(decoded.encode("latin-1"), safe=_PATH_SAFE) or "/"
            query = str(environ.get("QUERY_STRING", ""))
        headers = {
            key[5:].replace("_", "-"): str(value)
            for key, value in environ.items()
            if key.startswith("HTTP_")
        }
        for key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
            if environ.get(key):
                headers[key.replace("_", "-")] = str(environ[key])
        return cls(
            method=str(environ.get("REQUEST_METHOD", "GET")),
            path=path,
            query=query,
            headers=headers,
        )


@dataclass
class Response:
    """An outgoing HTTP response whose body is an iterable of byte chunks."""

    status: HTTPStatus = HTTPStatus.OK
    headers: dict[str, str] = field(default_factory=dict)
    body: Iterable[bytes] = ()

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        return next(
            (value for key, value in self.headers.items() if key.lower() == lowered), None
        )

    def read(self) -> bytes:
        return b"".join(self.body)

    def to_wsgi(self, start_response: Callable[..., object]) -> Iterable[bytes]:
        start_response(f"{self.status.value} {self.status.phrase}", list(self.headers.items()))
        return self.body


def _invalid_header_character(value: str) -> Optional[str]:
    for character in value:
        code = ord(character)
        if (code < 0x20 and character != "\t") or code == 0x7F:
            return character
    return None


def redirect(location: str) -> Response:
    """A ``302 Found`` response pointing at ``location``."""
    bad = _invalid_header_character(location)
    if bad is not None:
        raise InternalError(
            f"Failed to construct redirect response: invalid character {bad!r} in header value"
        )
    return Response(status=HTTPStatus.FOUND, headers={"Location": location}, body=[])


def wrap_body(body: str) -> Response:
    """Wrap trusted HTML markup in the site's page layout."""
    page = (
        "<!DOCTYPE html>"
        '<html lang="en">'
        "<head>"
        '<meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        "<title>agora</title>"
        '<link rel="stylesheet" href="/static/index.css">'
        '<script type="module" src="/static/index.js"></script>'
        "</head>"
        "<body>"
        f"<main>{body}</main>"
        "<footer>Powered by Agora.</footer>"
        "</body>"
        "</html>"
    )
    return Response(headers={"Content-Type": "text/html"}, body=[page.encode("utf-8")])


def error_response(error: AgoraError, stderr: TextIO) -> Response:
    """Log ``error`` to ``stderr`` and render an error page with its status."""
    if error.__traceback__ is not None:
        stderr.write("".join(traceback.format_tb(error.__traceback__)))
    stderr.write(f"{error}\n")
    status = error.status()
    response = wrap_body(f"<h1>{html.escape(f'{status.value} {status.phrase}')}</h1>")
    response.status = status
    return response