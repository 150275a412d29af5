"""Redirecting plain HTTP requests to the HTTPS port."""

from __future__ import annotations

import string
from http import HTTPStatus
from typing import Any, Callable, Iterable, Mapping, TextIO

from .errors import AgoraError, CustomError
from .web import Request, Response, error_response, redirect

_AUTHORITY_CHARACTERS = frozenset(
    string.ascii_letters + string.digits + "-._~!$&'()*+,;=:@[]%"
)


def _authority_host(value: str) -> str:
    """The host part of a ``Host`` header value, which must be a valid authority."""
    if not value:
        raise ValueError("empty string")
    if any(character not in _AUTHORITY_CHARACTERS for character in value):
        raise ValueError("invalid uri character")
    host_port = value.rpartition("@")[2]
    if host_port.startswith("["):
        end = host_port.find("]")
        if end == -1:
            raise ValueError("invalid authority")
        host, rest = host_port[: end + 1], host_port[end + 1 :]
        if rest and not rest.startswith(":"):
            raise ValueError("invalid authority")
        port = rest[1:] if rest else None
    else:
        if "[" in host_port or "]" in host_port:
            raise ValueError("invalid authority")
        host, separator, port_text = host_port.partition(":")
        port = port_text if separator else None
    if port:
        if not port.isdigit() or int(port) > 0xFFFF:
            raise ValueError("invalid port")
    return host


class HttpsRedirectService:
    """Answers every request with a redirect to the same URI on ``https_port``."""

    def __init__(self, https_port: int, stderr: TextIO) -> None:
        self.https_port = https_port
        self.stderr = stderr

    def _response(self, request: Request) -> Response:
        value = request.header("Host")
        if value is None:
            raise CustomError("Missing HOST header", HTTPStatus.BAD_REQUEST)
        try:
            host = _authority_host(value)
        except ValueError as error:
            raise CustomError(
                f"Invalid HOST header `{value}`: {error}", HTTPStatus.BAD_REQUEST
            ) from error
        return redirect(f"https://{host}:{self.https_port}{request.uri}")

    def handle(self, request: Request) -> Response:
        """Answer ``request``; errors become error pages logged to stderr."""
        try:
            return self._response(request)
        except AgoraError as error:
            return error_response(error, self.stderr)

    def __call__(
        self, environ: Mapping[str, Any], start_response: Callable[..., object]
    ) -> Iterable[bytes]:
        return self.handle(Request.from_environ(environ)).to_wsgi(start_response)