"""Routing of HTTP requests to files, invoices and redirects."""

from __future__ import annotations

import os
from typing import Any, Callable, Iterable, Mapping, Optional
from urllib.parse import unquote_to_bytes

from .environment import Environment
from .errors import AgoraError, InternalError, InvalidUriPathError, InvoiceIdError, RouteNotFoundError
from .files import Files
from .input_path import InputPath
from .web import Request, Response, error_response, redirect

_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_INVOICE_ID_LENGTH = 32


def split_path_inclusive(path: str) -> list[str]:
    """Split ``path`` after each ``/``, keeping the slashes."""
    parts = path.split("/")
    result = [part + "/" for part in parts[:-1]]
    if parts[-1]:
        result.append(parts[-1])
    return result


def _decode_hex(text: str) -> bytes:
    data = text.encode("utf-8")
    if len(data) % 2:
        raise ValueError("Odd number of digits")
    if len(data) != 2 * _INVOICE_ID_LENGTH:
        raise ValueError("Invalid string length")
    for position, byte in enumerate(data):
        if byte not in _HEX_DIGITS:
            raise ValueError(f"Invalid character {chr(byte)!r} at position {position}")
    return bytes.fromhex(text)


def decode_invoice_id(text: str) -> bytes:
    """Decode a 64-digit hex invoice ID into its 32 bytes."""
    try:
        return _decode_hex(text)
    except ValueError as error:
        raise InvoiceIdError(error) from error


class RequestHandler:
    """Answers requests for the files under ``base_directory``; also a WSGI app."""

    def __init__(
        self,
        environment: Environment,
        base_directory: "os.PathLike[str] | str",
        lnd_client: Optional[Any] = None,
    ) -> None:
        self.stderr = environment.stderr
        self.files = Files(
            InputPath.new(environment.working_directory, base_directory), lnd_client
        )

    def handle(self, request: Request) -> Response:
        """Answer ``request``; errors become error pages logged to stderr."""
        try:
            response = self._dispatch(request)
        except AgoraError as error:
            return error_response(error, self.stderr)
        except Exception as error:
            internal = InternalError(f"Request handler panicked: {error}")
            internal.__traceback__ = error.__traceback__
            return error_response(internal, self.stderr)
        response.headers["Cache-Control"] = "no-store, max-age=0"
        return response

    def _dispatch(self, request: Request) -> Response:
        try:
            path = unquote_to_bytes(request.path).decode("utf-8")
        except UnicodeDecodeError as error:
            raise InvalidUriPathError(request.path, error) from error
        components = split_path_inclusive(path)
        invoice = request.query_parameter("invoice") if request.query else None

        match components:
            case ["/"]:
                return redirect(request.path + "files/")
            case ["/", "files"]:
                return redirect(request.path + "/")
            case ["/", "files/", *tail] if invoice is not None:
                return self.files.serve_invoice(request, tail, decode_invoice_id(invoice))
            case ["/", "files/", *tail]:
                return self.files.serve(request, tail)
            case _:
                raise RouteNotFoundError(request.path)

    def __call__(
        self, environ: Mapping[str, Any], start_response: Callable[..., object]
    ) -> Iterable[bytes]:
        return self.handle(Request.from_environ(environ)).to_wsgi(start_response)