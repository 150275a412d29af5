"""A client for creating and looking up invoices on an LND node."""

from __future__ import annotations

import base64
import binascii
import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Mapping, Optional

from .millisatoshi import Millisatoshi

Transport = Callable[[str, str, Mapping[str, str], Optional[bytes]], "tuple[int, bytes]"]

_TIMEOUT = 30.0
_INT64_MAX = 2**63 - 1
_NOT_FOUND_MESSAGES = ("there are no existing invoices", "unable to locate invoice")


class StatusCode(IntEnum):
    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


class RpcStatus(Exception):
    """A failed call to the LND node."""

    def __init__(self, code: StatusCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"status: {code.name}, message: {message!r}")


class InvoiceState(Enum):
    OPEN = "OPEN"
    SETTLED = "SETTLED"
    CANCELED = "CANCELED"
    ACCEPTED = "ACCEPTED"


def _b64decode(text: str) -> bytes:
    normalized = text.replace("-", "+").replace("_", "/")
    return base64.b64decode(normalized + "=" * (-len(normalized) % 4))


def _int(value: Any) -> int:
    return int(value) if value not in (None, "") else 0


@dataclass(frozen=True)
class Invoice:
    memo: str
    r_hash: bytes
    value: int
    value_msat: int
    payment_request: str
    state: InvoiceState
    add_index: int = 0
    payment_addr: bytes = b""

    def price(self) -> Millisatoshi:
        return Millisatoshi(self.value_msat)

    @classmethod
    def _from_json(cls, document: Mapping[str, Any]) -> Invoice:
        return cls(
            memo=document.get("memo", ""),
            r_hash=_b64decode(document.get("r_hash", "")),
            value=_int(document.get("value")),
            value_msat=_int(document.get("value_msat")),
            payment_request=document.get("payment_request", ""),
            state=InvoiceState(document.get("state", "OPEN")),
            add_index=_int(document.get("add_index")),
            payment_addr=_b64decode(document.get("payment_addr", "")),
        )


@dataclass(frozen=True)
class AddInvoiceResponse:
    r_hash: bytes
    payment_request: str
    add_index: int = 0
    payment_addr: bytes = b""

    @classmethod
    def _from_json(cls, document: Mapping[str, Any]) -> AddInvoiceResponse:
        return cls(
            r_hash=_b64decode(document.get("r_hash", "")),
            payment_request=document.get("payment_request", ""),
            add_index=_int(document.get("add_index")),
            payment_addr=_b64decode(document.get("payment_addr", "")),
        )


def _https_transport(context: ssl.SSLContext) -> Transport:
    def transport(
        method: str, url: str, headers: Mapping[str, str], body: Optional[bytes]
    ) -> "tuple[int, bytes]":
        request = urllib.request.Request(url, data=body, headers=dict(headers), method=method)
        try:
            with urllib.request.urlopen(request, context=context, timeout=_TIMEOUT) as response:
                return response.status, response.read()
        except urllib.error.HTTPError as error:
            return error.code, error.read()
        except urllib.error.URLError as error:
            raise RpcStatus(
                StatusCode.UNAVAILABLE, f"error trying to connect: {error.reason}"
            ) from error
        except OSError as error:
            raise RpcStatus(StatusCode.UNAVAILABLE, f"error trying to connect: {error}") from error

    return transport


class InvoiceClient:
    """Talks to an LND node at ``authority`` over its HTTPS API.

    ``certificate`` is PEM text to trust in addition to the system roots, and
    ``macaroon`` the raw bytes sent to authenticate each call.
    """

    def __init__(
        self,
        authority: str,
        certificate: Optional[str] = None,
        macaroon: Optional[bytes] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.authority = authority
        self._macaroon = macaroon
        if transport is None:
            context = ssl.create_default_context()
            if certificate is not None:
                context.load_verify_locations(cadata=certificate)
            transport = _https_transport(context)
        self._transport = transport

    def _call(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        headers = {"Accept": "application/json"}
        if self._macaroon is not None:
            headers["Grpc-Metadata-macaroon"] = self._macaroon.hex().upper()
        body = None
        if payload is not None:
            body = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        status, data = self._transport(method, f"https://{self.authority}{path}", headers, body)
        try:
            document = json.loads(data) if data else {}
        except ValueError:
            document = None
        if 200 <= status < 300:
            if not isinstance(document, dict):
                raise RpcStatus(StatusCode.INTERNAL, "invalid response body")
            return document
        raise self._status_from(status, document)

    @staticmethod
    def _status_from(status: int, document: Any) -> RpcStatus:
        if isinstance(document, dict) and isinstance(document.get("code"), int):
            try:
                code = StatusCode(document["code"])
            except ValueError:
                code = StatusCode.UNKNOWN
            message = document.get("message") or document.get("error") or ""
            return RpcStatus(code, str(message))
        return RpcStatus(StatusCode.UNKNOWN, f"HTTP status {status}")

    def ping(self) -> None:
        """Check that the node answers, by listing no invoices."""
        self._call(
            "GET",
            "/v1/invoices?index_offset=0&num_max_invoices=0&pending_only=false&reversed=false",
        )

    def add_invoice(self, memo: str, value_msat: Millisatoshi) -> AddInvoiceResponse:
        if value_msat.value > _INT64_MAX:
            raise RpcStatus(
                StatusCode.INVALID_ARGUMENT,
                "invalid value for `value_msat`: out of range integral type conversion attempted",
            )
        document = self._call("POST", "/v1/invoices", {"memo": memo, "value_msat": str(value_msat.value)})
        return AddInvoiceResponse._from_json(document)

    def lookup_invoice(self, r_hash: bytes) -> Optional[Invoice]:
        """The invoice with payment hash ``r_hash``, or ``None`` if there is none."""
        r_hash = bytes(r_hash)
        if len(r_hash) != 32:
            raise ValueError(f"payment hash must be 32 bytes, not {len(r_hash)}")
        try:
            document = self._call("GET", f"/v1/invoice/{r_hash.hex()}")
        except RpcStatus as status:
            if status.code == StatusCode.UNKNOWN and status.message in _NOT_FOUND_MESSAGES:
                return None
            raise
        try:
            return Invoice._from_json(document)
        except (ValueError, binascii.Error) as error:
            raise RpcStatus(StatusCode.INTERNAL, f"invalid invoice: {error}") from error