"""Errors raised while serving files, each mapped to an HTTP status."""

from __future__ import annotations

import os
from http import HTTPStatus
from typing import Optional


def _describe(source: BaseException) -> str:
    if isinstance(source, OSError) and source.errno is not None and source.strerror:
        return f"{source.strerror} (os error {source.errno})"
    return str(source)


def _display(path: "os.PathLike[str] | str") -> str:
    return os.fspath(path)


class AgoraError(Exception):
    """Base class of all errors; ``status()`` gives the HTTP status to answer with."""

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def status(self) -> HTTPStatus:
        return self.status_code


class AddressResolutionError(AgoraError):
    def __init__(self, input: str, source: Optional[BaseException] = None) -> None:
        self.input = input
        self.source = source
        if source is None:
            message = f"`{input}` did not resolve to an IP address"
        else:
            message = f"Failed to resolve `{input}` to an IP address: {_describe(source)}"
        super().__init__(message)


class ArgumentsError(AgoraError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigDeserializeError(AgoraError):
    def __init__(self, path, source: BaseException) -> None:
        self.path = path
        self.source = source
        super().__init__(
            f"Failed to deserialize config file at `{_display(path)}`: {source}"
        )


class ConfigMissingBasePriceError(AgoraError):
    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Missing base price for paid file `{_display(path)}`")


class CurrentDirError(AgoraError):
    def __init__(self, source: BaseException) -> None:
        self.source = source
        super().__init__(f"Failed to retrieve current directory: {_describe(source)}")


class CustomError(AgoraError):
    def __init__(self, message: str, status_code: HTTPStatus) -> None:
        self.message = message
        self.status_code = HTTPStatus(status_code)
        super().__init__(message)


class FilesystemIoError(AgoraError):
    def __init__(self, path, source: OSError) -> None:
        self.path = path
        self.source = source
        super().__init__(
            f"IO error accessing filesystem at `{_display(path)}`: {_describe(source)}"
        )

    def status(self) -> HTTPStatus:
        if isinstance(self.source, FileNotFoundError):
            return HTTPStatus.NOT_FOUND
        return HTTPStatus.INTERNAL_SERVER_ERROR


class HiddenFileAccessError(AgoraError):
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Forbidden access to hidden file: {_display(path)}")


class InternalError(AgoraError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(
            f"Internal error, this is probably a bug in agora: {message}\n"
            "Consider filing an issue."
        )


class InvalidFilePathError(AgoraError):
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, uri_path: str) -> None:
        self.uri_path = uri_path
        super().__init__(f"Invalid URI file path: {uri_path}")


class InvalidUriPathError(AgoraError):
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, uri_path: str, source: Optional[BaseException] = None) -> None:
        self.uri_path = uri_path
        self.source = source
        super().__init__(f"Invalid URI path: {uri_path}")


class InvoiceIdError(AgoraError):
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, source: BaseException) -> None:
        self.source = source
        super().__init__(f"Invalid invoice ID: {source}")


class InvoiceNotFoundError(AgoraError):
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, r_hash: bytes) -> None:
        self.r_hash = bytes(r_hash)
        super().__init__(f"Invoice not found: {self.r_hash.hex()}")


class InvoicePathMismatchError(AgoraError):
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, invoice_tail: str, r_hash: bytes, request_tail: str) -> None:
        self.invoice_tail = invoice_tail
        self.r_hash = bytes(r_hash)
        self.request_tail = request_tail
        super().__init__(
            f"Request path `{request_tail}` did not match invoice path "
            f"`{invoice_tail}` for invoice: {self.r_hash.hex()}"
        )


class LndNotConfiguredInvoiceRequestError(AgoraError):
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, uri_path: str) -> None:
        self.uri_path = uri_path
        super().__init__(
            f"Invoice request requires LND client configuration: {uri_path}"
        )


class LndNotConfiguredPaidFileRequestError(AgoraError):
    def __init__(self, path) -> None:
        self.path = path
        super().__init__(
            f"Paid file request requires LND client configuration: `{_display(path)}`"
        )


class LndRpcStatusError(AgoraError):
    def __init__(self, source: BaseException) -> None:
        self.source = source
        super().__init__(f"LND RPC call failed: {source}")


class RouteNotFoundError(AgoraError):
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, uri_path: str) -> None:
        self.uri_path = uri_path
        super().__init__(f"URI path did not match any route: {uri_path}")


class SymlinkAccessError(AgoraError):
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Forbidden access to escaping symlink: `{_display(path)}`")