"""Serving directory listings, files and invoices from the base directory."""

from __future__ import annotations

import os
import stat
from html import escape
from http import HTTPStatus
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Optional, Sequence
from urllib.parse import quote

import markdown

from .config import Config
from .errors import (
    ConfigMissingBasePriceError,
    FilesystemIoError,
    HiddenFileAccessError,
    InternalError,
    InvoiceNotFoundError,
    InvoicePathMismatchError,
    LndNotConfiguredInvoiceRequestError,
    LndNotConfiguredPaidFileRequestError,
    LndRpcStatusError,
    SymlinkAccessError,
)
from .input_path import InputPath, lexiclean
from .lightning import InvoiceState, RpcStatus
from .web import Request, Response, redirect, wrap_body

_CHUNK_SIZE = 8 * 1024

# Everything but ASCII letters, digits and these is percent-encoded,
# including non-ASCII code points.
_HREF_SAFE = "!$&'()*+,-./:;=?@_~"

_INDEX_FILE_NAME = ".index.md"
_MARKDOWN_EXTENSIONS = ["footnotes", "tables"]


def iter_file(path: "os.PathLike[str] | str", display_path: "os.PathLike[str] | str") -> Iterator[bytes]:
    """Open ``path`` now and return an iterator over its contents in chunks.

    Errors name ``display_path``. Reads return as soon as data is available,
    so pipes are streamed rather than read to the end first.
    """
    try:
        handle = open(path, "rb", buffering=0)
    except OSError as error:
        raise FilesystemIoError(display_path, error) from error
    return _chunks(handle, display_path)


def _chunks(handle: BinaryIO, display_path: "os.PathLike[str] | str") -> Iterator[bytes]:
    with handle:
        while True:
            try:
                chunk = handle.read(_CHUNK_SIZE)
            except OSError as error:
                raise FilesystemIoError(display_path, error) from error
            if not chunk:
                return
            yield chunk


def _starts_with(path: Path, base: Path) -> bool:
    return path.parts[: len(base.parts)] == base.parts


def _icon(name: str) -> str:
    href = escape(f"/static/feather-sprite.svg#{name}")
    return f'<svg class="icon"><use href="{href}"></use></svg>'


class Files:
    """Serves the contents of ``base_directory``, charging for paid files."""

    def __init__(self, base_directory: InputPath, lnd_client: Optional[Any] = None) -> None:
        self.base_directory = base_directory
        self.lnd_client = lnd_client

    def _file_path(self, path: str) -> InputPath:
        return self.base_directory.join_file_path(path)

    def _check_path(self, path: InputPath) -> None:
        try:
            info = os.lstat(path.full_path)
        except OSError as error:
            raise FilesystemIoError(path.display_path, error) from error

        if stat.S_ISLNK(info.st_mode):
            try:
                link = os.readlink(path.full_path)
            except OSError as error:
                raise FilesystemIoError(path.display_path, error) from error
            destination = lexiclean(path.full_path.parent / link)
            if not _starts_with(destination, self.base_directory.full_path):
                raise SymlinkAccessError(path.display_path)

        if path.full_path.name.startswith("."):
            raise HiddenFileAccessError(path.full_path)

    def _config_for_dir(self, directory: Path) -> Config:
        return Config.for_dir(self.base_directory.full_path, directory)

    def serve(self, request: Request, tail: Sequence[str]) -> Response:
        """Answer a request for the file or directory named by ``tail``."""
        file_path = self._file_path("".join(tail))

        for prefix in self.base_directory.iter_prefixes(tail):
            self._check_path(prefix)

        try:
            info = os.stat(file_path.full_path)
        except OSError as error:
            raise FilesystemIoError(file_path.display_path, error) from error
        is_dir = stat.S_ISDIR(info.st_mode)

        if not is_dir and request.path.endswith("/"):
            return redirect(request.path[:-1])
        if is_dir and not request.path.endswith("/"):
            return redirect(request.path + "/")

        if is_dir:
            return self._serve_dir(file_path)
        return self._access_file(request, tail, file_path)

    def _read_dir(self, path: InputPath) -> list[tuple[str, bool, bool]]:
        """Visible entries of ``path`` as (name, is_dir, is_file), sorted by name."""
        entries = []
        try:
            with os.scandir(path.full_path) as iterator:
                listed = list(iterator)
        except OSError as error:
            raise FilesystemIoError(path.display_path, error) from error
        for entry in listed:
            input_path = path.join_relative(entry.name)
            try:
                self._check_path(input_path)
            except Exception:
                continue
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = entry.is_file(follow_symlinks=False)
            except OSError as error:
                raise FilesystemIoError(input_path.display_path, error) from error
            entries.append((entry.name, is_dir, is_file))
        entries.sort(key=lambda entry: os.fsencode(entry[0]))
        return entries

    @staticmethod
    def _render_index(directory: InputPath) -> Optional[str]:
        index = directory.join_relative(_INDEX_FILE_NAME)
        try:
            text = index.full_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as error:
            raise FilesystemIoError(index.display_path, error) from error
        return markdown.markdown(text, extensions=_MARKDOWN_EXTENSIONS)

    def _serve_dir(self, directory: InputPath) -> Response:
        config = self._config_for_dir(directory.full_path)
        items = []
        for name, is_dir, is_file in self._read_dir(directory):
            if is_dir:
                name += "/"
            href = escape(quote(name, safe=_HREF_SAFE))
            item = f'<li><a href="{href}" class="view">{escape(name)}</a>'
            if is_file and not config.is_paid():
                item += f'<a download href="{href}">{_icon("download")}</a>'
            items.append(item + "</li>")
        body = f'<ul class="listing">{"".join(items)}</ul>'
        index = self._render_index(directory)
        if index is not None:
            body += f"<div>{index}</div>"
        return wrap_body(body)

    def _access_file(self, request: Request, tail: Sequence[str], path: InputPath) -> Response:
        parent = path.full_path.parent
        if parent == path.full_path:
            raise InternalError(f"Failed to get parent of file: {path!r}")
        config = self._config_for_dir(parent)

        if not config.is_paid():
            return self._serve_file(path)

        if self.lnd_client is None:
            raise LndNotConfiguredPaidFileRequestError(path.display_path)

        if config.base_price is None:
            raise ConfigMissingBasePriceError(path.display_path)

        try:
            invoice = self.lnd_client.add_invoice("".join(tail), config.base_price)
        except RpcStatus as status:
            raise LndRpcStatusError(status) from status
        return redirect(f"{request.path}?invoice={bytes(invoice.r_hash).hex()}")

    @staticmethod
    def _serve_file(path: InputPath) -> Response:
        headers = {}
        mime_type = path.mime_type()
        if mime_type is not None:
            headers["Content-Type"] = mime_type
        return Response(
            status=HTTPStatus.OK,
            headers=headers,
            body=iter_file(path.full_path, path.display_path),
        )

    def serve_invoice(
        self, request: Request, request_tail: Sequence[str], r_hash: bytes
    ) -> Response:
        """Serve the paid file if the invoice is settled, else the payment page."""
        if self.lnd_client is None:
            raise LndNotConfiguredInvoiceRequestError(request.path)
        try:
            invoice = self.lnd_client.lookup_invoice(r_hash)
        except RpcStatus as status:
            raise LndRpcStatusError(status) from status
        if invoice is None:
            raise InvoiceNotFoundError(r_hash)

        tail = "".join(request_tail)
        if tail != invoice.memo:
            raise InvoicePathMismatchError(
                invoice_tail=invoice.memo, r_hash=r_hash, request_tail=tail
            )

        if invoice.state is InvoiceState.SETTLED:
            return self._serve_file(self._file_path(invoice.memo))

        value = escape(str(invoice.price()))
        filename = escape(invoice.memo)
        payment_request = invoice.payment_request
        copy_script = escape(f'navigator.clipboard.writeText("{payment_request}")')
        body = (
            '<div class="invoice">'
            '<div class="label">'
            f"Lightning Payment Request for {value} to access "
            f'<span class="filename">{filename}</span>:'
            "</div>"
            '<div class="payment-request">'
            f'<button class="clipboard-copy" onclick="{copy_script}">{_icon("clipboard")}</button>'
            f"{escape(payment_request)}"
            "</div>"
            '<div class="links">'
            f'<a class="payment-link" href="{escape("lightning:" + payment_request)}">'
            "Open invoice in wallet</a>"
            f'<a class="reload-link" href="{escape(request.uri)}">Access file</a>'
            "</div>"
            "</div>"
            '<div class="instructions">'
            f'To access <span class="filename">{filename}</span>:'
            "<ol>"
            f"<li>Pay the invoice for {value} above with your Lightning Network wallet by "
            "copying the payment request string, or clicking the "
            "&quot;Open invoice in wallet&quot; link.</li>"
            "<li>Click the &quot;Access file&quot; link or reload the page.</li>"
            "</ol>"
            "</div>"
        )
        return wrap_body(body)