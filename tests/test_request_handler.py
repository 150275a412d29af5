import io
import os
from http import HTTPStatus
from wsgiref.util import setup_testing_defaults

import pytest

from agora.environment import Environment
from agora.errors import InvoiceIdError
from agora.request_handler import RequestHandler, decode_invoice_id, split_path_inclusive
from agora.web import Request


@pytest.fixture
def setup(tmp_path):
    www = tmp_path / "www"
    www.mkdir()
    stderr = io.StringIO()
    environment = Environment(arguments=["agora"], working_directory=tmp_path, stderr=stderr)
    return RequestHandler(environment, "www"), www, stderr


@pytest.mark.parametrize(
    "path, expected",
    [
        ("foo/bar", ["foo/", "bar"]),
        ("foo/bar/baz", ["foo/", "bar/", "baz"]),
        ("foo/bar/", ["foo/", "bar/"]),
        ("/foo", ["/", "foo"]),
        ("", []),
        ("foo", ["foo"]),
    ],
)
def test_split_path_inclusive(path, expected):
    assert split_path_inclusive(path) == expected


def test_decode_invoice_id():
    assert decode_invoice_id("ab" * 32) == b"\xab" * 32


@pytest.mark.parametrize(
    "text, message",
    [
        ("abc", "Odd number of digits"),
        ("ab", "Invalid string length"),
        ("g" + "a" * 63, "Invalid character 'g' at position 0"),
    ],
)
def test_decode_invoice_id_errors(text, message):
    with pytest.raises(InvoiceIdError) as info:
        decode_invoice_id(text)
    assert info.value.status() == HTTPStatus.BAD_REQUEST
    assert str(info.value) == f"Invalid invoice ID: {message}"


def test_index_route_redirects_to_files(setup):
    handler, _, _ = setup
    response = handler.handle(Request(path="/"))
    assert response.status == HTTPStatus.FOUND
    assert response.header("Location") == "/files/"


def test_files_route_without_trailing_slash_redirects(setup):
    handler, _, _ = setup
    response = handler.handle(Request(path="/files"))
    assert response.status == HTTPStatus.FOUND
    assert response.header("Location") == "/files/"


def test_unknown_route_is_404(setup):
    handler, _, stderr = setup
    response = handler.handle(Request(path="/huhu"))
    assert response.status == HTTPStatus.NOT_FOUND
    assert "404 Not Found" in response.read().decode()
    assert "URI path did not match any route: /huhu" in stderr.getvalue()


def test_listing_contains_title_and_is_not_cached(setup):
    handler, _, _ = setup
    response = handler.handle(Request(path="/files/"))
    assert response.status == HTTPStatus.OK
    assert response.header("Cache-Control") == "no-store, max-age=0"
    assert "<title>agora</title>" in response.read().decode()


def test_files_are_not_cached(setup):
    handler, www, _ = setup
    (www / "foo").write_text("bar")
    response = handler.handle(Request(path="/files/foo"))
    assert response.header("Cache-Control") == "no-store, max-age=0"
    assert response.read() == b"bar"


@pytest.mark.parametrize(
    "name, uri_path",
    [
        ("=", "/files/%3D"),
        ("=", "/files/="),
        ("foo%20bar", "/files/foo%2520bar"),
        ("%80", "/files/%2580"),
        ("foo bar", "/files/foo%20bar"),
    ],
)
def test_filenames_with_percent_encoding(setup, name, uri_path):
    handler, www, _ = setup
    (www / name).write_text("contents")
    response = handler.handle(Request(path=uri_path))
    assert response.status == HTTPStatus.OK
    assert response.read() == b"contents"


@pytest.mark.parametrize(
    "uri_path, shown",
    [
        ("/files/foo/../bar.txt", "foo/../bar.txt"),
        ("/files/foo//bar.txt", "foo//bar.txt"),
        ("/files//foo.txt", "/foo.txt"),
    ],
)
def test_disallowed_paths_are_bad_requests(setup, uri_path, shown):
    handler, _, stderr = setup
    response = handler.handle(Request(path=uri_path))
    assert response.status == HTTPStatus.BAD_REQUEST
    assert f"Invalid URI file path: {shown}" in stderr.getvalue()


def test_invalid_utf8_path_is_bad_request(setup):
    handler, _, stderr = setup
    response = handler.handle(Request(path="/files/%80"))
    assert response.status == HTTPStatus.BAD_REQUEST
    assert "Invalid URI path: /files/%80" in stderr.getvalue()


def test_missing_file_is_404_and_logged(setup):
    handler, _, stderr = setup
    response = handler.handle(Request(path="/files/foo.txt"))
    assert response.status == HTTPStatus.NOT_FOUND
    assert response.header("Cache-Control") is None
    assert f"IO error accessing filesystem at `www{os.sep}foo.txt`" in stderr.getvalue()


def test_invalid_invoice_parameter_is_bad_request(setup):
    handler, www, _ = setup
    (www / "foo").write_text("")
    response = handler.handle(Request(path="/files/foo", query="invoice=xyz"))
    assert response.status == HTTPStatus.BAD_REQUEST


def test_invoice_request_without_lnd_is_404(setup):
    handler, www, stderr = setup
    (www / "foo").write_text("")
    response = handler.handle(Request(path="/files/foo", query="invoice=" + "a" * 64))
    assert response.status == HTTPStatus.NOT_FOUND
    assert "Invoice request requires LND client configuration: /files/foo" in stderr.getvalue()


def test_paid_file_without_lnd_is_500(setup):
    handler, www, stderr = setup
    (www / ".agora.yaml").write_text("paid: true")
    (www / "foo").write_text("precious content")
    response = handler.handle(Request(path="/files/foo"))
    assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
    assert (
        f"Paid file request requires LND client configuration: `www{os.sep}foo`"
        in stderr.getvalue()
    )


def test_wsgi_interface_serves_files(setup):
    handler, www, _ = setup
    (www / "foo.txt").write_text("hello")
    environ = {"PATH_INFO": "/files/foo.txt"}
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(handler(environ, start_response))
    assert captured["status"] == "200 OK"
    assert captured["headers"]["Cache-Control"] == "no-store, max-age=0"
    assert body == b"hello"