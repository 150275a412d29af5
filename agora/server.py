"""Starting the HTTP, HTTPS and redirect servers and running them together."""

from __future__ import annotations

import logging
import os
import socket
import socketserver
import ssl
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Optional, Sequence
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer

from .arguments import Arguments
from .environment import Environment
from .errors import (
    AddressResolutionError,
    AgoraError,
    ArgumentsError,
    FilesystemIoError,
    LndRpcStatusError,
)
from .https_redirect import HttpsRedirectService
from .lightning import InvoiceClient, RpcStatus
from .request_handler import RequestHandler

_logger = logging.getLogger(__name__)

_CACHED_CERTIFICATE_PREFIX = "cached_cert_"


class _StartupError(AgoraError):
    """A failure to open a socket or to prepare the LND client."""


def _format_address(address: Sequence[Any]) -> str:
    host, port = address[0], address[1]
    if ":" in str(host):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class _Handler(WSGIRequestHandler):
    def get_environ(self) -> dict:
        environ = super().get_environ()
        environ["REQUEST_URI"] = self.path
        return environ

    def log_message(self, format: str, *args: Any) -> None:
        pass


class _WsgiServer(socketserver.ThreadingMixIn, WSGIServer):
    daemon_threads = True

    def __init__(self, address: tuple, family: int, app: Callable[..., Any]) -> None:
        self.address_family = family
        super().__init__(address, _Handler)
        self.set_app(app)

    def server_bind(self) -> None:
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = str(host)
        self.server_port = port
        self.setup_environ()


class _HttpsServer(_WsgiServer):
    """Serves over TLS with a certificate taken from the ACME cache directory."""

    def __init__(
        self, address: tuple, family: int, app: Callable[..., Any], cache_directory: Path
    ) -> None:
        self.cache_directory = cache_directory
        self._context: Optional[ssl.SSLContext] = None
        self._context_lock = threading.Lock()
        super().__init__(address, family, app)

    def _load_context(self) -> Optional[ssl.SSLContext]:
        with self._context_lock:
            if self._context is not None:
                return self._context
            try:
                candidates = sorted(
                    path
                    for path in self.cache_directory.iterdir()
                    if path.name.startswith(_CACHED_CERTIFICATE_PREFIX)
                )
            except OSError:
                return None
            for candidate in candidates:
                context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
                context.set_alpn_protocols(["http/1.1"])
                try:
                    context.load_cert_chain(candidate)
                except (OSError, ssl.SSLError) as error:
                    _logger.error("Failed to load certificate `%s`: %s", candidate, error)
                    continue
                self._context = context
                return context
            return None

    def get_request(self) -> tuple:
        connection, address = super().get_request()
        context = self._load_context()
        if context is None:
            connection.close()
            raise OSError("no TLS certificate available in ACME cache directory")
        try:
            return context.wrap_socket(connection, server_side=True), address
        except OSError as error:
            _logger.error("TLS accept error: %r", error)
            connection.close()
            raise


def _resolve(address: str, port: int) -> tuple[int, tuple]:
    try:
        infos = socket.getaddrinfo(address, port, type=socket.SOCK_STREAM)
    except OSError as error:
        raise AddressResolutionError(address, error) from error
    if not infos:
        raise AddressResolutionError(address)
    family, _type, _proto, _name, socket_address = infos[0]
    return family, socket_address


def _bind(address: str, port: int, factory: Callable[[tuple, int], _WsgiServer]) -> _WsgiServer:
    family, socket_address = _resolve(address, port)
    try:
        return factory(socket_address, family)
    except OSError as error:
        raise _StartupError(
            f"I/O error on socket address `{_format_address(socket_address)}`: {error}"
        ) from error


def _write(environment: Environment, line: str) -> None:
    environment.stderr.write(line + "\n")
    environment.stderr.flush()


def _setup_lnd_client(environment: Environment, arguments: Arguments) -> Optional[InvoiceClient]:
    authority = arguments.lnd_rpc_authority
    if authority is None:
        return None

    certificate = None
    if arguments.lnd_rpc_cert_path is not None:
        path = arguments.lnd_rpc_cert_path
        try:
            certificate = (environment.working_directory / path).read_text(encoding="utf-8")
        except OSError as error:
            raise FilesystemIoError(path, error) from error

    macaroon = None
    if arguments.lnd_rpc_macaroon_path is not None:
        path = arguments.lnd_rpc_macaroon_path
        try:
            macaroon = (environment.working_directory / path).read_bytes()
        except OSError as error:
            raise FilesystemIoError(path, error) from error

    try:
        client = InvoiceClient(authority, certificate, macaroon)
    except (ssl.SSLError, ValueError) as error:
        raise _StartupError(f"OpenSSL error parsing LND RPC certificate: {error}") from error

    try:
        client.ping()
    except RpcStatus as status:
        _write(
            environment,
            f"warning: Cannot connect to LND gRPC server at `{authority}`: "
            f"{LndRpcStatusError(status)}",
        )
    else:
        _write(environment, f"Connected to LND RPC server at {authority}")
    return client


class Server:
    """The set of listening servers configured by the command line."""

    def __init__(
        self,
        http_server: Optional[_WsgiServer],
        https_server: Optional[_HttpsServer],
        https_redirect_server: Optional[_WsgiServer],
    ) -> None:
        self._http_server = http_server
        self._servers = [
            server
            for server in (http_server, https_server, https_redirect_server)
            if server is not None
        ]
        self._lock = threading.Lock()
        self._started = False
        self._closed = False

    @classmethod
    def setup(cls, environment: Environment) -> Server:
        """Parse arguments, check the directory and bind all listening sockets."""
        arguments = environment.parse_arguments()

        directory = environment.working_directory / arguments.directory
        try:
            with os.scandir(directory):
                pass
        except OSError as error:
            raise FilesystemIoError(directory, error) from error

        bound: list[_WsgiServer] = []
        try:
            http_server = None
            if arguments.http_port is not None:
                lnd_client = _setup_lnd_client(environment, arguments)
                handler = RequestHandler(environment, arguments.directory, lnd_client)
                http_server = _bind(
                    arguments.address,
                    arguments.http_port,
                    lambda address, family: _WsgiServer(address, family, handler),
                )
                bound.append(http_server)
                _write(
                    environment,
                    "Listening for HTTP connections on "
                    f"`{_format_address(http_server.server_address)}`",
                )

            https_server = None
            https_redirect_server = None
            if arguments.https_port is not None:
                if arguments.acme_cache_directory is None or not arguments.acme_domain:
                    raise ArgumentsError(
                        "<https-port> requires <acme-cache-directory> and <acme-domain>"
                    )
                lnd_client = _setup_lnd_client(environment, arguments)
                handler = RequestHandler(environment, arguments.directory, lnd_client)
                cache_directory = environment.working_directory / arguments.acme_cache_directory
                https_server = _bind(
                    arguments.address,
                    arguments.https_port,
                    lambda address, family: _HttpsServer(address, family, handler, cache_directory),
                )
                bound.append(https_server)
                _write(
                    environment,
                    "Listening for HTTPS connections on "
                    f"`{_format_address(https_server.server_address)}`",
                )
                try:
                    cache_directory.mkdir(parents=True, exist_ok=True)
                except OSError as error:
                    raise FilesystemIoError(cache_directory, error) from error

                if arguments.https_redirect_port is not None:
                    service = HttpsRedirectService(https_server.server_port, environment.stderr)
                    https_redirect_server = _bind(
                        arguments.address,
                        arguments.https_redirect_port,
                        lambda address, family: _WsgiServer(address, family, service),
                    )
                    bound.append(https_redirect_server)
        except BaseException:
            for server in bound:
                server.server_close()
            raise

        return cls(http_server, https_server, https_redirect_server)

    def run(self) -> None:
        """Serve requests until ``shutdown`` is called."""
        with self._lock:
            if self._closed:
                return
            self._started = True
            threads = [
                threading.Thread(target=server.serve_forever, daemon=True)
                for server in self._servers
            ]
            for thread in threads:
                thread.start()
        for thread in threads:
            thread.join()

    def shutdown(self) -> None:
        """Stop serving and close every socket."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            started = self._started
        for server in self._servers:
            if started:
                server.shutdown()
            server.server_close()

    def http_port(self) -> Optional[int]:
        """The port the HTTP server listens on, or ``None`` without one."""
        if self._http_server is None:
            return None
        return self._http_server.server_address[1]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the server with ``argv`` (default: the process arguments)."""
    try:
        environment = Environment.production()
        if argv is not None:
            environment.arguments = ["agora", *argv]
        server = Server.setup(environment)
    except ArgumentsError as error:
        sys.stderr.write(str(error))
        return 1
    except AgoraError as error:
        print(error, file=sys.stderr)
        return 1
    try:
        server.run()
    except KeyboardInterrupt:
        pass
    finally:
        server.shutdown()
    return 0