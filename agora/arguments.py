"""Command-line arguments of the file server."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import NoReturn, Optional, Sequence

from .errors import ArgumentsError

_PORT_GROUP = "<--http-port <http-port>|--https-port <https-port>>"
_USAGE = f"agora [OPTIONS] --directory <directory> {_PORT_GROUP}"
_VERSION = "0.1.0"


@dataclass(frozen=True)
class Arguments:
    """Validated command-line settings."""

    directory: Path
    address: str = "0.0.0.0"
    acme_cache_directory: Optional[Path] = None
    acme_domain: list[str] = field(default_factory=list)
    http_port: Optional[int] = None
    https_port: Optional[int] = None
    https_redirect_port: Optional[int] = None
    lnd_rpc_authority: Optional[str] = None
    lnd_rpc_cert_path: Optional[Path] = None
    lnd_rpc_macaroon_path: Optional[Path] = None


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise ArgumentsError(_format_error(message))


def _format_error(message: str) -> str:
    return f"error: {message}\n\nUSAGE:\n    {_USAGE}\n\nFor more information try --help\n"


def _port(text: str) -> int:
    try:
        value = int(text, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port `{text}`: invalid digit found in string")
    if not 0 <= value <= 0xFFFF:
        raise argparse.ArgumentTypeError(
            f"invalid port `{text}`: number too large to fit in target type"
        )
    return value


def _authority(text: str) -> str:
    if not text or any(character in text for character in " /?#\t\r\n"):
        raise argparse.ArgumentTypeError(f"invalid authority `{text}`")
    return text


def _build_parser(prog: str) -> _Parser:
    parser = _Parser(prog=prog, allow_abbrev=False)
    parser.add_argument("--version", action="version", version=f"%(prog)s {_VERSION}")
    parser.add_argument(
        "--acme-cache-directory",
        metavar="<acme-cache-directory>",
        type=Path,
        help="Store TLS certificates fetched from Let's Encrypt via the ACME protocol "
        "in <acme-cache-directory>.",
    )
    parser.add_argument(
        "--acme-domain",
        metavar="<acme-domain>",
        action="append",
        help="Request TLS certificate for <acme-domain>. This instance must be reachable "
        "at <acme-domain>:443 to respond to ACME challenges.",
    )
    parser.add_argument(
        "--address",
        metavar="<address>",
        default="0.0.0.0",
        help="Listen on <address> for incoming requests.",
    )
    parser.add_argument(
        "--directory", metavar="<directory>", type=Path, help="Serve files from <directory>"
    )
    parser.add_argument(
        "--http-port",
        metavar="<http-port>",
        type=_port,
        help="Listen on <http-port> for incoming HTTP requests.",
    )
    parser.add_argument(
        "--https-port",
        metavar="<https-port>",
        type=_port,
        help="Listen on <https-port> for incoming HTTPS requests.",
    )
    parser.add_argument(
        "--https-redirect-port",
        metavar="<https-redirect-port>",
        type=_port,
        help="Redirect HTTP requests on <https-redirect-port> to HTTPS on <https-port>.",
    )
    parser.add_argument(
        "--lnd-rpc-authority",
        metavar="<lnd-rpc-authority>",
        type=_authority,
        help="Connect to the LND server with host and port <lnd-rpc-authority>.",
    )
    parser.add_argument(
        "--lnd-rpc-cert-path",
        metavar="<lnd-rpc-cert-path>",
        type=Path,
        help="Read LND's TLS certificate from <lnd-rpc-cert-path>. Needed if LND uses "
        "a self-signed certificate.",
    )
    parser.add_argument(
        "--lnd-rpc-macaroon-path",
        metavar="<lnd-rpc-macaroon-path>",
        type=Path,
        help="Read the LND macaroon from <lnd-rpc-macaroon-path>. The macaroon must "
        "include permissions for creating and querying invoices.",
    )
    return parser


def _missing_requirements(namespace: argparse.Namespace) -> list[str]:
    missing = []
    needs_https = namespace.https_port is not None or namespace.https_redirect_port is not None
    if needs_https and namespace.acme_cache_directory is None:
        missing.append("--acme-cache-directory <acme-cache-directory>")
    if needs_https and not namespace.acme_domain:
        missing.append("--acme-domain <acme-domain>...")
    if namespace.directory is None:
        missing.append("--directory <directory>")
    if namespace.https_redirect_port is not None and namespace.https_port is None:
        missing.append("--https-port <https-port>")
    wants_lnd = (
        namespace.lnd_rpc_cert_path is not None or namespace.lnd_rpc_macaroon_path is not None
    )
    if wants_lnd and namespace.lnd_rpc_authority is None:
        missing.append("--lnd-rpc-authority <lnd-rpc-authority>")
    if (
        namespace.http_port is None
        and namespace.https_port is None
        and namespace.https_redirect_port is None
    ):
        missing.append(_PORT_GROUP)
    return missing


def parse_arguments(argv: Sequence["str | os.PathLike[str]"]) -> Arguments:
    """Parse a full argument vector whose first item is the program name."""
    items = [os.fspath(item) for item in argv]
    prog = Path(items[0]).name if items else "agora"
    namespace = _build_parser(prog).parse_args(items[1:])
    missing = _missing_requirements(namespace)
    if missing:
        lines = "".join(f"    {requirement}\n" for requirement in missing)
        raise ArgumentsError(
            _format_error(f"The following required arguments were not provided:\n{lines}")
        )
    return Arguments(
        directory=namespace.directory,
        address=namespace.address,
        acme_cache_directory=namespace.acme_cache_directory,
        acme_domain=list(namespace.acme_domain or []),
        http_port=namespace.http_port,
        https_port=namespace.https_port,
        https_redirect_port=namespace.https_redirect_port,
        lnd_rpc_authority=namespace.lnd_rpc_authority,
        lnd_rpc_cert_path=namespace.lnd_rpc_cert_path,
        lnd_rpc_macaroon_path=namespace.lnd_rpc_macaroon_path,
    )