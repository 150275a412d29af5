# agora

agora serves the files in a directory over HTTP. Directory listings are
rendered as HTML pages, sorted by name. Hidden files (names beginning
with `.`) are never listed or served, and symbolic links that point
outside the served directory are left out of listings and refused when
requested. A `.index.md` file in a directory is rendered as Markdown
(with footnotes and tables) below that directory's listing. Every
response carries `Cache-Control: no-store, max-age=0`.

Directories can be marked as paid. Files in a paid directory are only
served once a Lightning Network invoice for them has been settled.

## Installation

```
pip install .
```

## Serving a directory

```
agora --directory=www --http-port=8080
```

The server listens on `0.0.0.0` unless `--address` says otherwise, and
prints the address it is listening on to standard error. Browse to
`http://localhost:8080/`; you are redirected to `/files/`, the listing of
the served directory. Directories requested without a trailing slash are
redirected to the path with one, and files requested with a trailing
slash are redirected to the path without it. Errors are answered with an
error page carrying the matching status (for example 404 for missing or
hidden files, 400 for paths containing `..` or empty segments) and are
logged to standard error.

At least one of `--http-port` and `--https-port` is required.
`--https-port` requires `--acme-cache-directory` and `--acme-domain`, and
`--https-redirect-port` requires `--https-port`. Run `agora --help` for
the full list of options and `agora --version` for the version.

## HTTPS

With `--https-port`, the server answers over TLS using a certificate it
finds in the directory given by `--acme-cache-directory` (relative to the
working directory; it is created if missing). It uses the first file,
by name, whose name starts with `cached_cert_` and that holds a PEM
private key followed by the certificate chain. Connections are refused
until such a file is present.

With `--https-redirect-port`, plain HTTP requests on that port are
redirected to the same host and path on the HTTPS port. Requests without
a valid `Host` header get `400 Bad Request`.

## Paid files

Place a `.agora.yaml` file in a directory to configure it and everything
below it:

```yaml
paid: true
base-price: 1000 sat
```

A configuration file in a subdirectory overrides the settings it names
and inherits the rest from its parents. Configuration files outside the
served directory are ignored, and unknown keys are an error. Prices are
whole numbers of satoshis followed by ` sat`. Files in a paid directory
are listed without a download link.

Requesting a paid file needs a connection to an LND node, given with
`--lnd-rpc-authority` (host and port of the node's REST interface), and
optionally `--lnd-rpc-cert-path` (a PEM certificate to trust) and
`--lnd-rpc-macaroon-path` (a macaroon allowed to create and look up
invoices). At startup the server checks that the node answers and prints
either a confirmation or a warning. A request for a paid file creates an
invoice for the directory's base price and redirects to
`<path>?invoice=<payment hash>`. That page shows the amount, the payment
request, a `lightning:` link and a link back to itself. Once the invoice
is settled, the same URL serves the file. An invoice only unlocks the
file it was created for.

## Release helper

`agora-prerelease` decides whether a Git reference names a prerelease:

```
agora-prerelease --reference refs/tags/1.2.3
```

prints `::set-output name=value::false`, while any reference that is not
a plain `refs/tags/<major>.<minor>.<patch>` tag prints `true`.

## Using it from Python

- `agora.request_handler.RequestHandler(environment, base_directory,
  lnd_client=None)` is a WSGI application; `handle(request)` answers an
  `agora.web.Request` with an `agora.web.Response` directly.
- `agora.environment.Environment(arguments, working_directory, stderr)`
  holds the argument vector, the working directory and the error stream;
  `Environment.production()` captures the running process's.
- `agora.server.Server.setup(environment)` binds the configured servers,
  `run()` serves until `shutdown()` is called, and `http_port()` gives
  the bound HTTP port.
- `agora.config.Config.for_dir(base_directory, path)` reads the merged
  `.agora.yaml` configuration for a directory.
- `agora.millisatoshi.Millisatoshi.parse("3 sat")` reads prices, and
  `str()` of an amount gives text such as `1,000.123 satoshis`.
- `agora.lightning.InvoiceClient` creates (`add_invoice`) and looks up
  (`lookup_invoice`) invoices on an LND node.

## What it does not do

- It does not obtain certificates itself. `--acme-domain` is required
  with `--https-port`, but no certificate is requested from any ACME
  service; a certificate must already be in the cache directory.
- It serves no bundled static files. Pages link to `/static/index.css`,
  `/static/index.js` and icons under `/static/`, and there is no
  `/favicon.ico`; those requests are answered with 404.
- The invoice page shows no QR code, and there is no route that renders
  one.
- HTTPS is served over HTTP/1.1 only.

## Running the tests

```
pip install .[test]
pytest
```