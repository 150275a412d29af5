"""Serve a directory of files over HTTP, with optional Lightning Network paywalls."""

__version__ = "0.1.0"