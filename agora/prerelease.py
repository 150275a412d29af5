"""Decide whether a git reference names a prerelease."""

from __future__ import annotations

import argparse
import re
from typing import Optional, Sequence

_RELEASE = re.compile(r"refs/tags/[0-9]+\.[0-9]+\.[0-9]+")


def is_prerelease(reference: str) -> bool:
    """True unless ``reference`` is a tag of the form ``X.Y.Z``."""
    return _RELEASE.fullmatch(reference) is None


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="prerelease")
    parser.add_argument("--reference", required=True)
    arguments = parser.parse_args(argv)
    value = "true" if is_prerelease(arguments.reference) else "false"
    print(f"::set-output name=value::{value}")
    return 0