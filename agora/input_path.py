"""Paths supplied by users, kept both as full paths and as displayed paths."""

from __future__ import annotations

import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Sequence

from .errors import InternalError, InvalidFilePathError

_MIME_TYPES = mimetypes.MimeTypes()
_MIME_OVERRIDES = {
    ".ico": "image/x-icon",
    ".js": "application/javascript",
}


def guess_mime_type(path: "os.PathLike[str] | str") -> Optional[str]:
    """Guess the content type from a file name, or ``None`` if unknown."""
    suffix = Path(path).suffix.lower()
    if suffix in _MIME_OVERRIDES:
        return _MIME_OVERRIDES[suffix]
    guess, _encoding = _MIME_TYPES.guess_type(os.fspath(path), strict=False)
    return guess


def lexiclean(path: "os.PathLike[str] | str") -> Path:
    """Clean a path lexically: drop ``.`` and resolve ``..`` without touching the disk."""
    path = Path(path)
    anchor = path.anchor
    parts: list[str] = []
    for part in path.parts[1 if anchor else 0:]:
        if part == ".":
            continue
        if part == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not anchor:
                parts.append("..")
            continue
        parts.append(part)
    if not anchor and not parts:
        return Path(".")
    return Path(anchor, *parts)


@dataclass(frozen=True)
class InputPath:
    """A path on disk paired with the relative form shown in messages."""

    full_path: Path
    display_path: Path

    @classmethod
    def new(
        cls,
        working_directory: "os.PathLike[str] | str",
        display_path: "os.PathLike[str] | str",
    ) -> InputPath:
        return cls(
            full_path=lexiclean(Path(working_directory) / display_path),
            display_path=lexiclean(display_path),
        )

    def __fspath__(self) -> str:
        return os.fspath(self.full_path)

    def join_relative(self, path: "os.PathLike[str] | str") -> InputPath:
        relative = Path(path)
        if relative.is_absolute():
            raise InternalError(f"join_relative: {relative} is absolute")
        return InputPath(
            full_path=lexiclean(self.full_path / relative),
            display_path=lexiclean(self.display_path / relative),
        )

    def join_file_path(self, uri_path: str) -> InputPath:
        """Join a path taken from a URI, rejecting anything but plain names."""
        segments = uri_path.split("/")
        if (
            uri_path.startswith("/")
            or "//" in uri_path
            or segments[0] == "."
            or ".." in segments
            or "\\" in uri_path and os.sep == "\\"
        ):
            raise InvalidFilePathError(uri_path)
        return self.join_relative(uri_path)

    def mime_type(self) -> Optional[str]:
        return guess_mime_type(self.display_path)

    def iter_prefixes(self, tail: Sequence[str]) -> Iterator[InputPath]:
        """Yield the path of each prefix of ``tail``, from the first segment to all."""
        for end in range(1, len(tail) + 1):
            yield self.join_file_path("".join(tail[:end]))