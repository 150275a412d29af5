"""Per-directory access configuration read from ``.agora.yaml`` files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigDeserializeError, FilesystemIoError, InternalError
from .millisatoshi import Millisatoshi

CONFIG_FILE_NAME = ".agora.yaml"

_FIELDS = ("paid", "base-price")


def _type_name(value: Any) -> str:
    if value is None:
        return "unit"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (list, tuple)):
        return "sequence"
    if isinstance(value, dict):
        return "map"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def _starts_with(path: Path, base: Path) -> bool:
    return path.parts[: len(base.parts)] == base.parts


@dataclass
class Config:
    """Access settings for a directory; unset fields are inherited from parents."""

    paid: Optional[bool] = None
    base_price: Optional[Millisatoshi] = None

    def is_paid(self) -> bool:
        return bool(self.paid)

    @classmethod
    def _from_document(cls, document: Any) -> Config:
        if not isinstance(document, dict):
            raise ValueError(
                f"invalid type: {_type_name(document)}, expected struct Config"
            )
        for key in document:
            if key not in _FIELDS:
                raise ValueError(f"unknown field `{key}`, expected `paid` or `base-price`")
        paid = document.get("paid")
        if paid is not None and not isinstance(paid, bool):
            raise ValueError(f"invalid type: {_type_name(paid)}, expected a boolean")
        base_price = document.get("base-price")
        return cls(
            paid=paid,
            base_price=None if base_price is None else Millisatoshi.parse(base_price),
        )

    def _merge_parent(self, parent: Config) -> Config:
        return Config(
            paid=self.paid if self.paid is not None else parent.paid,
            base_price=self.base_price if self.base_price is not None else parent.base_price,
        )

    @classmethod
    def for_dir(cls, base_directory: "os.PathLike[str] | str", path: "os.PathLike[str] | str") -> Config:
        """Combine the config files from ``path`` up to ``base_directory``.

        Files closer to ``path`` take precedence; nothing above the base
        directory is read.
        """
        base = Path(base_directory)
        directory = Path(path)
        if not _starts_with(directory, base):
            raise InternalError(
                f"Config::for_dir: `{directory}` does not start with `{base}`"
            )
        try:
            with os.scandir(directory):
                pass
        except OSError as error:
            raise FilesystemIoError(directory, error) from error

        config = cls()
        for ancestor in (directory, *directory.parents):
            if not _starts_with(ancestor, base):
                break
            file_path = ancestor / CONFIG_FILE_NAME
            try:
                text = file_path.read_text(encoding="utf-8")
            except FileNotFoundError:
                continue
            except OSError as error:
                raise FilesystemIoError(file_path, error) from error
            try:
                parent = cls._from_document(yaml.safe_load(text))
            except (yaml.YAMLError, ValueError) as error:
                raise ConfigDeserializeError(file_path, error) from error
            config = config._merge_parent(parent)
        return config