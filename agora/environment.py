"""The process environment: arguments, working directory and error stream."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from .arguments import Arguments, parse_arguments
from .errors import CurrentDirError


@dataclass
class Environment:
    """What the server reads from the process it runs in."""

    arguments: list[str]
    working_directory: Path
    stderr: TextIO = field(default_factory=lambda: sys.stderr)

    @classmethod
    def production(cls) -> Environment:
        """Capture the running process's arguments, directory and stderr."""
        try:
            working_directory = Path(os.getcwd())
        except OSError as error:
            raise CurrentDirError(error) from error
        return cls(
            arguments=list(sys.argv),
            working_directory=working_directory,
            stderr=sys.stderr,
        )

    def parse_arguments(self) -> Arguments:
        return parse_arguments(self.arguments)