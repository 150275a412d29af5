"""Lightning amounts measured in thousandths of a satoshi."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_AMOUNT = re.compile(r"([0-9]*) sat")

_EXPECTED_VALUE = 'integer number of satoshis, including unit, e.g. "1000 sat"'
_EXPECTED_TYPE = 'a string, e.g. "1000 sat"'


def _type_name(value: Any) -> str:
    if value is None:
        return "unit"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (list, tuple)):
        return "sequence"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


@dataclass(frozen=True, order=True)
class Millisatoshi:
    """A non-negative amount of millisatoshis."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"millisatoshi value must be an integer, not {self.value!r}")
        if self.value < 0:
            raise ValueError(f"millisatoshi value must not be negative: {self.value}")

    @classmethod
    def parse(cls, value: Any) -> Millisatoshi:
        """Parse a configured amount such as ``"1000 sat"``.

        Plain numeric scalars are treated as their text, so ``1`` is rejected
        for lacking a unit just as ``"1"`` is.
        """
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError(f"invalid type: {_type_name(value)}, expected {_EXPECTED_TYPE}")
        text = value if isinstance(value, str) else str(value)
        match = _AMOUNT.fullmatch(text)
        if match is None or not match.group(1):
            raise ValueError(f'invalid value: string "{text}", expected {_EXPECTED_VALUE}')
        return cls(int(match.group(1)) * 1000)

    def __str__(self) -> str:
        satoshis, millisatoshis = divmod(self.value, 1000)
        text = f"{satoshis:,}"
        if millisatoshis:
            text += "." + f"{millisatoshis:03d}".rstrip("0")
        unit = "satoshi" if self.value == 1000 else "satoshis"
        return f"{text} {unit}"