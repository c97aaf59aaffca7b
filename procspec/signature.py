"""Stored procedure signature parsing.

A signature names the procedure and marks the mode of each argument::

    RAISE_PRICE(>, >, =)

``>`` is an IN parameter, ``<`` is an OUT parameter and ``=`` is an INOUT parameter.
The parenthesized group is optional; ``REFRESH_STATS`` is a valid zero-argument signature.
"""

import re
from enum import Enum
from typing import NamedTuple, Optional

from procspec.exceptions import InvalidSignatureError

__all__ = ("SIGNATURE_PATTERN", "Mode", "ParsedSignature", "parse_signature")

SIGNATURE_PATTERN = re.compile(r"([A-Za-z_][A-Za-z0-9@$#_]*)(?:\(([<>=](?:, ?[<>=])*)?\))?")
MODE_SEPARATOR = re.compile(r", ?")


class Mode(str, Enum):
    """Stored procedure parameter mode."""

    IN = ">"
    OUT = "<"
    INOUT = "="

    @classmethod
    def from_char(cls, marker: str) -> "Mode":
        """Get the mode for a signature marker character.

        Args:
            marker: One of ``>``, ``<`` or ``=``.

        Raises:
            ValueError: If the marker is not a mode character.

        Returns:
            The matching mode.
        """
        try:
            return cls(marker)
        except ValueError:
            msg = f"Unsupported parameter mode marker: {marker!r}"
            raise ValueError(msg) from None

    @property
    def is_input(self) -> bool:
        return self is not Mode.OUT

    @property
    def is_output(self) -> bool:
        return self is not Mode.IN

    def __str__(self) -> str:
        return self.name


class ParsedSignature(NamedTuple):
    name: str
    modes: "tuple[Mode, ...]"


def parse_signature(signature: str, name: Optional[str] = None) -> ParsedSignature:
    """Parse a stored procedure signature into its callable name and argument modes.

    Args:
        signature: Signature text, e.g. ``RAISE_PRICE(>, >, =)``.
        name: Identity of the owning descriptor, reported on failure.

    Raises:
        InvalidSignatureError: If the text does not match the signature grammar in full.

    Returns:
        The callable name and one mode per parenthesized argument slot.
    """
    match = SIGNATURE_PATTERN.fullmatch(signature)
    if match is None:
        raise InvalidSignatureError(signature, name)
    markers = match.group(2)
    if not markers:
        return ParsedSignature(match.group(1), ())
    return ParsedSignature(match.group(1), tuple(Mode.from_char(marker) for marker in MODE_SEPARATOR.split(markers)))
