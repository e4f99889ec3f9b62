"""Parsing of CL descriptions into a message body and trailing attributes."""

import re
from functools import cached_property

_ATTRIBUTE_RE = re.compile(r"^\s*([-A-Za-z]+)[=:](.*)$")

Attribute = tuple[str, str]


class Description:
    """Wrapper around a changelist description.

    The description is split into the free-form message and the block of
    ``key: value`` (or ``key=value``) attributes at its bottom, such as
    ``Bug: 1234`` or ``Change-Id: I...``.
    """

    def __init__(self, text: str) -> None:
        """Store the raw description text; parsing happens on first access."""
        self._text = text

    @property
    def text(self) -> str:
        """Return the raw text of the description."""
        return self._text

    @property
    def message(self) -> str:
        """Return just the message, without the attributes at the bottom."""
        return self._parsed[0]

    @property
    def attributes(self) -> list[Attribute]:
        """Return the attributes in the order they appear in the text."""
        return list(self._parsed[1])

    def get(self, key: str) -> list[str]:
        """Return the values of every attribute with the given key."""
        return [value for name, value in self._parsed[1] if name == key]

    @cached_property
    def _parsed(self) -> tuple[str, list[Attribute]]:
        return parse_description(self._text)


def parse_description(text: str) -> tuple[str, list[Attribute]]:
    """Split a commit message into its body and its trailing attributes.

    The first line is never treated as an attribute, so the body always keeps
    at least the subject line.
    """
    lines = text.split("\n")
    cutoff = len(lines) - 1
    while cutoff >= 1 and lines[cutoff] == "":
        cutoff -= 1

    attributes: list[Attribute] = []
    while cutoff >= 1:
        line = lines[cutoff]
        if line != "":
            match = _ATTRIBUTE_RE.match(line)
            if match is None:
                break
            attributes.append((match.group(1), match.group(2)))
        cutoff -= 1

    while cutoff >= 1 and lines[cutoff] == "":
        cutoff -= 1

    attributes.reverse()
    return "\n".join(lines[: cutoff + 1]), attributes
