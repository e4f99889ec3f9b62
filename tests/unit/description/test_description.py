"""Tests for the commit description parser."""

import pytest

from gerrit_monitor.description import Description, parse_description


def test_parse_splits_body_and_attributes() -> None:
    """Trailing attributes are peeled off and returned top to bottom."""
    text = "Add caching\n\nExplain the change.\n\nBug: 42\nTest: ran unit tests\nChange-Id: Iabc\n\n"

    body, attributes = parse_description(text)

    assert body == "Add caching\n\nExplain the change."
    assert attributes == [("Bug", " 42"), ("Test", " ran unit tests"), ("Change-Id", " Iabc")]


def test_parse_accepts_equals_separator_and_blank_lines_between_attributes() -> None:
    """Attributes may use '=' and be separated by blank lines."""
    text = "Subject\n\nBody line\n\nR=someone\n\nBUG=chromium:1\n"

    body, attributes = parse_description(text)

    assert body == "Subject\n\nBody line"
    assert attributes == [("R", "someone"), ("BUG", "chromium:1")]


def test_parse_stops_at_first_non_attribute_line() -> None:
    """Attribute-looking lines above ordinary text stay in the body."""
    text = "Subject\n\nNote: keep this\nplain text\nBug: 7"

    body, attributes = parse_description(text)

    assert body == "Subject\n\nNote: keep this\nplain text"
    assert attributes == [("Bug", " 7")]


def test_parse_never_peels_the_first_line() -> None:
    """The subject line is kept even when it looks like an attribute."""
    body, attributes = parse_description("Bug: 1\nChange-Id: I1\n")

    assert body == "Bug: 1"
    assert attributes == [("Change-Id", " I1")]


@pytest.mark.parametrize("text", ["", "Only a subject", "Only a subject\n\n\n"])
def test_parse_without_attributes(text: str) -> None:
    """Descriptions without attributes keep their text minus trailing blank lines."""
    body, attributes = parse_description(text)

    assert body == text.rstrip("\n")
    assert attributes == []


def test_keys_with_digits_are_not_attributes() -> None:
    """Keys are restricted to letters and hyphens."""
    body, attributes = parse_description("Subject\n\nRelease2: yes")

    assert body == "Subject\n\nRelease2: yes"
    assert attributes == []


def test_description_rebuilds_attribute_block() -> None:
    """Rejoining the body and attributes preserves keys, values and order."""
    text = "Subject\n\nBody\n\nBug: 1\nReviewed-on: https://review/2\nChange-Id: I3"
    description = Description(text)

    rebuilt = description.message + "\n\n" + "\n".join(f"{key}:{value}" for key, value in description.attributes)

    assert rebuilt == text
    assert description.text == text
    assert description.get("Bug") == [" 1"]
    assert description.get("Missing") == []
