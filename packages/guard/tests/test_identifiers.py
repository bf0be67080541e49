"""Tests for identifier format validation."""

import uuid

import pytest

from access_guard.errors import ErrorKind
from access_guard.identifiers import is_valid_identifier, validate_identifier

CANONICAL = "6f1c2d9e-8a4b-4c3d-9e2f-1a2b3c4d5e6f"


def test_valid_uuid():
    value = str(uuid.uuid4())
    outcome = validate_identifier(value, "Organization")
    assert outcome.ok
    assert outcome.value == value


def test_uppercase_hyphenated_form_is_accepted():
    assert is_valid_identifier(CANONICAL.upper())


@pytest.mark.parametrize(
    "value",
    [
        CANONICAL.replace("-", ""),
        "{" + CANONICAL + "}",
        "urn:uuid:" + CANONICAL,
        " " + CANONICAL,
        CANONICAL + "\n",
    ],
)
def test_non_canonical_spellings_are_rejected(value):
    assert not is_valid_identifier(value)


@pytest.mark.parametrize("value", [None, "", "   ", "not-a-uuid", "1234", "6f1c2d9e-8a4b-4c3d-9e2f"])
def test_invalid_identifiers(value):
    outcome = validate_identifier(value, "Project")
    assert not outcome.ok
    assert outcome.error.kind is ErrorKind.INVALID_IDENTIFIER_FORMAT
    assert outcome.error.message == "Invalid Project id"
