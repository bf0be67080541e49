"""Syntactic validation of organization / project / environment identifiers."""

from __future__ import annotations

import uuid
from typing import Optional

from .errors import ErrorKind, Outcome


def is_valid_identifier(value: Optional[str]) -> bool:
    """True if ``value`` is a UUID in its canonical hyphenated form.

    Braced, ``urn:uuid:`` and compact hex spellings are rejected, as is
    surrounding whitespace: lookups receive the id exactly as sent.
    """
    if not value:
        return False
    value = str(value)
    try:
        return str(uuid.UUID(value)) == value.lower()
    except ValueError:
        return False


def validate_identifier(value: Optional[str], label: str) -> Outcome[str]:
    """Validate one identifier. ``label`` names it in the denial message."""
    if not is_valid_identifier(value):
        return Outcome.deny(ErrorKind.INVALID_IDENTIFIER_FORMAT, f"Invalid {label} id")
    return Outcome.success(str(value))
