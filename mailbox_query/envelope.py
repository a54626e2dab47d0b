"""Envelope field extraction from a decoded header map.

The envelope fields are plain lookups of the exact header names, so a
``Message`` can never disagree with its own ``headers``.
"""

from __future__ import annotations

from collections.abc import Mapping

ENVELOPE_HEADERS = {
    "subject": "Subject",
    "date": "Date",
    "to": "To",
    "from": "From",
}


def extract_envelope(headers: Mapping[str, str]) -> dict[str, str | None]:
    """Return subject, date, to and from (``None`` when the header is absent)."""
    return {field: headers.get(name) for field, name in ENVELOPE_HEADERS.items()}
