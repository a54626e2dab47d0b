"""IMAP SEARCH query formatting from ordered ``key:value`` criteria."""

from __future__ import annotations

from collections.abc import Sequence


def format_query(criteria: Sequence[tuple[str, str]]) -> str:
    """Render criteria as a single IMAP SEARCH string.

    Pairs keep their order (duplicates included).  A pair with an empty
    value renders as the bare key, so ``[("from", "a@b.com"), ("unseen", "")]``
    becomes ``"from a@b.com unseen"``.
    """
    return " ".join(f"{key} {value}".strip() for key, value in criteria)


def parse_criterion(text: str) -> tuple[str, str]:
    """Split a ``KEY:value`` token at the first colon."""
    key, sep, value = text.partition(":")
    if not sep:
        raise ValueError(f"invalid KEY:value: no `:` found in `{text}`")
    return key, value
