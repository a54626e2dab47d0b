"""Decoded message value objects returned by the mailbox client."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Part(BaseModel):
    """One content unit of a message."""

    model_config = ConfigDict(frozen=True)

    content_type: str = Field(description="MIME type of the part (e.g. text/plain)")
    body: str | None = Field(
        default=None,
        description="Decoded text for text/* parts, base64 of the raw bytes otherwise; "
        "None when the part could not be decoded",
    )


class Message(BaseModel):
    """A decoded mail item.

    ``subject``, ``date``, ``to`` and ``from_`` are conveniences over
    ``headers``: each equals the header of the same name when present.
    ``from_`` serializes as ``from``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Header name to value, names as received, last occurrence wins",
    )
    subject: str | None = Field(default=None, description="Subject header")
    date: str | None = Field(default=None, description="Date header")
    to: str | None = Field(default=None, description="To header")
    from_: str | None = Field(default=None, alias="from", description="From header")
    body: list[Part] = Field(description="Content parts in document order")
