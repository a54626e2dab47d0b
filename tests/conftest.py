"""Shared test fixtures for the mailbox query test suite."""

from __future__ import annotations

from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from unittest.mock import MagicMock

import pytest

from mailbox_query.config import ImapConfig, PollConfig


@pytest.fixture
def imap_config() -> ImapConfig:
    return ImapConfig(
        host="imap.test.com",
        port=993,
        use_ssl=True,
        username="testuser",
        password="testpass",
        mailbox="INBOX",
        timeout_seconds=5.0,
    )


@pytest.fixture
def poll_config() -> PollConfig:
    return PollConfig(
        initial_wait_seconds=0.05,
        max_wait_seconds=0.1,
        multiplier=0.05,
    )


# ------------------------------------------------------------------
# Sample EML builders
# ------------------------------------------------------------------


def _build_plain_email(
    *,
    subject: str = "Test Subject",
    from_addr: str = "sender@example.com",
    to_addr: str = "recipient@example.com",
    body: str = "Hello, World!",
) -> bytes:
    """Build a simple plain-text email as raw bytes."""
    msg = MIMEText(body, "plain")
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_addr
    msg["Date"] = "Mon, 01 Jun 2025 12:00:00 +0000"
    return msg.as_bytes()


def _build_alternative_email(
    *,
    body_text: str = "Plain body",
    body_html: str = "<p>HTML body</p>",
) -> bytes:
    """Build a multipart/alternative email with a text and an HTML part."""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = "Alternative Email"
    msg["From"] = "sender@example.com"
    msg.attach(MIMEText(body_text, "plain"))
    msg.attach(MIMEText(body_html, "html"))
    return msg.as_bytes()


def _build_mixed_email(
    *,
    body_text: str = "Plain body",
    body_html: str = "<p>HTML body</p>",
    attachments: list[tuple[str, str, bytes]] | None = None,
) -> bytes:
    """Build a multipart/mixed email: text + HTML alternative, then attachments."""
    msg = MIMEMultipart("mixed")
    msg["Subject"] = "Multipart Email"
    msg["From"] = "sender@example.com"
    msg["To"] = "recipient@example.com"
    msg["Date"] = "Mon, 01 Jun 2025 12:00:00 +0000"

    alt = MIMEMultipart("alternative")
    alt.attach(MIMEText(body_text, "plain"))
    alt.attach(MIMEText(body_html, "html"))
    msg.attach(alt)

    for filename, content_type, payload in attachments or []:
        maintype, subtype = content_type.split("/", 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(payload)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=filename)
        msg.attach(part)

    return msg.as_bytes()


@pytest.fixture
def plain_eml_bytes() -> bytes:
    return _build_plain_email()


@pytest.fixture
def alternative_eml_bytes() -> bytes:
    return _build_alternative_email()


@pytest.fixture
def mixed_eml_bytes() -> bytes:
    return _build_mixed_email(
        attachments=[
            ("report.pdf", "application/pdf", b"%PDF-1.4 fake pdf content \x00\xff"),
            ("data.csv", "text/csv", b"col1,col2\na,b\n"),
        ],
    )


# ------------------------------------------------------------------
# imaplib doubles
# ------------------------------------------------------------------


def _make_mock_imap(
    *,
    search_results: list[list[bytes]] | None = None,
    fetch_data: dict[bytes, bytes] | None = None,
) -> MagicMock:
    """Create a mock imaplib.IMAP4_SSL with programmed responses.

    Each UID SEARCH consumes the next entry of *search_results*; the last
    entry repeats once the list is exhausted.
    """
    mock = MagicMock()
    mock.login.return_value = ("OK", [b"Logged in"])
    mock.select.return_value = ("OK", [b"2"])
    mock.close.return_value = ("OK", [b"Closed"])
    mock.logout.return_value = ("BYE", [b"Bye"])
    mock.noop.return_value = ("OK", [b""])
    mock.starttls.return_value = ("OK", [b"Begin TLS negotiation now"])
    mock.uid.side_effect = _make_uid_handler(search_results or [[]], fetch_data or {})
    return mock


def _make_uid_handler(search_results: list[list[bytes]], fetch_data: dict[bytes, bytes]):
    """Build a side_effect function for mock.uid() that handles SEARCH and FETCH."""
    pending = list(search_results)

    def handler(command: str, *args):
        if command == "SEARCH":
            uids = pending.pop(0) if len(pending) > 1 else pending[0]
            return ("OK", [b" ".join(uids)])
        elif command == "FETCH":
            uid = args[0].encode() if isinstance(args[0], str) else args[0]
            raw = fetch_data.get(uid, b"")
            if raw:
                return ("OK", [(b"1 (UID %s RFC822 {%d}" % (uid, len(raw)), raw), b")"])
            return ("OK", [None])
        return ("OK", [b""])

    return handler


def _search_calls(mock: MagicMock) -> list:
    return [c for c in mock.uid.call_args_list if c.args[0] == "SEARCH"]
