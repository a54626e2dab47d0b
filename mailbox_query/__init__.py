"""Mailbox query client: IMAP search with deadline polling and MIME decoding."""

from .client import MailboxClient
from .config import ImapConfig, LogConfig, PollConfig
from .envelope import extract_envelope
from .errors import MailboxError, ParseError, ProtocolError, TransportError
from .imap_client import AsyncImapClient, encode_mailbox, quote_mailbox
from .logging import setup_logging
from .models import Message, Part
from .parser import MessageDecoder
from .query import format_query, parse_criterion
from .retry import poll_until

__version__ = "0.1.0"

__all__ = [
    "AsyncImapClient",
    "ImapConfig",
    "LogConfig",
    "MailboxClient",
    "MailboxError",
    "Message",
    "MessageDecoder",
    "ParseError",
    "Part",
    "PollConfig",
    "ProtocolError",
    "TransportError",
    "extract_envelope",
    "encode_mailbox",
    "format_query",
    "parse_criterion",
    "poll_until",
    "quote_mailbox",
    "setup_logging",
]
