"""Error taxonomy shared by the IMAP session, the decoder and the client."""

from __future__ import annotations


class MailboxError(Exception):
    """Base class for every failure reported by :meth:`MailboxClient.find`."""


class ProtocolError(MailboxError):
    """The IMAP server rejected or failed a command (login, select, search, fetch, close)."""


class TransportError(MailboxError):
    """The TLS connection to the server could not be established or broke."""


class ParseError(MailboxError):
    """Raw message bytes could not be interpreted as MIME."""
