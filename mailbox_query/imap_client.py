"""Async IMAP session wrapping stdlib imaplib with asyncio.to_thread."""

from __future__ import annotations

import asyncio
import base64
import contextlib
import imaplib
import ssl
from collections.abc import Callable
from typing import Any

import structlog

from .config import ImapConfig
from .errors import ProtocolError, TransportError

logger = structlog.get_logger()

_FOLDER_SPECIALS = set(' "\\(){}[]%*')

# Bound once so tests that patch imaplib.IMAP4 leave the except clauses intact.
_IMAP_ERROR = imaplib.IMAP4.error
_IMAP_ABORT = imaplib.IMAP4.abort


def encode_mailbox(name: str) -> str:
    """Encode a mailbox name in IMAP modified UTF-7 (RFC 3501, 5.1.3)."""
    out: list[str] = []
    pending: list[str] = []
    for c in name:
        if 0x20 <= ord(c) <= 0x7E:
            if pending:
                out.append(_modified_base64("".join(pending)))
                pending.clear()
            out.append("&-" if c == "&" else c)
        else:
            pending.append(c)
    if pending:
        out.append(_modified_base64("".join(pending)))
    return "".join(out)


def _modified_base64(text: str) -> str:
    encoded = base64.b64encode(text.encode("utf-16-be")).decode("ascii").rstrip("=")
    return "&" + encoded.replace("/", ",") + "-"


def quote_mailbox(name: str) -> str:
    """Encode a mailbox name for the wire, quoting it if it has spaces or specials."""
    encoded = encode_mailbox(name)
    if not encoded or any(c in _FOLDER_SPECIALS for c in encoded):
        escaped = encoded.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return encoded


class AsyncImapClient:
    """Async-friendly IMAP session.

    All blocking ``imaplib`` operations are wrapped with
    ``asyncio.to_thread()`` and driven strictly one at a time; the
    session is a single stateful connection.  ``imaplib`` failures are
    converted at this boundary: server rejections become
    :class:`ProtocolError`, socket and TLS failures :class:`TransportError`.
    """

    def __init__(self, config: ImapConfig) -> None:
        self._config = config
        self._conn: imaplib.IMAP4_SSL | imaplib.IMAP4 | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open an encrypted connection to the configured server."""
        self._conn = await self._run("CONNECT", self._connect_sync)
        logger.info("imap_connected", host=self._config.host, port=self._config.port)

    def _connect_sync(self) -> imaplib.IMAP4:
        context = ssl.create_default_context()
        if self._config.use_ssl:
            return imaplib.IMAP4_SSL(
                self._config.host,
                self._config.port,
                ssl_context=context,
                timeout=self._config.timeout_seconds,
            )
        conn = imaplib.IMAP4(
            self._config.host,
            self._config.port,
            timeout=self._config.timeout_seconds,
        )
        try:
            conn.starttls(ssl_context=context)
        except (_IMAP_ERROR, OSError) as exc:
            with contextlib.suppress(OSError):
                conn.shutdown()
            raise TransportError(f"STARTTLS failed: {exc}") from exc
        return conn

    async def login(self) -> None:
        conn = self._require_conn()
        status, data = await self._run(
            "LOGIN",
            conn.login,
            self._config.username,
            self._config.password.get_secret_value(),
        )
        _check("LOGIN", status, data)

    async def select(self, mailbox: str) -> None:
        """Open *mailbox* read-only (EXAMINE) so fetches never set ``\\Seen``."""
        conn = self._require_conn()
        status, data = await self._run("SELECT", conn.select, quote_mailbox(mailbox), True)
        _check("SELECT", status, data)
        logger.debug("imap_selected", mailbox=mailbox, exists=_describe(data))

    async def close(self) -> None:
        """Close the selected mailbox."""
        conn = self._require_conn()
        status, data = await self._run("CLOSE", conn.close)
        _check("CLOSE", status, data)

    async def logout(self) -> None:
        """End the session.  Failures are logged, never raised."""
        if self._conn is None:
            return
        try:
            await self._run("LOGOUT", self._conn.logout)
        except (ProtocolError, TransportError) as exc:
            logger.debug("imap_logout_failed", error=str(exc))
        finally:
            self._conn = None
        logger.info("imap_disconnected")

    async def is_connected(self) -> bool:
        """Check connection liveness with a NOOP command."""
        if self._conn is None:
            return False
        try:
            status, _ = await self._run("NOOP", self._conn.noop)
        except (ProtocolError, TransportError):
            return False
        return status == "OK"

    # ------------------------------------------------------------------
    # Message retrieval
    # ------------------------------------------------------------------

    async def search(self, query: str) -> list[str]:
        """Return the UIDs matching an IMAP SEARCH *query*, in server order.

        A query with non-ASCII text is sent as UTF-8 under ``CHARSET UTF-8``.
        """
        conn = self._require_conn()
        if query.isascii():
            args: tuple[Any, ...] = (None, query)
        else:
            args = ("CHARSET", "UTF-8", query.encode("utf-8"))
        status, data = await self._run("SEARCH", conn.uid, "SEARCH", *args)
        _check("SEARCH", status, data)
        if not data or not data[0]:
            return []
        return [uid.decode() for uid in data[0].split()]

    async def fetch(self, uid: str) -> bytes | None:
        """Return the raw RFC 822 bytes of *uid*, or ``None`` if the server sent none."""
        conn = self._require_conn()
        status, data = await self._run("FETCH", conn.uid, "FETCH", uid, "(RFC822)")
        _check("FETCH", status, data)
        for item in data or []:
            # Literal responses arrive as (b'1 (UID 5 RFC822 {123}', raw_bytes)
            if isinstance(item, tuple) and len(item) > 1 and item[1]:
                return item[1]
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_conn(self) -> imaplib.IMAP4:
        if self._conn is None:
            raise TransportError("not connected")
        return self._conn

    async def _run(self, command: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except _IMAP_ABORT as exc:
            raise TransportError(f"{command} aborted: {exc}") from exc
        except _IMAP_ERROR as exc:
            raise ProtocolError(f"{command} failed: {exc}") from exc
        except UnicodeError as exc:
            # imaplib encodes str arguments as ASCII
            raise ProtocolError(f"{command} failed: {exc}") from exc
        except OSError as exc:
            raise TransportError(f"{command} failed: {exc}") from exc


def _check(command: str, status: str, data: list[Any] | None) -> None:
    if status != "OK":
        raise ProtocolError(f"{command} failed: {status} {_describe(data)}".rstrip())


def _describe(data: list[Any] | None) -> str:
    parts = []
    for item in data or []:
        if isinstance(item, bytes):
            parts.append(item.decode(errors="replace"))
    return " ".join(parts)
