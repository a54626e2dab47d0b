"""MailboxClient: search a mailbox, polling until a match or a deadline."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import structlog

from .config import ImapConfig, PollConfig
from .errors import ParseError
from .imap_client import AsyncImapClient
from .models import Message
from .parser import MessageDecoder
from .query import format_query
from .retry import Clock, poll_until, utcnow

logger = structlog.get_logger()


class MailboxClient:
    """Query client for one IMAP account.

    Each :meth:`find` call owns a fresh session for its whole lifetime:
    connect, login, select, then search/fetch until something matches
    (or the deadline passes), then close.  Protocol, transport and parse
    failures abort the call; only an empty search is ever repeated.
    """

    def __init__(
        self,
        config: ImapConfig,
        poll: PollConfig | None = None,
        *,
        decoder: MessageDecoder | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._config = config
        self._poll = poll or PollConfig()
        self._decoder = decoder or MessageDecoder()
        self._clock = clock

    async def find(
        self,
        mailbox: str,
        criteria: Sequence[tuple[str, str]],
        deadline: datetime | None = None,
    ) -> list[Message]:
        """Return decoded messages matching *criteria* in *mailbox*.

        With no *deadline* the search runs once.  Otherwise an empty
        search is retried until ``deadline``; an empty list after that is
        a normal result, not an error.
        """
        query = format_query(criteria)
        logger.debug("search_query", mailbox=mailbox, query=query)

        imap = AsyncImapClient(self._config)
        await imap.connect()
        try:
            await imap.login()
            await imap.select(mailbox)

            @poll_until(deadline, self._poll, clock=self._clock)
            async def _search() -> list[Message]:
                return await self._search_once(imap, query)

            messages = await _search()
            await imap.close()
        finally:
            await imap.logout()
        return messages

    async def _search_once(self, imap: AsyncImapClient, query: str) -> list[Message]:
        uids = await imap.search(query)
        messages: list[Message] = []

        for uid in uids:
            raw_bytes = await imap.fetch(uid)
            if raw_bytes is None:
                logger.debug("fetch_empty", uid=uid)
                continue
            try:
                messages.append(self._decoder.decode(raw_bytes))
            except ParseError as exc:
                raise ParseError(f"message {uid}: {exc}") from exc

        logger.debug("search_complete", query=query, matched=len(uids), decoded=len(messages))
        return messages
