"""MIME decoder: raw RFC 822 bytes to a flat, serializable Message.

Only the top level of a ``multipart/*`` message is unwrapped.  A nested
container (``multipart/alternative`` inside ``multipart/mixed``, or an
attached ``message/rfc822``) becomes one base64 Part holding its
serialized body.
"""

from __future__ import annotations

import base64
import email.errors
import email.header
import email.parser
import email.policy
import re
from email.message import EmailMessage

import structlog

from .envelope import extract_envelope
from .errors import ParseError
from .models import Message, Part

logger = structlog.get_logger()

# A multipart message whose boundary is missing or never appears has no
# recoverable part structure.
_FATAL_DEFECTS = (
    email.errors.NoBoundaryInMultipartDefect,
    email.errors.StartBoundaryNotFoundDefect,
)

_FOLD_RE = re.compile(r"\r?\n(?=[ \t])")

_PART_ERRORS = (LookupError, UnicodeError, ValueError, email.errors.MessageError)


class MessageDecoder:
    """Stateless decoder: raw RFC 822 bytes → Message."""

    def __init__(self) -> None:
        self._parser = email.parser.BytesParser(policy=email.policy.default)

    def decode(self, raw_bytes: bytes) -> Message:
        msg = self._parse(raw_bytes)

        headers = self._decode_headers(msg)
        body = [self._decode_part(part) for part in self._effective_parts(msg)]

        return Message(headers=headers, body=body, **extract_envelope(headers))

    def _parse(self, raw_bytes: bytes) -> EmailMessage:
        if not isinstance(raw_bytes, (bytes, bytearray, memoryview)):
            raise ParseError(f"expected raw message bytes, got {type(raw_bytes).__name__}")
        if not raw_bytes:
            raise ParseError("empty message")

        try:
            msg = self._parser.parsebytes(bytes(raw_bytes))
        except (ValueError, email.errors.MessageError) as exc:
            raise ParseError(f"unparsable message: {exc}") from exc

        for defect in msg.defects:
            if isinstance(defect, _FATAL_DEFECTS):
                raise ParseError(f"malformed MIME structure: {type(defect).__name__}")
            # The very first line is neither a header nor the blank separator.
            if isinstance(defect, email.errors.MissingHeaderBodySeparatorDefect) and not msg.keys():
                raise ParseError("not an RFC 822 message: no header section")
        return msg

    def _decode_headers(self, msg: EmailMessage) -> dict[str, str]:
        """Map every header name to its value; the last occurrence wins."""
        headers: dict[str, str] = {}
        for name, value in msg.raw_items():
            headers[_decode_name(name)] = _decode_value(value)
        return headers

    def _effective_parts(self, msg: EmailMessage) -> list[EmailMessage]:
        if msg.get_content_maintype() == "multipart":
            parts = list(msg.iter_parts())
            if not parts:
                raise ParseError(f"{msg.get_content_type()} message without parts")
            return parts
        return [msg]

    def _decode_part(self, part: EmailMessage) -> Part:
        content_type = part.get_content_type()
        try:
            if part.get_content_maintype() == "text":
                body = part.get_content()
            else:
                body = base64.b64encode(_raw_body(part)).decode("ascii")
        except _PART_ERRORS as exc:
            logger.debug("part_decode_failed", content_type=content_type, error=str(exc))
            body = None
        return Part(content_type=content_type, body=body)


def _raw_body(part: EmailMessage) -> bytes:
    """Transfer-decoded body bytes of a part."""
    if not part.is_multipart():
        return part.get_payload(decode=True) or b""
    # Containers have no payload of their own; keep their serialized body.
    _, _, body = part.as_bytes().partition(b"\n\n")
    return body


def _recover_text(text: str) -> str:
    """Undo the parser's surrogateescape of raw 8-bit bytes, accepting only UTF-8."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8")


def _decode_name(name: str) -> str:
    try:
        return _recover_text(name).strip()
    except UnicodeError:
        return ""


def _decode_value(value: str) -> str:
    """Unfold a raw header value and decode RFC 2047 encoded words."""
    try:
        unfolded = _FOLD_RE.sub("", _recover_text(value)).strip()
        return str(email.header.make_header(email.header.decode_header(unfolded)))
    except (UnicodeError, LookupError, email.errors.MessageError):
        return ""
