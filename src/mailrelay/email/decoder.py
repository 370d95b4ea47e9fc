"""Content-Transfer-Encoding decoding for a single email body.

Handles ``base64`` and ``quoted-printable`` bodies.  Decoded bytes are read
as UTF-8 first and as Latin-1 when they are not valid UTF-8, so a decode
never loses data.  Quoted-printable applies the fallback per invalid run
rather than to the whole body.  Nothing in this module raises: on any failure the
original, undecoded content is returned.
"""

from __future__ import annotations

import base64
import binascii
import re

import structlog

logger = structlog.get_logger()

_SOFT_LINE_BREAK = re.compile(r"=\r?\n")
_HEX_ESCAPE = re.compile(rb"=([0-9A-Fa-f]{2})")


def bytes_to_text(raw: bytes) -> str:
    """Interpret *raw* as UTF-8, falling back to Latin-1.

    Latin-1 maps every byte to exactly one character, so the fallback
    always succeeds.
    """
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("UTF-8 decoding failed, using latin-1", size=len(raw))
        return raw.decode("latin-1")


def mixed_bytes_to_text(raw: bytes) -> str:
    """Interpret *raw* as UTF-8, reading only the invalid byte runs as Latin-1.

    Quoted-printable bodies can mix literal UTF-8 text with single-byte
    escapes such as ``=E9``; each side keeps its own reading.
    """
    chunks: list[str] = []
    while raw:
        try:
            chunks.append(raw.decode("utf-8"))
            break
        except UnicodeDecodeError as exc:
            chunks.append(raw[: exc.start].decode("utf-8"))
            chunks.append(raw[exc.start : exc.end].decode("latin-1"))
            raw = raw[exc.end :]
    return "".join(chunks)


def decode_base64(content: str) -> str:
    """Decode a base64 body, ignoring embedded whitespace.

    Raises:
        binascii.Error: If the content is not valid base64.
    """
    cleaned = "".join(content.split())
    cleaned += "=" * (-len(cleaned) % 4)
    raw = base64.b64decode(cleaned, validate=True)
    return bytes_to_text(raw)


def decode_quoted_printable(content: str) -> str:
    """Decode a quoted-printable body.

    Soft line breaks are removed first, then every ``=XX`` escape is
    replaced with the byte it names.  Byte runs that are not valid UTF-8
    are read as Latin-1 without disturbing the text around them.
    """
    joined = _SOFT_LINE_BREAK.sub("", content)
    raw = _HEX_ESCAPE.sub(lambda m: bytes([int(m.group(1), 16)]), joined.encode("utf-8"))
    return mixed_bytes_to_text(raw)


def decode_content(content: str, encoding: str | None = None) -> str:
    """Decode *content* according to its Content-Transfer-Encoding.

    Args:
        content: The encoded body text.
        encoding: The transfer-encoding name (case-insensitive).  ``None`` or
            any unrecognised name leaves the content untouched.

    Returns:
        The decoded text, or *content* unchanged if decoding failed.
    """
    if not content:
        return ""

    scheme = (encoding or "").strip().lower()
    try:
        if scheme == "base64":
            return decode_base64(content)
        if scheme == "quoted-printable":
            return decode_quoted_printable(content)
    except (binascii.Error, ValueError) as exc:
        logger.warning("Failed to decode content", encoding=scheme, error=str(exc))
        return content

    return content
