"""MIME body extraction from a raw RFC 822 payload.

Picks the most readable representation of an email without a full MIME
parse: find the multipart boundary, split on it, rank the parts by their
declared ``Content-Type`` and decode the winner's body.  All scanning is
done with plain string operations in explicit passes:

1. locate ``boundary=`` and read its value
2. split the payload on ``--<boundary>``
3. separate each candidate's header block from its body at the first
   blank line
4. look up named headers in the header block
5. split nested ``multipart/*`` parts on their own boundary

``extract_content`` never raises; malformed input yields a sentinel body.
"""

from __future__ import annotations

import structlog

from mailrelay.domain.errors import ContentExtractionError
from mailrelay.email.decoder import decode_content
from mailrelay.email.models import ExtractedContent

logger = structlog.get_logger()

DEFAULT_CONTENT_TYPE = "text/plain"

INVALID_EMAIL_CONTENT = "Invalid email content"
NO_READABLE_CONTENT = "No readable content found"
NO_BODY_CONTENT = "No body content found"

MAX_MULTIPART_DEPTH = 5

_BOUNDARY_PARAM = "boundary="
_QUOTES = "\"'"

# Declared content-type -> preference score.  Other ``text/*`` types score 1.
_CONTENT_TYPE_SCORES: dict[str, int] = {
    "text/plain": 3,
    "text/html": 2,
}


def find_boundary(raw_email: str) -> str | None:
    """Return the multipart boundary declared anywhere in *raw_email*.

    The parameter name is matched case-insensitively.  Quoted values run to
    the closing quote; unquoted values end at whitespace, a quote or ``;``.
    """
    start = raw_email.lower().find(_BOUNDARY_PARAM)
    if start == -1:
        return None

    value_start = start + len(_BOUNDARY_PARAM)
    end = value_start
    if end < len(raw_email) and raw_email[end] in _QUOTES:
        value_start += 1
        end += 1

    while end < len(raw_email):
        char = raw_email[end]
        if char.isspace() or char in _QUOTES or char == ";":
            break
        end += 1

    boundary = raw_email[value_start:end]
    return boundary or None


def split_headers(part: str) -> tuple[str, str]:
    """Split a part into ``(header_block, body)`` at the first blank line.

    A single leading line terminator (the remainder of a boundary line) is
    skipped first.  Both CRLF and bare LF line endings are recognised.

    Raises:
        ContentExtractionError: If the part has no blank line at all.
    """
    for terminator in ("\r\n", "\n"):
        if part.startswith(terminator):
            part = part[len(terminator):]
            break

    # A part that opens with a blank line has an empty header block.
    for terminator in ("\r\n", "\n"):
        if part.startswith(terminator):
            return "", part[len(terminator):]

    candidates = [
        (index, len(separator))
        for separator in ("\r\n\r\n", "\n\n")
        if (index := part.find(separator)) != -1
    ]
    if not candidates:
        raise ContentExtractionError("No blank line between headers and body")

    index, width = min(candidates)
    return part[:index], part[index + width:]


def _unfolded_header_lines(header_block: str) -> list[str]:
    lines: list[str] = []
    for line in header_block.splitlines():
        if line[:1] in (" ", "\t") and lines:
            lines[-1] = f"{lines[-1]} {line.strip()}"
        elif line:
            lines.append(line)
    return lines


def get_header(header_block: str, name: str) -> str | None:
    """Return the first value of header *name* (case-insensitive), or ``None``."""
    wanted = name.lower()
    for line in _unfolded_header_lines(header_block):
        key, sep, value = line.partition(":")
        if sep and key.strip().lower() == wanted:
            return value.strip()
    return None


def get_content_type(header_block: str) -> str | None:
    """Return the declared media type (parameters dropped, lower-cased)."""
    value = get_header(header_block, "Content-Type")
    if value is None:
        return None
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type or None


def score_part(part: str) -> int:
    """Rank a multipart candidate by its declared content-type.

    ``text/plain`` = 3, ``text/html`` = 2, any other ``text/*`` = 1, else 0.
    Parts without a header block or without a declared type score 0.
    """
    try:
        header_block, _ = split_headers(part)
    except ContentExtractionError:
        return 0

    content_type = get_content_type(header_block)
    if content_type is None:
        return 0
    if content_type in _CONTENT_TYPE_SCORES:
        return _CONTENT_TYPE_SCORES[content_type]
    return 1 if content_type.startswith("text/") else 0


def select_best_part(parts: list[str]) -> str | None:
    """Return the earliest part with the highest score above zero."""
    best_part: str | None = None
    best_score = 0
    for part in parts:
        score = score_part(part)
        if score > best_score:
            best_part = part
            best_score = score
    return best_part


def extract_part_content(part: str) -> ExtractedContent:
    """Decode the body of a single part (or a whole non-multipart message).

    Raises:
        ContentExtractionError: If the part has no header/body separator.
    """
    header_block, body = split_headers(part)
    encoding = get_header(header_block, "Content-Transfer-Encoding")
    content_type = get_content_type(header_block) or DEFAULT_CONTENT_TYPE
    return ExtractedContent(
        body=decode_content(body.strip(), encoding),
        content_type=content_type,
    )


def flatten_parts(parts: list[str], boundary: str, depth: int = 0) -> list[str]:
    """Replace every nested ``multipart/*`` part with its own subparts.

    A nested part is split on the ``boundary=`` declared in its own header
    block.  Document order is kept, so the earliest-best rule still holds
    across nesting levels.  Parts deeper than ``MAX_MULTIPART_DEPTH`` are
    left whole.
    """
    flattened: list[str] = []
    for part in parts:
        try:
            header_block, body = split_headers(part)
        except ContentExtractionError:
            flattened.append(part)
            continue

        content_type = get_content_type(header_block) or ""
        inner = find_boundary(header_block) if content_type.startswith("multipart/") else None
        if inner is None or inner == boundary or depth >= MAX_MULTIPART_DEPTH:
            flattened.append(part)
            continue
        flattened.extend(flatten_parts(body.split(f"--{inner}"), inner, depth + 1))
    return flattened


def _extract(raw_email: str) -> ExtractedContent:
    boundary = find_boundary(raw_email)
    if boundary is None:
        return extract_part_content(raw_email)

    parts = flatten_parts(raw_email.split(f"--{boundary}"), boundary)
    best_part = select_best_part(parts)
    if best_part is None:
        return ExtractedContent(body=NO_READABLE_CONTENT)

    logger.debug("Selected multipart body part", boundary=boundary, parts=len(parts))
    return extract_part_content(best_part)


def extract_content(raw_email: str | bytes | None) -> ExtractedContent:
    """Extract the most readable body from a raw email.

    Args:
        raw_email: The full RFC 822 message (headers and body).

    Returns:
        The decoded body and its declared content-type.  Malformed input
        yields a sentinel body with ``content_type="text/plain"``.
    """
    if isinstance(raw_email, bytes):
        raw_email = raw_email.decode("utf-8", errors="replace")
    if not raw_email or not isinstance(raw_email, str):
        return ExtractedContent(body=INVALID_EMAIL_CONTENT)

    try:
        return _extract(raw_email)
    except ContentExtractionError as exc:
        logger.warning("Email has no body content", error=str(exc))
        return ExtractedContent(body=NO_BODY_CONTENT)
    except Exception:
        logger.exception("Unexpected failure while extracting email content")
        return ExtractedContent(body=INVALID_EMAIL_CONTENT)
