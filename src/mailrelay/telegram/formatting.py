"""MarkdownV2 escaping and message builders for Telegram notifications.

Pure functions that return message text, captions and filenames.  Every
value interpolated into a MarkdownV2 message goes through
``escape_markdown_v2`` first.
"""

from __future__ import annotations

from datetime import UTC, datetime

from mailrelay.email.models import EmailMetadata

# Telegram rejects MarkdownV2 text where any of these appear unescaped.
MARKDOWN_V2_SPECIAL_CHARS = "\\_*[]()~`>#+-=|{}.!"

TELEGRAM_MESSAGE_LIMIT = 4096
TELEGRAM_CAPTION_LIMIT = 1024

_FILENAME_FORBIDDEN = set('<>:"\'|?*\\/')
_FILENAME_ID_LIMIT = 50


def escape_markdown_v2(text: str | None) -> str:
    """Backslash-escape every MarkdownV2 special character in *text*."""
    if not text:
        return ""
    return "".join(f"\\{char}" if char in MARKDOWN_V2_SPECIAL_CHARS else char for char in str(text))


def clip_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> str:
    """Cut *text* to *limit* characters without leaving a dangling escape.

    A MarkdownV2 message ending in an odd run of backslashes would escape
    nothing and be refused, so the last backslash is dropped in that case.
    """
    if len(text) <= limit:
        return text
    clipped = text[:limit]
    trailing = len(clipped) - len(clipped.rstrip("\\"))
    if trailing % 2:
        clipped = clipped[:-1]
    return clipped


def truncate_subject(subject: str, max_length: int) -> str:
    """Shorten *subject* to *max_length* characters plus ``...`` when needed."""
    if len(subject) > max_length:
        return subject[:max_length] + "..."
    return subject


def build_metadata_message(
    metadata: EmailMetadata,
    subject: str,
    content_type: str,
) -> str:
    """Build the header summary sent first for every email.

    Args:
        metadata: Header values for the email.
        subject: The subject as it should be displayed (already truncated).
        content_type: The content-type of the extracted body.

    Returns:
        MarkdownV2 text with every value escaped and shown as inline code.
    """
    fields = [
        ("From", metadata.sender),
        ("To", metadata.recipient),
        ("Subject", subject),
        ("Date", metadata.date),
        ("Content Type", content_type),
        ("Message ID", metadata.message_id),
    ]
    lines = ["*\U0001f4e7 New Email Received*", ""]
    lines.extend(f"*{label}:* `{escape_markdown_v2(value)}`" for label, value in fields)
    return "\n".join(lines)


def build_body_message(body: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> str:
    """Build the body preview message, clipped to the Telegram limit."""
    return clip_message(f"*\U0001f4c4 Email Content:*\n\n{escape_markdown_v2(body)}", limit)


def build_error_message(error: str) -> str:
    """Build the alert sent when processing an email failed."""
    return clip_message(
        "*\u26a0\ufe0f Email Processing Error*\n\n"
        f"Failed to process email\nError: `{escape_markdown_v2(error)}`"
    )


def build_document_caption(subject: str) -> str:
    """Build the plain-text caption for the full-content attachment."""
    caption = f'\U0001f4ce Full email content: "{subject}"'
    return caption[:TELEGRAM_CAPTION_LIMIT]


def safe_filename(message_id: str, now: datetime | None = None) -> str:
    """Derive an attachment filename from a message-id and the send time.

    Characters that are unsafe in filenames are dropped, the id is capped at
    50 characters, and an ISO timestamp with ``:`` and ``.`` replaced by
    ``-`` is appended.

    Returns:
        A name of the form ``email-<id>-<timestamp>.txt``.
    """
    clean_id = "".join(c for c in message_id if c not in _FILENAME_FORBIDDEN)[:_FILENAME_ID_LIMIT]
    moment = (now or datetime.now(tz=UTC)).astimezone(UTC)
    timestamp = moment.strftime("%Y-%m-%dT%H-%M-%S-%f")[:-3] + "Z"
    return f"email-{clean_id}-{timestamp}.txt"
