"""Telegram transport: Bot API client and MarkdownV2 message builders."""

from mailrelay.telegram.client import TelegramClient
from mailrelay.telegram.formatting import (
    build_body_message,
    build_document_caption,
    build_error_message,
    build_metadata_message,
    escape_markdown_v2,
    safe_filename,
)

__all__ = [
    "TelegramClient",
    "build_body_message",
    "build_document_caption",
    "build_error_message",
    "build_metadata_message",
    "escape_markdown_v2",
    "safe_filename",
]
