"""Command-line relay for a single message stored on disk.

Feeds an ``.eml`` file through the same pipeline the webhook uses, or, with
``--dry-run``, prints what would be sent without touching the network.

Usage::

    mailrelay-send message.eml
    mailrelay-send message.eml --dry-run --format json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from mailrelay.app import configure_logging, initialize_services, parse_inbound_email
from mailrelay.config import get_settings
from mailrelay.email.extractor import extract_content
from mailrelay.email.models import EmailMetadata
from mailrelay.email.normalizer import normalize_text
from mailrelay.pipeline.delivery import DeliveryPipeline
from mailrelay.telegram.formatting import truncate_subject


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Relay an email file to Telegram")

    parser.add_argument(
        "path",
        type=Path,
        help="Path to a raw RFC 822 message (.eml)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the extracted content instead of sending it",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        dest="output_format",
        help="Dry-run output format (default: text)",
    )
    parser.add_argument(
        "--max-body-length",
        type=int,
        default=None,
        help="Override the body preview length",
    )

    return parser


def preview(raw: bytes, max_body_length: int, max_subject_length: int) -> dict[str, Any]:
    """Extract what the pipeline would send for *raw*, without sending it.

    Args:
        raw: The raw message bytes.
        max_body_length: Body preview budget.
        max_subject_length: Subject budget.

    Returns:
        A dict with the metadata fields, ``content_type`` and ``body``.
    """
    event = parse_inbound_email(raw)
    metadata = EmailMetadata.from_headers(event.headers)
    content = extract_content(raw)
    result: dict[str, Any] = metadata.model_dump()
    result["subject"] = truncate_subject(metadata.subject, max_subject_length)
    result["content_type"] = content.content_type
    result["body"] = normalize_text(content.body, max_body_length)
    return result


def format_text(result: dict[str, Any]) -> str:
    """Format a preview as labelled lines followed by the body."""
    labels = [
        ("From", "sender"),
        ("To", "recipient"),
        ("Subject", "subject"),
        ("Date", "date"),
        ("Content Type", "content_type"),
        ("Message ID", "message_id"),
    ]
    lines = [f"{label}: {result[key]}" for label, key in labels]
    lines.append("")
    lines.append(result["body"])
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> None:
    """Entry point for ``mailrelay-send``.

    Exits with status 1 if the file cannot be read or the pipeline rejected
    the email.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.max_body_length is not None:
        settings = settings.model_copy(update={"max_body_length": args.max_body_length})
    configure_logging(production=settings.production, sentry_dsn=settings.sentry_dsn)

    try:
        raw = args.path.read_bytes()
    except OSError as exc:
        print(f"Cannot read {args.path}: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.dry_run:
        result = preview(raw, settings.max_body_length, settings.max_subject_length)
        if args.output_format == "json":
            print(json.dumps(result, indent=2, ensure_ascii=False))
        else:
            print(format_text(result))
        return

    pipeline: DeliveryPipeline = initialize_services(settings)["pipeline"]
    event = parse_inbound_email(raw)
    state = asyncio.run(pipeline.deliver(event))

    if event.rejection is not None:
        print(f"Rejected: {event.rejection}", file=sys.stderr)
        sys.exit(1)
    print(f"Delivered ({state})")


if __name__ == "__main__":
    main()
