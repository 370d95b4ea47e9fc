"""Read the raw inbound payload into text."""

from __future__ import annotations

import codecs

import structlog

from mailrelay.email.models import RawPayload

logger = structlog.get_logger()


async def read_raw(raw: RawPayload | None) -> str:
    """Return the raw email as text.

    Accepts the whole payload as ``str`` or ``bytes``, or an async iterable
    of byte chunks (a streaming request body).  Bytes are decoded as UTF-8
    incrementally; invalid sequences are replaced rather than raising.

    Raises:
        ValueError: If *raw* is ``None``.
        OSError: If reading the stream fails.
    """
    if raw is None:
        raise ValueError("Stream is null or undefined")
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")

    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    chunks: list[str] = []
    try:
        async for chunk in raw:
            chunks.append(decoder.decode(chunk))
    except OSError:
        logger.exception("Error reading email stream")
        raise
    chunks.append(decoder.decode(b"", final=True))
    return "".join(chunks)

