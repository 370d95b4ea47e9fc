"""Text cleanup applied to an extracted body before it is relayed.

Normalizes line endings, collapses runs of blank lines, repairs common
mojibake (UTF-8 text that was mis-read as Latin-1 or cp1252 somewhere
upstream) and truncates to a length budget.

The repair table is a best-effort heuristic for the artifacts seen most
often in forwarded mail.  It is not a charset detector.
"""

from __future__ import annotations

import contextlib
import re

TRUNCATION_MARKER = "...\n\n\U0001f53d *Full content available in attached file*"

DEFAULT_MAX_LENGTH = 4000

_LINE_ENDINGS = re.compile(r"\r\n?")
_BLANK_LINE_RUN = re.compile(r"\n{3,}")

_ACCENTED = "àâäáçèéêëíîïñóôöùúûüÀÂÄÁÇÈÉÊËÍÎÏÑÓÔÖÙÚÛÜß"

# Intended character -> replacement written back into the text.
_PUNCTUATION = {
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2013": "\u2013",
    "\u2014": "\u2014",
    "\u2026": "...",
    "\u00a0": " ",
    "\u202f": " ",
}


def _misreadings(char: str) -> set[str]:
    encoded = char.encode("utf-8")
    variants = {encoded.decode("latin-1")}
    with contextlib.suppress(UnicodeDecodeError):
        variants.add(encoded.decode("cp1252"))
    return variants


def _build_repairs() -> dict[str, str]:
    targets = {char: char for char in _ACCENTED}
    targets.update(_PUNCTUATION)
    return {
        garbled: replacement
        for char, replacement in targets.items()
        for garbled in _misreadings(char)
    }


MOJIBAKE_REPAIRS: dict[str, str] = _build_repairs()

# Longest sequences first so a three-byte artifact is never split by a
# two-byte one that shares its prefix.
_MOJIBAKE_PATTERN = re.compile(
    "|".join(re.escape(k) for k in sorted(MOJIBAKE_REPAIRS, key=len, reverse=True))
)


def repair_mojibake(text: str) -> str:
    """Replace known double-encoding artifacts with the intended characters."""
    return _MOJIBAKE_PATTERN.sub(lambda m: MOJIBAKE_REPAIRS[m.group(0)], text)


def normalize_text(text: str | None, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Clean *text* for display and cap it at *max_length* characters.

    Args:
        text: The decoded body.  ``None`` or empty yields ``""``.
        max_length: Character budget before the truncation marker is added.

    Returns:
        The normalized text.  When it exceeded *max_length* it is cut to
        exactly *max_length* characters followed by ``TRUNCATION_MARKER``.
    """
    if not text:
        return ""

    cleaned = _LINE_ENDINGS.sub("\n", text)
    cleaned = _BLANK_LINE_RUN.sub("\n\n", cleaned)
    cleaned = repair_mojibake(cleaned).strip()

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + TRUNCATION_MARKER

    return cleaned
