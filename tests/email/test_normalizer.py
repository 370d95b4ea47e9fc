"""Tests for body text normalization."""

from __future__ import annotations

from mailrelay.email.normalizer import (
    MOJIBAKE_REPAIRS,
    TRUNCATION_MARKER,
    normalize_text,
    repair_mojibake,
)


class TestNormalizeText:
    def test_normalizes_line_endings(self) -> None:
        assert normalize_text("a\r\nb\rc\nd") == "a\nb\nc\nd"

    def test_collapses_blank_line_runs(self) -> None:
        assert normalize_text("a\n\n\n\n\nb") == "a\n\nb"

    def test_keeps_single_blank_line(self) -> None:
        assert normalize_text("a\n\nb") == "a\n\nb"

    def test_collapses_after_crlf_conversion(self) -> None:
        assert normalize_text("a\r\n\r\n\r\n\r\nb") == "a\n\nb"

    def test_strips_surrounding_whitespace(self) -> None:
        assert normalize_text("  \n hello \n\n") == "hello"

    def test_empty_and_none(self) -> None:
        assert normalize_text("") == ""
        assert normalize_text(None) == ""

    def test_truncates_to_exact_length_with_marker(self) -> None:
        result = normalize_text("x" * 4500)
        assert result == "x" * 4000 + TRUNCATION_MARKER

    def test_custom_max_length(self) -> None:
        assert normalize_text("abcdefgh", max_length=5) == "abcde" + TRUNCATION_MARKER

    def test_text_at_limit_is_not_truncated(self) -> None:
        assert normalize_text("abcde", max_length=5) == "abcde"

    def test_repairs_mojibake(self) -> None:
        assert normalize_text("CafÃ© itâ€™s") == "Café it's"


class TestRepairMojibake:
    def test_accented_letters(self) -> None:
        assert repair_mojibake("Ã¼ber naÃ¯ve") == "über naïve"

    def test_curly_quotes_become_ascii(self) -> None:
        assert repair_mojibake("â€œquotedâ\x80\x9d") == '"quoted"'

    def test_ellipsis(self) -> None:
        assert repair_mojibake("waitâ€¦") == "wait..."

    def test_dashes_are_restored(self) -> None:
        assert repair_mojibake("2020â€“2021 â€” done") == "2020–2021 — done"

    def test_latin1_misreading_of_apostrophe(self) -> None:
        assert repair_mojibake("itâ\u0080\u0099s") == "it's"

    def test_clean_text_untouched(self) -> None:
        assert repair_mojibake("Plain café text") == "Plain café text"

    def test_table_covers_both_misreadings(self) -> None:
        assert MOJIBAKE_REPAIRS["Ã©"] == "é"
        assert MOJIBAKE_REPAIRS["â€™"] == "'"
        assert MOJIBAKE_REPAIRS["â\u0080\u0099"] == "'"
