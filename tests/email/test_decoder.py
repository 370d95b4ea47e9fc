"""Tests for Content-Transfer-Encoding decoding."""

from __future__ import annotations

import base64

import pytest

from mailrelay.email.decoder import (
    bytes_to_text,
    decode_base64,
    decode_content,
    decode_quoted_printable,
    mixed_bytes_to_text,
)


class TestBase64:
    def test_decodes_simple_value(self) -> None:
        assert decode_content("SGVsbG8=", "base64") == "Hello"

    def test_ignores_embedded_whitespace(self) -> None:
        encoded = base64.b64encode(b"Hello, world! This wraps.").decode()
        wrapped = "\r\n".join(encoded[i : i + 8] for i in range(0, len(encoded), 8))
        assert decode_content(wrapped, "base64") == "Hello, world! This wraps."

    def test_restores_missing_padding(self) -> None:
        assert decode_base64("SGVsbG8") == "Hello"

    def test_decodes_utf8_payload(self) -> None:
        encoded = base64.b64encode("Café ☕".encode()).decode()
        assert decode_content(encoded, "base64") == "Café ☕"

    def test_falls_back_to_latin1_for_invalid_utf8(self) -> None:
        encoded = base64.b64encode(b"caf\xe9").decode()
        assert decode_content(encoded, "base64") == "café"

    def test_invalid_base64_returns_original(self) -> None:
        assert decode_content("not*valid*base64!", "base64") == "not*valid*base64!"


class TestQuotedPrintable:
    def test_removes_soft_line_breaks(self) -> None:
        assert decode_content("Hello =\r\nWorld", "quoted-printable") == "Hello World"

    def test_removes_lf_soft_line_breaks(self) -> None:
        assert decode_quoted_printable("long=\nline") == "longline"

    def test_decodes_multibyte_escape(self) -> None:
        assert decode_content("Caf=C3=A9", "quoted-printable") == "Café"

    def test_lowercase_hex_digits(self) -> None:
        assert decode_quoted_printable("a=3db") == "a=b"

    def test_single_byte_escape_uses_latin1(self) -> None:
        assert decode_quoted_printable("caf=E9") == "café"

    def test_literal_utf8_next_to_single_byte_escape(self) -> None:
        assert decode_quoted_printable("café =E9") == "café é"

    def test_multibyte_escape_next_to_single_byte_escape(self) -> None:
        assert decode_content("=C3=BCber =FC", "quoted-printable") == "über ü"

    def test_leaves_unescaped_equals_alone(self) -> None:
        assert decode_quoted_printable("x = y") == "x = y"


class TestDecodeContent:
    @pytest.mark.parametrize("encoding", ["BASE64", " Base64 ", "base64"])
    def test_encoding_name_is_case_insensitive(self, encoding: str) -> None:
        assert decode_content("SGVsbG8=", encoding) == "Hello"

    @pytest.mark.parametrize("encoding", [None, "7bit", "8bit", "binary", "x-unknown"])
    def test_other_encodings_pass_through(self, encoding: str | None) -> None:
        assert decode_content("SGVsbG8=", encoding) == "SGVsbG8="

    def test_empty_content_returns_empty(self) -> None:
        assert decode_content("", "base64") == ""


class TestBytesToText:
    def test_utf8(self) -> None:
        assert bytes_to_text("über".encode()) == "über"

    def test_latin1_fallback(self) -> None:
        assert bytes_to_text(b"\xfcber") == "über"


class TestMixedBytesToText:
    def test_valid_utf8_is_unchanged(self) -> None:
        assert mixed_bytes_to_text("naïve".encode()) == "naïve"

    def test_only_invalid_runs_use_latin1(self) -> None:
        assert mixed_bytes_to_text("café ".encode() + b"\xe9!") == "café é!"

    def test_empty(self) -> None:
        assert mixed_bytes_to_text(b"") == ""
