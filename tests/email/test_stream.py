"""Tests for reading the raw inbound payload."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest

from mailrelay.email.stream import read_raw


async def _chunks(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


async def _broken_stream() -> AsyncIterator[bytes]:
    yield b"partial"
    raise OSError("connection reset")


class TestReadRaw:
    @pytest.mark.anyio()
    async def test_str_passes_through(self) -> None:
        assert await read_raw("Subject: hi\r\n\r\nbody") == "Subject: hi\r\n\r\nbody"

    @pytest.mark.anyio()
    async def test_bytes_decoded_as_utf8(self) -> None:
        assert await read_raw("Grüße".encode()) == "Grüße"

    @pytest.mark.anyio()
    async def test_invalid_utf8_is_replaced(self) -> None:
        assert await read_raw(b"caf\xe9") == "caf\ufffd"

    @pytest.mark.anyio()
    async def test_stream_chunks_are_concatenated(self) -> None:
        assert await read_raw(_chunks(b"Hello, ", b"world")) == "Hello, world"

    @pytest.mark.anyio()
    async def test_multibyte_character_split_across_chunks(self) -> None:
        encoded = "é".encode()
        assert await read_raw(_chunks(b"caf", encoded[:1], encoded[1:])) == "café"

    @pytest.mark.anyio()
    async def test_empty_stream(self) -> None:
        assert await read_raw(_chunks()) == ""

    @pytest.mark.anyio()
    async def test_none_raises(self) -> None:
        with pytest.raises(ValueError, match="Stream is null or undefined"):
            await read_raw(None)

    @pytest.mark.anyio()
    async def test_stream_error_propagates(self) -> None:
        with pytest.raises(OSError, match="connection reset"):
            await read_raw(_broken_stream())
