"""Shared pytest fixtures for the mail relay test suite."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from factories import CHAT_ID, FIXED_NOW, VALID_TOKEN, RecordingTransport

from mailrelay.config import Settings
from mailrelay.pipeline.delivery import DeliveryPipeline
from mailrelay.ratelimit.limiter import SlidingWindowRateLimiter
from mailrelay.telegram.client import TelegramClient


@pytest.fixture
def make_client() -> Callable[..., tuple[TelegramClient, RecordingTransport, AsyncMock]]:
    """Factory returning a TelegramClient wired to canned responses."""

    def factory(
        responses: list[httpx.Response | Exception],
    ) -> tuple[TelegramClient, RecordingTransport, AsyncMock]:
        recorder = RecordingTransport(responses)
        sleep = AsyncMock()
        client = TelegramClient(
            api_base="https://telegram.test",
            transport=httpx.MockTransport(recorder),
            sleep=sleep,
        )
        return client, recorder, sleep

    return factory


@pytest.fixture
def settings() -> Settings:
    """Settings with valid Telegram credentials and default limits."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        telegram_bot_token=VALID_TOKEN,  # type: ignore[arg-type]
        telegram_channel_id=CHAT_ID,
    )


@pytest.fixture
def transport() -> AsyncMock:
    """A TelegramClient double whose sends all succeed."""
    mock = AsyncMock(spec=TelegramClient)
    mock.send_text.return_value = True
    mock.send_document.return_value = True
    return mock


@pytest.fixture
def rate_limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(clock=lambda: FIXED_NOW.timestamp() * 1000)


@pytest.fixture
def pipeline(
    settings: Settings,
    transport: AsyncMock,
    rate_limiter: SlidingWindowRateLimiter,
) -> DeliveryPipeline:
    return DeliveryPipeline(settings, transport, rate_limiter, clock=lambda: FIXED_NOW)
