"""Telegram Bot API client for relaying text messages and documents.

``send_text`` retries transient failures with exponential backoff and falls
back to plain text when Telegram refuses the MarkdownV2 markup.
``send_document`` makes a single attempt.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from mailrelay.domain.errors import (
    NonRetryableTransportError,
    RetryableTransportError,
    TransportError,
)
from mailrelay.resilience.retry import DEFAULT_MAX_ATTEMPTS, SleepFunc, build_retrying

logger = structlog.get_logger()

TELEGRAM_API_BASE = "https://api.telegram.org"
PARSE_MODE = "MarkdownV2"

# Invalid chat or credential: retrying cannot succeed.
NON_RETRYABLE_ERROR_CODES = frozenset({401, 403, 404})

_PARSE_ERROR_MARKERS = ("parse_mode", "can't parse entities")


def is_parse_error(error_code: int | None, description: str) -> bool:
    """Return True if Telegram refused the message because of its markup."""
    lowered = description.lower()
    return error_code == 400 and any(marker in lowered for marker in _PARSE_ERROR_MARKERS)


def _response_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _is_success(response: httpx.Response, data: dict[str, Any]) -> bool:
    return response.is_success and data.get("ok", True) is not False


def _error_details(response: httpx.Response, data: dict[str, Any]) -> tuple[int, str]:
    error_code = data.get("error_code", response.status_code)
    description = data.get("description") or response.reason_phrase or "Unknown error"
    return int(error_code), str(description)


class TelegramClient:
    """Sends messages and documents through the Telegram Bot API.

    Each call opens a short-lived ``httpx.AsyncClient``; pass *transport* to
    route requests somewhere other than the network (tests use
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_base: str = TELEGRAM_API_BASE,
        timeout: float = 30.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Initialize the TelegramClient.

        Args:
            api_base: Base URL of the Bot API.
            timeout: Per-request timeout in seconds.
            max_attempts: Attempts made by ``send_text`` before giving up.
            transport: Optional httpx transport override.
            sleep: Optional coroutine used for backoff waits.
        """
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._transport = transport
        self._sleep = sleep

    def _url(self, token: str, method: str) -> str:
        return f"{self._api_base}/bot{token}/{method}"

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def send_text(self, token: str, chat_id: str, text: str) -> bool:
        """Send a MarkdownV2 text message, retrying transient failures.

        Args:
            token: The bot token.
            chat_id: Destination chat (``@channel`` or numeric id).
            text: Message text, already escaped for MarkdownV2.

        Returns:
            True once the message was accepted.  False, without any request,
            when *text* is empty or whitespace.

        Raises:
            NonRetryableTransportError: If the chat or token is invalid.
            RetryableTransportError: If every attempt failed.
        """
        if not text or not text.strip():
            logger.warning("Empty message text, skipping")
            return False

        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": PARSE_MODE,
            "disable_web_page_preview": True,
        }

        async for attempt in build_retrying(
            "telegram.sendMessage", max_attempts=self._max_attempts, sleep=self._sleep
        ):
            with attempt:
                logger.info(
                    "Sending to Telegram",
                    attempt=attempt.retry_state.attempt_number,
                    chat_id=chat_id,
                    text_length=len(text),
                )
                await self._send_text_once(self._url(token, "sendMessage"), payload)
        return True

    async def _send_text_once(self, url: str, payload: dict[str, Any]) -> None:
        async with self._http_client() as client:
            response, data = await self._post_json(client, url, payload)
            if _is_success(response, data):
                logger.info("Telegram message sent")
                return

            error_code, description = _error_details(response, data)
            logger.error(
                "Telegram API error",
                status=response.status_code,
                error_code=error_code,
                description=description,
            )

            if is_parse_error(error_code, description):
                logger.info("Retrying with plain text mode")
                plain_payload = {k: v for k, v in payload.items() if k != "parse_mode"}
                plain_response, plain_data = await self._post_json(client, url, plain_payload)
                if _is_success(plain_response, plain_data):
                    logger.info("Telegram message sent (plain text fallback)")
                    return

        if error_code in NON_RETRYABLE_ERROR_CODES:
            raise NonRetryableTransportError(f"Telegram API error: {description}", error_code)
        raise RetryableTransportError(f"Telegram API error: {description}", error_code)

    async def _post_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        payload: dict[str, Any],
    ) -> tuple[httpx.Response, dict[str, Any]]:
        try:
            response = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Network error sending to Telegram", error=str(exc))
            raise RetryableTransportError(f"Network error: {exc}") from exc
        return response, _response_body(response)

    async def send_document(
        self,
        token: str,
        chat_id: str,
        content: bytes | str,
        filename: str,
        caption: str,
    ) -> bool:
        """Upload *content* as a document, in a single attempt.

        Args:
            token: The bot token.
            chat_id: Destination chat.
            content: File content; text is encoded as UTF-8.
            filename: Name shown for the attachment.
            caption: Plain-text caption.

        Returns:
            True if Telegram accepted the document.

        Raises:
            TransportError: On a network failure or a non-success response.
        """
        file_bytes = content.encode("utf-8") if isinstance(content, str) else content
        files = {"document": (filename, file_bytes, "text/plain; charset=utf-8")}
        data = {"chat_id": chat_id, "caption": caption}

        async with self._http_client() as client:
            try:
                response = await client.post(
                    self._url(token, "sendDocument"), data=data, files=files
                )
            except httpx.HTTPError as exc:
                logger.error("Error sending document", error=str(exc))
                raise TransportError(f"Network error: {exc}") from exc

        body = _response_body(response)
        if not _is_success(response, body):
            error_code, description = _error_details(response, body)
            logger.error("Error sending document", error_code=error_code, description=description)
            raise TransportError(f"Telegram API error: {description}", error_code)

        logger.info("Telegram document sent", filename=filename, size=len(file_bytes))
        return True
