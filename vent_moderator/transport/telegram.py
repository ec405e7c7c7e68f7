"""
Telegram Bot API client.

This module provides an async client for the subset of the Bot API the
service needs: long polling for updates, sending messages, editing inline
keyboards and answering button presses.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from vent_moderator.core.errors import TransportError

logger = logging.getLogger(__name__)


class TelegramClient:
    """
    Async client for the Telegram Bot API.

    Every failed call, whether the request itself failed or the API answered
    with `ok: false`, raises TransportError.
    """

    def __init__(
        self,
        token: str,
        api_base_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the Telegram client.

        Args:
            token: Bot token issued by BotFather.
            api_base_url: Bot API root URL.
            timeout: Request timeout in seconds (long polls add their own wait time).
            http_client: Optional preconfigured HTTP client, mainly for tests.
        """
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.username: Optional[str] = None
        self.client = http_client or httpx.AsyncClient(
            base_url=f"{self.api_base_url}/bot{token}/",
            timeout=httpx.Timeout(timeout),
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
        logger.info("Telegram client closed")

    async def _call(self, method: str, payload: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        """
        Invoke a Bot API method.

        Args:
            method: API method name, e.g. "sendMessage".
            payload: JSON body.
            timeout: Per-call timeout override in seconds.

        Returns:
            The `result` field of the API response.

        Raises:
            TransportError: On network errors, non-JSON bodies or `ok: false` answers.
        """
        request_timeout = httpx.Timeout(timeout) if timeout is not None else None
        try:
            if request_timeout is not None:
                response = await self.client.post(method, json=payload or {}, timeout=request_timeout)
            else:
                response = await self.client.post(method, json=payload or {})
        except httpx.HTTPError as e:
            raise TransportError(f"{method} request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(
                f"{method} returned a non-JSON response (HTTP {response.status_code})",
                error_code=response.status_code,
            ) from e

        if not data.get("ok"):
            raise TransportError(
                f"{method} failed: {data.get('description', 'unknown error')}",
                error_code=data.get("error_code", response.status_code),
            )
        return data.get("result")

    async def get_me(self) -> Dict[str, Any]:
        """Fetch the bot's own user object and remember its username."""
        me = await self._call("getMe")
        self.username = me.get("username")
        return me

    async def get_updates(self, offset: Optional[int] = None, poll_timeout: int = 30) -> List[Dict[str, Any]]:
        """
        Long-poll for new updates.

        Args:
            offset: Identifier of the first update to return.
            poll_timeout: Seconds the server may hold the request open.
        """
        payload: Dict[str, Any] = {
            "timeout": poll_timeout,
            "allowed_updates": ["message", "callback_query"],
        }
        if offset is not None:
            payload["offset"] = offset
        return await self._call("getUpdates", payload, timeout=poll_timeout + self.timeout)

    async def send_message(
        self,
        chat_id: Any,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Send an HTML-formatted message and return its message id."""
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        message = await self._call("sendMessage", payload)
        return message["message_id"]

    async def edit_message_reply_markup(
        self,
        chat_id: Any,
        message_id: int,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Replace the inline keyboard of a message; None removes it."""
        payload: Dict[str, Any] = {"chat_id": chat_id, "message_id": message_id}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        await self._call("editMessageReplyMarkup", payload)

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: Optional[str] = None,
        show_alert: bool = False,
    ) -> None:
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id, "show_alert": show_alert}
        if text:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)
