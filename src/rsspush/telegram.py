"""Telegram Bot API 客户端.

发送失败时在这里一次性归类为三种投递错误，调用方只需要按类型处理。
"""

import logging
from collections.abc import Iterable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# 表示 chat 已永久不可用的错误描述片段
_UNAVAILABLE_PATTERNS = (
    "chat not found",
    "bot was blocked by the user",
    "bot was kicked",
    "bot is not a member",
    "user is deactivated",
    "group chat was deactivated",
    "group chat was upgraded",
    "have no rights to send a message",
    "need administrator rights in the channel chat",
    "not enough rights to send text messages",
    "bot can't initiate conversation with a user",
)


class DeliveryError(Exception):
    """消息投递失败."""


class ChatUnavailableError(DeliveryError):
    """接收方已不可用（屏蔽、踢出、删除）."""

    def __init__(self, chat_id: int, description: str) -> None:
        super().__init__(f"{chat_id}: {description}")
        self.chat_id = chat_id
        self.description = description


class ChatMigratedError(DeliveryError):
    """接收方已迁移到新的 chat id（群组升级为超级群组）."""

    def __init__(self, chat_id: int, new_chat_id: int) -> None:
        super().__init__(f"{chat_id} 已迁移到 {new_chat_id}")
        self.chat_id = chat_id
        self.new_chat_id = new_chat_id


class DeliveryFailedError(DeliveryError):
    """其他错误（限流、网络、服务端异常等）."""

    def __init__(
        self, chat_id: int, description: str, error_code: int | None = None
    ) -> None:
        super().__init__(f"{chat_id}: {description}")
        self.chat_id = chat_id
        self.description = description
        self.error_code = error_code


def chat_is_unavailable(description: str) -> bool:
    """根据错误描述判断 chat 是否已永久不可用."""
    lowered = description.lower()
    return any(pattern in lowered for pattern in _UNAVAILABLE_PATTERNS)


def classify_error(chat_id: int, payload: dict[str, Any]) -> DeliveryError:
    """将 Bot API 的错误响应归类为 DeliveryError."""
    parameters = payload.get("parameters") or {}
    new_chat_id = parameters.get("migrate_to_chat_id")
    if new_chat_id is not None:
        return ChatMigratedError(chat_id, int(new_chat_id))

    description = str(payload.get("description") or "未知错误")
    if chat_is_unavailable(description):
        return ChatUnavailableError(chat_id, description)

    return DeliveryFailedError(chat_id, description, payload.get("error_code"))


class TelegramError(Exception):
    """Bot API 调用失败（非投递场景）."""


class TelegramBot:
    """Telegram Bot API 客户端."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.telegram.org",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/bot{token}"
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.username: str | None = None

    async def close(self) -> None:
        """关闭客户端."""
        await self._client.aclose()

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(f"{self._endpoint}/{method}", json=payload)
        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            msg = f"Bot API 返回了非 JSON 响应 (HTTP {response.status_code})"
            raise TelegramError(msg) from e
        return data

    async def get_me(self) -> dict[str, Any]:
        """获取 bot 信息，并记录 username."""
        try:
            data = await self._call("getMe", {})
        except httpx.HTTPError as e:
            raise TelegramError(str(e)) from e

        if not data.get("ok"):
            raise TelegramError(str(data.get("description") or "getMe 失败"))

        me: dict[str, Any] = data["result"]
        self.username = me.get("username")
        return me

    async def send_message(self, chat_id: int, text: str) -> None:
        """
        发送一条 HTML 格式消息（禁用链接预览）.

        Raises:
            DeliveryError: ChatUnavailableError / ChatMigratedError / DeliveryFailedError
        """
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            data = await self._call("sendMessage", payload)
        except httpx.HTTPError as e:
            raise DeliveryFailedError(chat_id, str(e) or type(e).__name__) from e
        except TelegramError as e:
            raise DeliveryFailedError(chat_id, str(e)) from e

        if not data.get("ok"):
            raise classify_error(chat_id, data)

    async def send_messages(self, chat_id: int, texts: Iterable[str]) -> None:
        """按顺序发送多条消息，遇到第一个错误即停止."""
        for text in texts:
            await self.send_message(chat_id, text)
