"""更新推送：向订阅者分发消息并处理投递错误."""

import asyncio
import logging
from collections.abc import Coroutine, Iterable, Sequence
from typing import Any

from rsspush.core.store import FeedStore, StoreError
from rsspush.fetcher.feed import FeedDocument
from rsspush.telegram import (
    ChatMigratedError,
    ChatUnavailableError,
    DeliveryError,
    TelegramBot,
)

logger = logging.getLogger(__name__)


class Notifier:
    """将消息分发给 Feed 的所有订阅者."""

    def __init__(self, bot: TelegramBot, store: FeedStore) -> None:
        self._bot = bot
        self._store = store
        self._background: set[asyncio.Task[None]] = set()

    async def deliver(
        self, subscriber_id: int, feed_link: str, msgs: Sequence[str]
    ) -> int | None:
        """
        向单个订阅者发送消息并按错误类型处理副作用.

        Returns:
            之后应使用的 chat id；订阅者已被移除时返回 None
        """
        try:
            await self._bot.send_messages(subscriber_id, msgs)
        except ChatUnavailableError as e:
            logger.info(f"订阅者不可用，移除: {subscriber_id} ({e.description})")
            await self._store.delete_subscriber(feed_link, subscriber_id)
            return None
        except ChatMigratedError as e:
            logger.info(f"订阅者已迁移: {subscriber_id} -> {e.new_chat_id}")
            await self._store.update_subscriber(subscriber_id, e.new_chat_id)
            self._spawn(self._redeliver(e.new_chat_id, msgs))
            return e.new_chat_id
        except DeliveryError as e:
            logger.warning(f"推送失败 {subscriber_id}: {e}")
        return subscriber_id

    async def broadcast(
        self,
        subscribers: Iterable[int],
        feed_link: str,
        msgs: Sequence[str],
        moved: FeedDocument | None = None,
    ) -> None:
        """
        向所有订阅者推送.

        moved 不为空时表示 Feed 地址已变更，推送后逐个把订阅迁移到新地址。
        """
        for subscriber_id in subscribers:
            chat_id = await self.deliver(subscriber_id, feed_link, msgs)
            if moved is not None and chat_id is not None:
                await self._migrate_subscription(chat_id, feed_link, moved)

    async def _migrate_subscription(
        self, chat_id: int, old_link: str, document: FeedDocument
    ) -> None:
        """尽力迁移订阅，失败时忽略."""
        try:
            await self._store.unsubscribe(chat_id, old_link)
        except StoreError as e:
            logger.info(f"迁移订阅时退订失败，忽略: {e}")
        try:
            await self._store.subscribe(chat_id, document.source, document)
        except StoreError as e:
            logger.info(f"迁移订阅时订阅失败，忽略: {e}")
        else:
            logger.info(f"订阅已迁移: {chat_id} {old_link} -> {document.source}")

    async def _redeliver(self, chat_id: int, msgs: Sequence[str]) -> None:
        try:
            await self._bot.send_messages(chat_id, msgs)
        except DeliveryError as e:
            logger.warning(f"向迁移后的 chat 补发失败 {chat_id}: {e}")

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: "asyncio.Task[None]") -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"后台补发任务异常: {exc!r}")

    async def wait_background(self) -> None:
        """等待所有后台补发任务完成."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
