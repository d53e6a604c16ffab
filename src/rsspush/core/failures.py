"""连续拉取失败计数与失效提醒."""

import logging

from rsspush.core.formatting import format_dead_feed_notice, format_duration
from rsspush.core.notifier import Notifier
from rsspush.core.store import FeedSnapshot, FeedStore
from rsspush.fetcher.feed import FetchError

logger = logging.getLogger(__name__)


class FailureTracker:
    """
    维护每个 Feed 的连续失败次数.

    失败次数超过阈值时向所有订阅者发送一次失效提醒并清零；
    拉取成功时清零。轮询周期固定，不做退避。
    """

    def __init__(
        self,
        store: FeedStore,
        notifier: Notifier,
        threshold: int = 1440,
        poll_interval_seconds: int = 300,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self.threshold = threshold
        self._duration = format_duration(threshold * poll_interval_seconds)

    async def record_success(self, feed: FeedSnapshot) -> None:
        """拉取成功，计数清零."""
        await self._store.reset_error_count(feed.link)

    async def record_failure(self, feed: FeedSnapshot, error: FetchError) -> bool:
        """
        拉取失败，计数 +1.

        Returns:
            本次是否发送了失效提醒
        """
        count = await self._store.inc_error_count(feed.link)
        logger.warning(f"拉取失败 ({count}/{self.threshold}): {feed.link} - {error}")
        if count <= self.threshold:
            return False

        await self._store.reset_error_count(feed.link)

        current = await self._store.get_feed(feed.link)
        subscribers = current.subscribers if current else feed.subscribers
        title = current.title if current else feed.title

        msg = format_dead_feed_notice(title, feed.link, self._duration, error.describe())
        logger.info(f"Feed 可能已失效，通知 {len(subscribers)} 个订阅者: {feed.link}")
        await self._notifier.broadcast(subscribers, feed.link, [msg])
        return True
