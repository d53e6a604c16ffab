"""单个 Feed 的拉取、比对与推送."""

import logging
from enum import StrEnum

import httpx

from rsspush.core.failures import FailureTracker
from rsspush.core.formatting import format_updates
from rsspush.core.notifier import Notifier
from rsspush.core.store import FeedSnapshot, FeedStore
from rsspush.fetcher.feed import DEFAULT_MAX_FEED_SIZE, FetchError, fetch_feed

logger = logging.getLogger(__name__)


class FeedUpdateResult(StrEnum):
    """单个 Feed 的处理结果."""

    UPDATES_DELIVERED = "updates_delivered"
    NO_UPDATES = "no_updates"
    HANDLED_FAILURE = "handled_failure"


class FeedUpdater:
    """拉取 Feed，计算新条目并交给 Notifier 推送."""

    def __init__(
        self,
        store: FeedStore,
        notifier: Notifier,
        failures: FailureTracker,
        user_agent: str,
        max_feed_size: int = DEFAULT_MAX_FEED_SIZE,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._failures = failures
        self._user_agent = user_agent
        self._max_feed_size = max_feed_size

    async def process(
        self, client: httpx.AsyncClient, feed: FeedSnapshot
    ) -> FeedUpdateResult:
        """处理一个 Feed 的完整流程：拉取 -> 比对 -> 推送."""
        try:
            document = await fetch_feed(
                client, self._user_agent, feed.link, max_size=self._max_feed_size
            )
        except FetchError as e:
            await self._failures.record_failure(feed, e)
            return FeedUpdateResult.HANDLED_FAILURE

        await self._failures.record_success(feed)

        # 地址变更（重定向）时保留文档，推送后逐个迁移订阅
        moved = document if document.source != feed.link else None

        if document.title != feed.title:
            await self._store.update_title(feed.link, document.title)

        updates = await self._store.update(feed.link, document.items)
        if not updates:
            return FeedUpdateResult.NO_UPDATES

        msgs = format_updates(document.title, document.link, updates)
        logger.info(
            f"{feed.link}: {len(updates)} 条更新，推送给 {len(feed.subscribers)} 个订阅者"
        )
        await self._notifier.broadcast(feed.subscribers, feed.link, msgs, moved=moved)
        return FeedUpdateResult.UPDATES_DELIVERED
