"""轮询调度：按 host 分组并发拉取所有 Feed."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from rsspush.core.hosts import get_host, group_by_host
from rsspush.core.store import FeedSnapshot, FeedStore
from rsspush.core.updater import FeedUpdater, FeedUpdateResult

logger = logging.getLogger(__name__)


@dataclass
class PollStats:
    """轮询统计."""

    cycles_started: int = 0
    cycles_completed: int = 0
    last_started_at: datetime | None = None
    last_completed_at: datetime | None = None
    updates_delivered: int = 0
    no_updates: int = 0
    handled_failures: int = 0
    skipped: int = 0  # 上一轮仍在处理而跳过
    aborted_groups: int = 0


class Poller:
    """
    执行轮询周期.

    每轮一个 TaskGroup，每个 host 分组一个任务，分组之间错开启动；
    同一分组内的 Feed 顺序处理并共享一个 HTTP 会话。
    多轮可以重叠，但同一个 Feed 同时只会被一轮处理。
    """

    def __init__(
        self,
        store: FeedStore,
        updater: FeedUpdater,
        group_launch_delay: float = 1.0,
        fetch_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._store = store
        self._updater = updater
        self._group_launch_delay = group_launch_delay
        self._fetch_timeout = fetch_timeout
        self._transport = transport
        self._in_flight: set[str] = set()
        self.stats = PollStats()

    @property
    def in_flight(self) -> frozenset[str]:
        """正在处理的 Feed."""
        return frozenset(self._in_flight)

    async def run_cycle(self) -> None:
        """执行一轮轮询."""
        feeds = await self._store.get_all_feeds()
        groups = group_by_host(feeds)

        self.stats.cycles_started += 1
        self.stats.last_started_at = datetime.now(UTC)
        logger.info(f"开始轮询: {len(feeds)} 个 Feed, {len(groups)} 个 host")

        async with asyncio.TaskGroup() as tg:
            for index, group in enumerate(groups):
                if index and self._group_launch_delay > 0:
                    await asyncio.sleep(self._group_launch_delay)
                tg.create_task(self.dispatch_group(group))

        self.stats.cycles_completed += 1
        self.stats.last_completed_at = datetime.now(UTC)
        logger.info(
            f"轮询完成 (累计): 推送={self.stats.updates_delivered}, "
            f"无更新={self.stats.no_updates}, 失败={self.stats.handled_failures}"
        )

    async def dispatch_group(self, group: Sequence[FeedSnapshot]) -> None:
        """顺序处理同一 host 下的 Feed，异常时放弃本组剩余 Feed."""
        if not group:
            return

        try:
            async with httpx.AsyncClient(
                timeout=self._fetch_timeout, transport=self._transport
            ) as client:
                for feed in group:
                    if feed.link in self._in_flight:
                        logger.info(f"上一轮仍在处理，跳过: {feed.link}")
                        self.stats.skipped += 1
                        continue

                    self._in_flight.add(feed.link)
                    try:
                        result = await self._updater.process(client, feed)
                    finally:
                        self._in_flight.discard(feed.link)
                    self._record(result)
        except Exception:
            self.stats.aborted_groups += 1
            logger.exception(f"处理 host 分组失败，跳过本轮剩余 Feed: {get_host(group[0].link)}")

    def _record(self, result: FeedUpdateResult) -> None:
        if result is FeedUpdateResult.UPDATES_DELIVERED:
            self.stats.updates_delivered += 1
        elif result is FeedUpdateResult.NO_UPDATES:
            self.stats.no_updates += 1
        else:
            self.stats.handled_failures += 1
