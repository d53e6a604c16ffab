"""Feed / 订阅 / 已读条目存储.

所有轮询任务共享同一个 FeedStore。每个操作使用独立会话，
同一 Feed 上的读-改-写操作由按 link 划分的锁串行化。
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from rsspush.fetcher.feed import FeedDocument, FeedItem
from rsspush.models.feed import Feed, SeenItem, Subscription, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedSnapshot:
    """某一时刻的 Feed 只读快照."""

    link: str
    title: str
    error_count: int = 0
    subscribers: tuple[int, ...] = ()


class StoreError(Exception):
    """存储操作错误."""


class AlreadySubscribedError(StoreError):
    """重复订阅."""


class NotSubscribedError(StoreError):
    """未订阅."""


class FeedStore:
    """基于 SQLModel 的 Feed 存储."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, link: str) -> asyncio.Lock:
        return self._locks.setdefault(link, asyncio.Lock())

    async def _subscribers(self, session: AsyncSession, link: str) -> tuple[int, ...]:
        stmt = (
            select(Subscription.subscriber_id)
            .where(Subscription.feed_link == link)
            .order_by(Subscription.subscriber_id)  # type: ignore[arg-type]
        )
        result = await session.execute(stmt)
        return tuple(result.scalars().all())

    async def get_all_feeds(self) -> list[FeedSnapshot]:
        """获取所有 Feed 快照（按 link 排序）."""
        async with self._session_factory() as session:
            feeds = (
                await session.execute(select(Feed).order_by(Feed.link))  # type: ignore[arg-type]
            ).scalars().all()
            subscriptions = (
                await session.execute(
                    select(Subscription).order_by(
                        Subscription.feed_link,  # type: ignore[arg-type]
                        Subscription.subscriber_id,  # type: ignore[arg-type]
                    )
                )
            ).scalars().all()

        subscribers: dict[str, list[int]] = {}
        for sub in subscriptions:
            subscribers.setdefault(sub.feed_link, []).append(sub.subscriber_id)

        return [
            FeedSnapshot(
                link=feed.link,
                title=feed.title,
                error_count=feed.error_count,
                subscribers=tuple(subscribers.get(feed.link, ())),
            )
            for feed in feeds
        ]

    async def get_feed(self, link: str) -> FeedSnapshot | None:
        """获取单个 Feed 快照."""
        async with self._session_factory() as session:
            feed = await session.get(Feed, link)
            if feed is None:
                return None
            return FeedSnapshot(
                link=feed.link,
                title=feed.title,
                error_count=feed.error_count,
                subscribers=await self._subscribers(session, link),
            )

    async def get_subscribed_feeds(self, subscriber_id: int) -> list[FeedSnapshot]:
        """获取某个 chat 订阅的所有 Feed."""
        async with self._session_factory() as session:
            stmt = (
                select(Feed)
                .join(Subscription, Subscription.feed_link == Feed.link)  # type: ignore[arg-type]
                .where(Subscription.subscriber_id == subscriber_id)
                .order_by(Feed.link)  # type: ignore[arg-type]
            )
            feeds = (await session.execute(stmt)).scalars().all()
            return [
                FeedSnapshot(
                    link=feed.link,
                    title=feed.title,
                    error_count=feed.error_count,
                    subscribers=await self._subscribers(session, feed.link),
                )
                for feed in feeds
            ]

    async def inc_error_count(self, link: str) -> int:
        """失败计数 +1，返回新值."""
        async with self._lock(link), self._session_factory() as session:
            feed = await session.get(Feed, link)
            if feed is None:
                return 0
            feed.error_count += 1
            count = feed.error_count
            await session.commit()
            return count

    async def reset_error_count(self, link: str) -> None:
        """失败计数清零."""
        async with self._lock(link), self._session_factory() as session:
            feed = await session.get(Feed, link)
            if feed is None or feed.error_count == 0:
                return
            feed.error_count = 0
            await session.commit()

    async def update_title(self, link: str, title: str) -> None:
        """更新 Feed 标题."""
        async with self._lock(link), self._session_factory() as session:
            feed = await session.get(Feed, link)
            if feed is None:
                return
            feed.title = title
            feed.updated_at = utcnow()
            await session.commit()

    async def update(self, link: str, items: Iterable[FeedItem]) -> list[FeedItem]:
        """
        记录本次拉取到的条目，返回之前未见过的部分（保持原顺序）.

        已记录但不在本次非空结果中的条目会被清理。
        """
        async with self._lock(link), self._session_factory() as session:
            if await session.get(Feed, link) is None:
                return []

            stmt = select(SeenItem.item_id).where(SeenItem.feed_link == link)
            seen = set((await session.execute(stmt)).scalars().all())

            fetched: set[str] = set()
            updates: list[FeedItem] = []
            for item in items:
                if item.id in fetched:
                    continue
                fetched.add(item.id)
                if item.id not in seen:
                    updates.append(item)
                    session.add(SeenItem(feed_link=link, item_id=item.id))

            stale = seen - fetched
            if fetched and stale:
                await session.execute(
                    delete(SeenItem).where(
                        SeenItem.feed_link == link,  # type: ignore[arg-type]
                        SeenItem.item_id.in_(stale),  # type: ignore[attr-defined]
                    )
                )

            await session.commit()
            return updates

    async def delete_subscriber(self, link: str, subscriber_id: int) -> None:
        """从某个 Feed 中移除订阅者（不影响其他 Feed）."""
        async with self._lock(link), self._session_factory() as session:
            sub = await session.get(Subscription, (link, subscriber_id))
            if sub is None:
                return
            await session.delete(sub)
            await session.commit()
        logger.info(f"已移除不可用的订阅者 {subscriber_id} ({link})")

    async def update_subscriber(self, old_id: int, new_id: int) -> None:
        """将 chat 的所有订阅迁移到新的 chat id."""
        async with self._session_factory() as session:
            stmt = select(Subscription.feed_link).where(
                Subscription.subscriber_id == old_id
            )
            links = list((await session.execute(stmt)).scalars().all())

        for link in links:
            async with self._lock(link), self._session_factory() as session:
                old = await session.get(Subscription, (link, old_id))
                if old is None:
                    continue
                await session.delete(old)
                if await session.get(Subscription, (link, new_id)) is None:
                    session.add(Subscription(feed_link=link, subscriber_id=new_id))
                await session.commit()

        logger.info(f"订阅者 {old_id} 已迁移到 {new_id} ({len(links)} 个订阅)")

    async def subscribe(
        self, subscriber_id: int, link: str, document: FeedDocument
    ) -> FeedSnapshot:
        """
        订阅 Feed，Feed 不存在时用已拉取的文档初始化.

        Raises:
            AlreadySubscribedError: 已订阅
        """
        async with self._lock(link), self._session_factory() as session:
            if await session.get(Subscription, (link, subscriber_id)) is not None:
                msg = f"{subscriber_id} 已订阅 {link}"
                raise AlreadySubscribedError(msg)

            feed = await session.get(Feed, link)
            if feed is None:
                feed = Feed(link=link, title=document.title)
                session.add(feed)
                # 初始条目视为已读，避免订阅后推送历史内容
                for item_id in dict.fromkeys(item.id for item in document.items):
                    session.add(SeenItem(feed_link=link, item_id=item_id))
                await session.flush()

            session.add(Subscription(feed_link=link, subscriber_id=subscriber_id))
            await session.commit()

            return FeedSnapshot(
                link=feed.link,
                title=feed.title,
                error_count=feed.error_count,
                subscribers=await self._subscribers(session, link),
            )

    async def unsubscribe(self, subscriber_id: int, link: str) -> FeedSnapshot:
        """
        取消订阅，最后一个订阅者退订时删除 Feed.

        Raises:
            NotSubscribedError: 未订阅
        """
        async with self._lock(link), self._session_factory() as session:
            sub = await session.get(Subscription, (link, subscriber_id))
            if sub is None:
                msg = f"{subscriber_id} 未订阅 {link}"
                raise NotSubscribedError(msg)

            await session.delete(sub)
            await session.flush()

            feed = await session.get(Feed, link)
            snapshot = FeedSnapshot(
                link=link,
                title=feed.title if feed else link,
                error_count=feed.error_count if feed else 0,
                subscribers=await self._subscribers(session, link),
            )

            deleted = feed is not None and not snapshot.subscribers
            if deleted and feed is not None:
                await session.execute(
                    delete(SeenItem).where(SeenItem.feed_link == link)  # type: ignore[arg-type]
                )
                await session.delete(feed)
                logger.info(f"Feed 已无订阅者，删除: {link}")

            await session.commit()

        if deleted:
            self._locks.pop(link, None)
        return snapshot
