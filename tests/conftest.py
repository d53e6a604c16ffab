"""测试配置和 fixtures."""

from collections.abc import AsyncGenerator, Callable, Iterable, Sequence
from html import escape
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from rsspush.core.failures import FailureTracker
from rsspush.core.notifier import Notifier
from rsspush.core.store import FeedStore
from rsspush.core.updater import FeedUpdater
from rsspush.fetcher.feed import FeedDocument, FeedItem
from rsspush.telegram import DeliveryError

USER_AGENT = "rsspush-test/0.1"


class FakeBot:
    """记录发送内容的 TelegramBot 替身."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []
        self.errors: dict[int, DeliveryError] = {}

    async def send_messages(self, chat_id: int, texts: Iterable[str]) -> None:
        error = self.errors.get(chat_id)
        if error is not None:
            raise error
        for text in texts:
            self.sent.append((chat_id, text))

    def messages_to(self, chat_id: int) -> list[str]:
        return [text for target, text in self.sent if target == chat_id]


def make_rss(
    title: str,
    items: Sequence[tuple[str, str | None, str | None]],
    link: str = "https://example.com/",
) -> str:
    """生成 RSS 2.0 文档，items 为 (guid, title, link)."""
    entries = []
    for guid, item_title, item_link in items:
        parts = [f"<guid>{escape(guid)}</guid>"]
        if item_title is not None:
            parts.append(f"<title>{escape(item_title)}</title>")
        if item_link is not None:
            parts.append(f"<link>{escape(item_link)}</link>")
        entries.append(f"<item>{''.join(parts)}</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{escape(title)}</title><link>{escape(link)}</link>"
        f"<description>test</description>{''.join(entries)}"
        "</channel></rss>"
    )


def make_document(
    link: str, title: str, item_ids: Sequence[str], source: str | None = None
) -> FeedDocument:
    """生成 FeedDocument."""
    return FeedDocument(
        title=title,
        link="https://example.com/",
        source=source or link,
        items=[
            FeedItem(id=item_id, title=f"Item {item_id}", link=f"https://example.com/{item_id}")
            for item_id in item_ids
        ],
    )


def feed_server(
    routes: dict[str, httpx.Response | Callable[[httpx.Request], httpx.Response]],
) -> httpx.MockTransport:
    """按 URL 返回固定响应的 MockTransport，未知地址返回 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        # 每次返回新的响应对象，同一路由可以被多次请求
        return httpx.Response(
            route.status_code, headers=route.headers, content=route.content
        )

    return httpx.MockTransport(handler)


def rss_response(title: str, items: Sequence[tuple[str, str | None, str | None]]) -> httpx.Response:
    """RSS 响应."""
    return httpx.Response(
        200,
        content=make_rss(title, items).encode("utf-8"),
        headers={"Content-Type": "application/rss+xml"},
    )


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """创建测试用的临时数据库."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    await engine.dispose()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> FeedStore:
    """FeedStore 实例."""
    return FeedStore(session_factory)


@pytest.fixture
def bot() -> FakeBot:
    """FakeBot 实例."""
    return FakeBot()


@pytest.fixture
def notifier(bot: FakeBot, store: FeedStore) -> Notifier:
    """Notifier 实例."""
    return Notifier(bot, store)  # type: ignore[arg-type]


@pytest.fixture
def failures(store: FeedStore, notifier: Notifier) -> FailureTracker:
    """阈值为 3 的 FailureTracker."""
    return FailureTracker(store, notifier, threshold=3, poll_interval_seconds=300)


@pytest.fixture
def updater(
    store: FeedStore, notifier: Notifier, failures: FailureTracker
) -> FeedUpdater:
    """FeedUpdater 实例."""
    return FeedUpdater(store, notifier, failures, USER_AGENT)
