"""RSS/Atom 文档拉取与解析."""

import asyncio
import hashlib
import logging
from typing import Any

import feedparser
import httpx
from pydantic import BaseModel

from rsspush import __version__

logger = logging.getLogger(__name__)

DEFAULT_MAX_FEED_SIZE = 2 * 1024 * 1024


class FeedItem(BaseModel):
    """Feed 中的一个条目."""

    id: str  # 用于去重的稳定标识
    title: str | None = None
    link: str | None = None


class FeedDocument(BaseModel):
    """解析后的 Feed 文档."""

    title: str
    link: str  # 站点地址
    source: str  # 实际拉取地址（跟随重定向后）
    items: list[FeedItem] = []


class FetchError(Exception):
    """Feed 拉取失败."""

    def describe(self) -> str:
        """面向用户的错误描述."""
        return "未知错误"


class FeedNetworkError(FetchError):
    """网络错误（连接失败、超时等）."""

    def describe(self) -> str:
        return "网络错误"


class FeedHttpStatusError(FetchError):
    """服务器返回错误状态码."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code

    def describe(self) -> str:
        return f"网络错误 ({self.status_code})"


class FeedTooLargeError(FetchError):
    """Feed 文件超过大小限制."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Feed 超过 {limit} 字节")
        self.limit = limit

    def describe(self) -> str:
        return "Feed 文件过大"


class FeedParseError(FetchError):
    """内容无法解析为 RSS/Atom."""

    def describe(self) -> str:
        return "解析错误"


class FeedInvalidLinkError(FetchError):
    """链接格式错误，无法发起请求."""

    def describe(self) -> str:
        return "无效的链接"


def build_user_agent(bot_username: str | None) -> str:
    """生成拉取时使用的 User-Agent."""
    if bot_username:
        return f"rsspush/{__version__} (+https://t.me/{bot_username})"
    return f"rsspush/{__version__}"


def normalize_link(link: str) -> str:
    """补全缺失的 scheme."""
    link = link.strip()
    if "://" not in link:
        link = f"http://{link}"
    return link


def _item_id(entry: Any) -> str | None:
    """取条目的稳定标识: guid > link > 标题摘要."""
    for key in ("id", "link"):
        value = entry.get(key)
        if value:
            return str(value)
    title = entry.get("title")
    if title:
        return hashlib.sha256(title.encode("utf-8")).hexdigest()
    return None


def parse_document(parsed: Any, source: str) -> FeedDocument:
    """将 feedparser 结果转换为 FeedDocument."""
    feed_info = parsed.get("feed", {})
    entries = parsed.get("entries", [])

    # feedparser 对非 Feed 内容也不会抛异常，需要自己判断
    if not parsed.get("version") and not entries:
        reason = parsed.get("bozo_exception") or "不是有效的 RSS/Atom 文档"
        raise FeedParseError(str(reason))

    items: list[FeedItem] = []
    for entry in entries:
        item_id = _item_id(entry)
        if item_id is None:
            continue
        items.append(
            FeedItem(
                id=item_id,
                title=entry.get("title") or None,
                link=entry.get("link") or None,
            )
        )

    return FeedDocument(
        title=feed_info.get("title") or source,
        link=feed_info.get("link") or source,
        source=source,
        items=items,
    )


async def fetch_feed(
    client: httpx.AsyncClient,
    user_agent: str,
    link: str,
    max_size: int = DEFAULT_MAX_FEED_SIZE,
) -> FeedDocument:
    """
    拉取并解析一个 Feed.

    Args:
        client: 同一 host 分组共享的 HTTP 会话
        user_agent: 请求使用的 User-Agent
        link: Feed 地址
        max_size: 响应体大小上限（字节）

    Raises:
        FetchError: 链接、网络、状态码、大小或解析错误
    """
    chunks: list[bytes] = []
    try:
        async with client.stream(
            "GET",
            link,
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        ) as response:
            if response.status_code >= 400:
                raise FeedHttpStatusError(response.status_code)

            size = 0
            async for chunk in response.aiter_bytes():
                size += len(chunk)
                if size > max_size:
                    raise FeedTooLargeError(max_size)
                chunks.append(chunk)
            # 仅在发生重定向时采用最终地址，避免 URL 规范化带来的误判
            source = str(response.url) if response.history else link
    except httpx.InvalidURL as e:
        raise FeedInvalidLinkError(str(e)) from e
    except httpx.HTTPError as e:
        raise FeedNetworkError(str(e) or type(e).__name__) from e

    content = b"".join(chunks)

    # feedparser 是同步库，放到线程池中解析
    loop = asyncio.get_running_loop()
    parsed = await loop.run_in_executor(None, feedparser.parse, content)
    document = parse_document(parsed, source)
    logger.debug(f"拉取成功: {link} ({len(document.items)} 条)")
    return document
