"""消息格式化与拆分."""

import html
from collections.abc import Callable, Sequence
from typing import TypeVar

from rsspush.fetcher.feed import FeedItem

T = TypeVar("T")

TELEGRAM_MAX_MSG_LEN = 4096
ELLIPSIS = "..."


def escape(text: str) -> str:
    """转义 HTML 文本."""
    return html.escape(text, quote=False)


def escape_url(url: str) -> str:
    """转义用于 href 属性的 URL."""
    return html.escape(url, quote=True)


def truncate_escaped(
    text: str, max_len: int, escape_fn: Callable[[str], str] = escape
) -> str:
    """截断原文，使转义后的长度不超过 max_len，不会截断在实体中间."""
    escaped = escape_fn(text)
    if len(escaped) <= max_len:
        return escaped
    budget = max_len - len(ELLIPSIS)
    if budget <= 0:
        return ELLIPSIS[: max(max_len, 0)]

    parts: list[str] = []
    size = 0
    for ch in text:
        piece = escape_fn(ch)
        if size + len(piece) > budget:
            break
        parts.append(piece)
        size += len(piece)
    return "".join(parts) + ELLIPSIS


def format_and_split_msgs(
    head: str,
    data: Sequence[T],
    line_format_fn: Callable[[T], str],
    max_len: int = TELEGRAM_MAX_MSG_LEN,
) -> list[str]:
    """
    将标题块和若干条目块拼接并拆分为多条消息.

    每条消息不超过 max_len，条目块不会跨消息拆分。
    """
    msgs = [head]
    for item in data:
        line = line_format_fn(item)
        if len(msgs[-1]) + 1 + len(line) > max_len:
            msgs.append(line)
        else:
            msgs[-1] = f"{msgs[-1]}\n{line}"
    return msgs


def format_updates(
    feed_title: str,
    feed_link: str,
    updates: Sequence[FeedItem],
    max_len: int = TELEGRAM_MAX_MSG_LEN,
) -> list[str]:
    """格式化更新推送：标题块 + 每个条目一块."""
    head = f"<b>{truncate_escaped(feed_title, max_len - len('<b></b>'))}</b>"

    def format_item(item: FeedItem) -> str:
        title = item.title or feed_title
        # 超长链接也要截断，至少给标题留出省略号的位置
        link = truncate_escaped(
            item.link or feed_link, max_len - len(ELLIPSIS) - 1, escape_url
        )
        # 标题截断后为链接留出空间，保证单个条目不超过限制
        return f"{truncate_escaped(title, max_len - len(link) - 1)}\n{link}"

    return format_and_split_msgs(head, updates, format_item, max_len)


def format_duration(seconds: int) -> str:
    """将秒数转换为可读时长."""
    if seconds >= 86400:
        return f"{seconds // 86400} 天"
    if seconds >= 3600:
        return f"{seconds // 3600} 小时"
    return f"{max(seconds // 60, 1)} 分钟"


def format_dead_feed_notice(
    feed_title: str, feed_link: str, duration: str, error: str
) -> str:
    """Feed 长期拉取失败时发给订阅者的提醒."""
    return (
        f'《<a href="{escape_url(feed_link)}">{escape(feed_title)}</a>》'
        f"已经连续 {duration} 拉取出错 ({escape(error)}), "
        "可能已经关闭, 请取消订阅"
    )
