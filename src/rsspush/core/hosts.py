"""按 host 对 Feed 分组，避免同时向同一站点发起多个请求."""

import re
from collections.abc import Iterable

from rsspush.core.store import FeedSnapshot

HOST_RE = re.compile(r"^(?:https?://)?([^/?#]+)", re.IGNORECASE)


def get_host(link: str) -> str:
    """提取链接中的 host（scheme 可选），小写并去掉用户信息和端口."""
    match = HOST_RE.match(link.strip())
    if not match:
        return link
    host = match.group(1).rsplit("@", 1)[-1]
    # IPv6 地址带方括号，端口在括号之后
    if host.startswith("["):
        host = host.split("]", 1)[0] + "]"
    else:
        host = host.split(":", 1)[0]
    return host.lower()


def group_by_host(feeds: Iterable[FeedSnapshot]) -> list[list[FeedSnapshot]]:
    """按 host 分组，分组顺序与组内顺序均保持输入顺序."""
    groups: dict[str, list[FeedSnapshot]] = {}
    for feed in feeds:
        groups.setdefault(get_host(feed.link), []).append(feed)
    return list(groups.values())
