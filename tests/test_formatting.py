"""测试消息格式化与拆分."""

from rsspush.core.formatting import (
    TELEGRAM_MAX_MSG_LEN,
    format_and_split_msgs,
    format_dead_feed_notice,
    format_duration,
    format_updates,
    truncate_escaped,
)
from rsspush.fetcher.feed import FeedItem


class TestTruncate:
    """测试截断函数."""

    def test_short_text_only_escaped(self) -> None:
        """未超长时只做转义."""
        assert truncate_escaped("a < b", 10) == "a &lt; b"

    def test_long_text_gets_ellipsis(self) -> None:
        """超长时截断并追加省略号."""
        result = truncate_escaped("a" * 20, 10)
        assert result == "a" * 7 + "..."

    def test_escaped_length_within_limit(self) -> None:
        """转义后的长度也不超过限制."""
        result = truncate_escaped("&" * 50, 20)
        assert len(result) <= 20
        assert result.startswith("&amp;")
        # 不会截断在实体中间
        assert "&amp" not in result.replace("&amp;", "")


class TestFormatAndSplit:
    """测试 format_and_split_msgs 函数."""

    def test_fits_in_one_message(self) -> None:
        """内容较短时只有一条消息."""
        msgs = format_and_split_msgs("head", ["a", "b"], lambda s: s)
        assert msgs == ["head\na\nb"]

    def test_splits_when_exceeding_limit(self) -> None:
        """超过长度时拆分，条目不跨消息，顺序保持."""
        items = [f"item-{i}-" + "x" * 30 for i in range(10)]
        msgs = format_and_split_msgs("header", items, lambda s: s, max_len=100)

        assert len(msgs) >= 2
        assert all(len(msg) <= 100 for msg in msgs)
        assert msgs[0].startswith("header")
        lines = [line for msg in msgs for line in msg.split("\n")]
        assert lines == ["header", *items]


class TestFormatUpdates:
    """测试 format_updates 函数."""

    def test_header_and_item_blocks(self) -> None:
        """标题块 + 条目块，条目标题和链接转义."""
        updates = [FeedItem(id="3", title="A & B", link="https://example.com/3?a=1&b=2")]
        msgs = format_updates("My <Feed>", "https://example.com/", updates)

        assert msgs == [
            "<b>My &lt;Feed&gt;</b>\nA &amp; B\nhttps://example.com/3?a=1&amp;b=2"
        ]

    def test_falls_back_to_feed_title_and_link(self) -> None:
        """条目缺少标题或链接时使用 Feed 的标题和链接."""
        msgs = format_updates("Feed", "https://example.com/", [FeedItem(id="1")])
        assert msgs == ["<b>Feed</b>\nFeed\nhttps://example.com/"]

    def test_oversized_item_title_is_truncated(self) -> None:
        """单个条目超长时截断标题并保留链接."""
        link = "https://example.com/long"
        updates = [FeedItem(id="1", title="t" * (TELEGRAM_MAX_MSG_LEN * 2), link=link)]
        msgs = format_updates("Feed", "https://example.com/", updates)

        assert len(msgs) == 2
        assert all(len(msg) <= TELEGRAM_MAX_MSG_LEN for msg in msgs)
        assert msgs[1].endswith(f"...\n{link}")

    def test_oversized_item_link_is_truncated(self) -> None:
        """链接本身超长时也截断，消息不超过限制."""
        link = "https://example.com/?q=" + "a&" * 2500
        updates = [FeedItem(id="1", title="Title", link=link)]
        msgs = format_updates("Feed", "https://example.com/", updates)

        assert len(msgs) == 2
        assert all(len(msg) <= TELEGRAM_MAX_MSG_LEN for msg in msgs)
        assert "\nhttps://example.com/?q=a&amp;" in msgs[1]
        assert msgs[1].endswith("...")

    def test_many_items_split_in_order(self) -> None:
        """大量条目拆分为多条消息，每条不超过限制."""
        updates = [
            FeedItem(id=str(i), title=f"title {i} " + "z" * 200, link=f"https://e.com/{i}")
            for i in range(60)
        ]
        msgs = format_updates("Feed", "https://e.com/", updates)

        assert len(msgs) >= 2
        assert all(len(msg) <= TELEGRAM_MAX_MSG_LEN for msg in msgs)
        links = [line for msg in msgs for line in msg.split("\n") if line.startswith("https://")]
        assert links == [f"https://e.com/{i}" for i in range(60)]


class TestDeadFeedNotice:
    """测试失效提醒."""

    def test_duration(self) -> None:
        """时长转换为天/小时/分钟."""
        assert format_duration(1440 * 300) == "5 天"
        assert format_duration(7200) == "2 小时"
        assert format_duration(30) == "1 分钟"

    def test_notice_contains_link_title_and_error(self) -> None:
        """提醒包含链接、转义后的标题和错误描述."""
        msg = format_dead_feed_notice("A & B", "https://e.com/feed", "5 天", "网络错误")
        assert '<a href="https://e.com/feed">A &amp; B</a>' in msg
        assert "已经连续 5 天 拉取出错 (网络错误), 可能已经关闭, 请取消订阅" in msg
