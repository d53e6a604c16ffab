"""Feed 拉取模块."""

from rsspush.fetcher.feed import (
    FeedDocument,
    FeedHttpStatusError,
    FeedInvalidLinkError,
    FeedItem,
    FeedNetworkError,
    FeedParseError,
    FeedTooLargeError,
    FetchError,
    build_user_agent,
    fetch_feed,
    normalize_link,
)

__all__ = [
    "FeedDocument",
    "FeedHttpStatusError",
    "FeedInvalidLinkError",
    "FeedItem",
    "FeedNetworkError",
    "FeedParseError",
    "FeedTooLargeError",
    "FetchError",
    "build_user_agent",
    "fetch_feed",
    "normalize_link",
]
