"""Feed 订阅源 API."""

from fastapi import APIRouter, Depends, HTTPException

from rsspush.api.deps import get_store
from rsspush.core.store import FeedSnapshot, FeedStore

router = APIRouter(prefix="/api/feeds", tags=["feeds"])


def feed_to_dict(feed: FeedSnapshot) -> dict:
    """序列化 Feed 快照."""
    return {
        "link": feed.link,
        "title": feed.title,
        "error_count": feed.error_count,
        "subscriber_count": len(feed.subscribers),
    }


@router.get("")
async def list_feeds(store: FeedStore = Depends(get_store)) -> dict:
    """获取所有 Feed."""
    feeds = await store.get_all_feeds()
    return {
        "total": len(feeds),
        "feeds": [feed_to_dict(feed) for feed in feeds],
    }


@router.get("/{link:path}")
async def get_feed(link: str, store: FeedStore = Depends(get_store)) -> dict:
    """获取 Feed 详情."""
    feed = await store.get_feed(link)
    if not feed:
        raise HTTPException(status_code=404, detail="Feed 不存在")

    return {
        **feed_to_dict(feed),
        "subscribers": list(feed.subscribers),
    }
