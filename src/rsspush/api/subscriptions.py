"""订阅管理 API."""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from rsspush.api.deps import get_http_client, get_store, get_user_agent
from rsspush.api.feeds import feed_to_dict
from rsspush.config import get_settings
from rsspush.core.store import AlreadySubscribedError, FeedStore, NotSubscribedError
from rsspush.fetcher.feed import (
    FeedInvalidLinkError,
    FetchError,
    fetch_feed,
    normalize_link,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


class SubscribeRequest(BaseModel):
    """订阅请求."""

    subscriber_id: int
    link: str


@router.get("/{subscriber_id}")
async def list_subscriptions(
    subscriber_id: int,
    store: FeedStore = Depends(get_store),
) -> dict:
    """获取某个 chat 的订阅列表."""
    feeds = await store.get_subscribed_feeds(subscriber_id)
    return {
        "subscriber_id": subscriber_id,
        "total": len(feeds),
        "feeds": [feed_to_dict(feed) for feed in feeds],
    }


@router.post("", status_code=201)
async def subscribe(
    request: SubscribeRequest,
    store: FeedStore = Depends(get_store),
    client: httpx.AsyncClient = Depends(get_http_client),
    user_agent: str = Depends(get_user_agent),
) -> dict:
    """拉取 Feed 并订阅（以实际地址为准）."""
    link = normalize_link(request.link)
    try:
        document = await fetch_feed(
            client, user_agent, link, max_size=get_settings().max_feed_size_bytes
        )
    except FeedInvalidLinkError as e:
        raise HTTPException(status_code=400, detail=f"订阅失败: {e.describe()}") from e
    except FetchError as e:
        logger.info(f"订阅时拉取失败: {link} - {e}")
        raise HTTPException(status_code=502, detail=f"订阅失败: {e.describe()}") from e

    try:
        feed = await store.subscribe(request.subscriber_id, document.source, document)
    except AlreadySubscribedError as e:
        raise HTTPException(status_code=409, detail="已订阅过的 Feed") from e

    logger.info(f"{request.subscriber_id} 订阅了 {feed.link}")
    return feed_to_dict(feed)


@router.delete("/{subscriber_id}")
async def unsubscribe(
    subscriber_id: int,
    link: str = Query(..., description="Feed 地址"),
    store: FeedStore = Depends(get_store),
) -> dict:
    """取消订阅."""
    try:
        feed = await store.unsubscribe(subscriber_id, link)
    except NotSubscribedError as e:
        raise HTTPException(status_code=404, detail="未订阅过的 Feed") from e

    logger.info(f"{subscriber_id} 退订了 {link}")
    return feed_to_dict(feed)
