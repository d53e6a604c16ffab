"""API 依赖."""

from collections.abc import AsyncGenerator

import httpx
from fastapi import Request

from rsspush.config import Settings, get_settings
from rsspush.core.poller import Poller
from rsspush.core.store import FeedStore


def get_store(request: Request) -> FeedStore:
    """获取共享的 FeedStore."""
    store: FeedStore = request.app.state.store
    return store


def get_poller(request: Request) -> Poller:
    """获取共享的 Poller."""
    poller: Poller = request.app.state.poller
    return poller


def get_user_agent(request: Request) -> str:
    """获取拉取使用的 User-Agent."""
    user_agent: str = request.app.state.user_agent
    return user_agent


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """订阅时拉取 Feed 使用的 HTTP 客户端."""
    settings: Settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.fetch_timeout_seconds) as client:
        yield client
