"""rsspush 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rsspush import __version__
from rsspush.api import feeds, poller, subscriptions
from rsspush.config import get_settings
from rsspush.core.failures import FailureTracker
from rsspush.core.notifier import Notifier
from rsspush.core.poller import Poller
from rsspush.core.store import FeedStore
from rsspush.core.updater import FeedUpdater
from rsspush.fetcher.feed import build_user_agent
from rsspush.models.database import close_db, init_db
from rsspush.scheduler import SchedulingError, create_scheduler, shutdown_scheduler
from rsspush.telegram import TelegramBot, TelegramError

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    settings = get_settings()

    logger.info("正在初始化数据库...")
    session_factory = await init_db(settings.database_url)
    store = FeedStore(session_factory)

    bot = TelegramBot(
        settings.telegram_bot_token,
        base_url=settings.telegram_api_base,
        timeout=settings.send_timeout_seconds,
    )
    try:
        me = await bot.get_me()
        logger.info(f"Bot 已连接: @{me.get('username')}")
    except TelegramError as e:
        logger.warning(f"获取 Bot 信息失败: {e}")
    user_agent = build_user_agent(bot.username)

    notifier = Notifier(bot, store)
    failures = FailureTracker(
        store,
        notifier,
        threshold=settings.dead_feed_threshold,
        poll_interval_seconds=settings.poll_interval_seconds,
    )
    updater = FeedUpdater(
        store,
        notifier,
        failures,
        user_agent,
        max_feed_size=settings.max_feed_size_bytes,
    )
    feed_poller = Poller(
        store,
        updater,
        group_launch_delay=settings.group_launch_delay_seconds,
        fetch_timeout=settings.fetch_timeout_seconds,
    )

    app.state.store = store
    app.state.poller = feed_poller
    app.state.user_agent = user_agent

    logger.info("正在启动轮询...")
    try:
        create_scheduler(settings, feed_poller)
    except SchedulingError:
        # 轮询停止，API 继续提供服务
        logger.exception("轮询调度器不可用")

    logger.info("rsspush 启动完成！")
    yield

    logger.info("正在关闭...")
    await shutdown_scheduler()
    await notifier.wait_background()
    await bot.close()
    await close_db()
    logger.info("rsspush 已关闭")


app = FastAPI(
    title="rsspush",
    description="RSS 订阅推送机器人 - 定时拉取 Feed 并推送到 Telegram",
    version=__version__,
    lifespan=lifespan,
)

# 注册路由
app.include_router(feeds.router)
app.include_router(subscriptions.router)
app.include_router(poller.router)


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "rsspush",
        "version": __version__,
        "description": "RSS 订阅推送机器人",
    }


@app.get("/health")
async def health() -> dict:
    """健康检查."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rsspush.main:app",
        host="0.0.0.0",
        port=8000,
    )
