"""定时任务定义."""

import logging
from datetime import datetime

from apscheduler.schedulers import SchedulerAlreadyRunningError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from rsspush.config import Settings
from rsspush.core.poller import Poller

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """轮询调度器无法运行."""


_scheduler: AsyncIOScheduler | None = None


async def poll_task(poller: Poller) -> None:
    """轮询任务：拉取所有 Feed 并推送更新."""
    try:
        await poller.run_cycle()
    except Exception as e:
        logger.exception(f"轮询任务失败: {e}")


def create_scheduler(settings: Settings, poller: Poller) -> AsyncIOScheduler:
    """
    创建并启动轮询调度器.

    调度器不等待上一轮结束；最多允许 max_concurrent_cycles 轮同时运行，
    超出时 APScheduler 跳过本次触发。

    Raises:
        SchedulingError: 调度器无法启动
    """
    global _scheduler

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        poll_task,
        "interval",
        seconds=settings.poll_interval_seconds,
        args=[poller],
        id="poll_feeds",
        name="Feed 轮询",
        max_instances=settings.max_concurrent_cycles,
        coalesce=True,
        replace_existing=True,
        # 启动时立即执行一次
        next_run_time=datetime.now(),
    )

    try:
        scheduler.start()
    except (SchedulerAlreadyRunningError, RuntimeError) as e:
        msg = f"轮询调度器启动失败: {e}"
        raise SchedulingError(msg) from e

    _scheduler = scheduler
    logger.info(f"轮询调度器已启动，间隔: {settings.poll_interval_seconds} 秒")
    return scheduler


async def shutdown_scheduler() -> None:
    """关闭轮询调度器."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("轮询调度器已关闭")
        _scheduler = None
