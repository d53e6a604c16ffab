"""轮询状态 API."""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends

from rsspush.api.deps import get_poller
from rsspush.core.poller import Poller
from rsspush.scheduler.tasks import poll_task

router = APIRouter(prefix="/api/poller", tags=["poller"])


@router.get("/status")
async def get_status(poller: Poller = Depends(get_poller)) -> dict[str, Any]:
    """获取轮询统计."""
    stats = poller.stats
    return {
        "cycles_started": stats.cycles_started,
        "cycles_completed": stats.cycles_completed,
        "last_started_at": stats.last_started_at.isoformat()
        if stats.last_started_at
        else None,
        "last_completed_at": stats.last_completed_at.isoformat()
        if stats.last_completed_at
        else None,
        "in_flight": len(poller.in_flight),
        "updates_delivered": stats.updates_delivered,
        "no_updates": stats.no_updates,
        "handled_failures": stats.handled_failures,
        "skipped": stats.skipped,
        "aborted_groups": stats.aborted_groups,
    }


@router.post("/run", status_code=202)
async def run_now(
    background_tasks: BackgroundTasks,
    poller: Poller = Depends(get_poller),
) -> dict[str, str]:
    """立即触发一轮轮询（后台执行）."""
    background_tasks.add_task(poll_task, poller)
    return {"status": "scheduled"}
