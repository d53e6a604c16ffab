"""定时任务."""

from rsspush.scheduler.tasks import (
    SchedulingError,
    create_scheduler,
    poll_task,
    shutdown_scheduler,
)

__all__ = [
    "SchedulingError",
    "create_scheduler",
    "poll_task",
    "shutdown_scheduler",
]
