"""核心业务逻辑."""

from rsspush.core.failures import FailureTracker
from rsspush.core.notifier import Notifier
from rsspush.core.poller import PollStats, Poller
from rsspush.core.store import FeedSnapshot, FeedStore
from rsspush.core.updater import FeedUpdater, FeedUpdateResult

__all__ = [
    "FailureTracker",
    "FeedSnapshot",
    "FeedStore",
    "FeedUpdateResult",
    "FeedUpdater",
    "Notifier",
    "PollStats",
    "Poller",
]
