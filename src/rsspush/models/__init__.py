"""数据模型."""

from rsspush.models.database import close_db, init_db
from rsspush.models.feed import Feed, SeenItem, Subscription

__all__ = [
    "Feed",
    "SeenItem",
    "Subscription",
    "close_db",
    "init_db",
]
