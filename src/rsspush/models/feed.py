"""Feed 订阅源模型."""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """当前 UTC 时间（带时区）."""
    return datetime.now(UTC)


class Feed(SQLModel, table=True):
    """RSS 订阅源."""

    __tablename__ = "feeds"  # type: ignore[assignment]

    link: str = Field(primary_key=True, description="Feed 地址（唯一）")
    title: str = Field(description="Feed 标题")
    error_count: int = Field(default=0, ge=0, description="连续拉取失败次数")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Subscription(SQLModel, table=True):
    """订阅关系：一个 chat 订阅一个 Feed."""

    __tablename__ = "subscriptions"  # type: ignore[assignment]

    feed_link: str = Field(foreign_key="feeds.link", primary_key=True)
    subscriber_id: int = Field(primary_key=True, index=True, description="Telegram chat id")
    created_at: datetime = Field(default_factory=utcnow)


class SeenItem(SQLModel, table=True):
    """已推送过的条目标识."""

    __tablename__ = "seen_items"  # type: ignore[assignment]

    feed_link: str = Field(foreign_key="feeds.link", primary_key=True)
    item_id: str = Field(primary_key=True, description="条目唯一标识")
    seen_at: datetime = Field(default_factory=utcnow)
