"""应用配置管理."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram 配置
    telegram_bot_token: str = ""
    telegram_api_base: str = "https://api.telegram.org"
    send_timeout_seconds: int = 30

    # 存储配置
    database_url: str = "sqlite+aiosqlite:///./rsspush.db"

    # 轮询配置
    poll_interval_seconds: int = 300
    group_launch_delay_seconds: float = 1.0
    max_concurrent_cycles: int = 2
    # 1440 * 5 分钟 = 5 天
    dead_feed_threshold: int = 1440

    # 拉取配置
    fetch_timeout_seconds: int = 30
    max_feed_size_bytes: int = 2 * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """获取应用配置（带缓存）."""
    return Settings()
