"""rsspush - RSS 订阅推送机器人."""

__version__ = "0.1.0"
