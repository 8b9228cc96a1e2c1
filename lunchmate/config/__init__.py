import os

from .settings import Settings, settings
from .environments.development import DevelopmentSettings, TestingSettings

_ENVIRONMENTS = {
    "development": DevelopmentSettings,
    "testing": TestingSettings,
}


def get_settings(environment: str = None) -> Settings:
    """按运行环境构造配置；未知环境返回默认生产配置"""
    env = (environment or os.getenv("LUNCHMATE_ENV", "")).strip().lower()
    settings_cls = _ENVIRONMENTS.get(env)
    if settings_cls is None:
        return settings
    return settings_cls()


__all__ = ["settings", "Settings", "get_settings", "DevelopmentSettings", "TestingSettings"]
