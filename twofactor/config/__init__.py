"""配置模块

快速开始:
    from twofactor.config import AppSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)

配置优先级: YAML 文件 > 环境变量 > 默认值（YAML 中未出现的配置段才读取环境变量）
"""

from .settings import (
    AppSettings,
    ChallengeSettings,
    TOTPSettings,
    EmailCodeSettings,
    RateLimitSettings,
    RedisSettings,
    DatabaseSettings,
    LoggingSettings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "ChallengeSettings",
    "TOTPSettings",
    "EmailCodeSettings",
    "RateLimitSettings",
    "RedisSettings",
    "DatabaseSettings",
    "LoggingSettings",

    "ConfigLoader",
    "load_yaml_config",
]
