"""
配置模块
提供二次验证库的默认配置，业务项目可以继承并覆盖
"""

from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class ChallengeSettings(BaseSettings):
    """登录挑战配置

    使用示例:
        from twofactor.config import ChallengeSettings

        challenge_config = ChallengeSettings(
            ttl_seconds=3600,
            token_bytes=32,
            store="redis",
        )

    配置说明:
        - ttl_seconds: 挑战有效期，从签发时刻起计算，服务端强制校验
        - token_bytes: 随机令牌的字节数，至少 16 字节（128 位熵）
        - store: 挑战存储后端，memory / redis / database
    """
    ttl_seconds: int = Field(default=3600, gt=0, description="挑战有效期（秒）")
    token_bytes: int = Field(default=32, description="挑战令牌随机字节数")
    store: Literal["memory", "redis", "database"] = Field(default="memory", description="挑战存储后端")
    key_prefix: str = Field(default="twofactor:challenge:", description="Redis 键前缀")

    @field_validator("token_bytes")
    @classmethod
    def _check_entropy(cls, value: int) -> int:
        if value < 16:
            raise ValueError("token_bytes 至少为 16（128 位熵）")
        return value

    class Config:
        env_prefix = "TWOFACTOR_CHALLENGE_"


class TOTPSettings(BaseSettings):
    """TOTP 配置"""
    issuer: str = Field(default="TwoFactor", description="发行者名称（显示在 Authenticator 中）")
    digits: int = Field(default=6, description="验证码位数")
    time_step: int = Field(default=30, description="时间步长（秒）")
    window: int = Field(default=1, description="验证时允许前后偏移的时间步数")

    class Config:
        env_prefix = "TWOFACTOR_TOTP_"


class EmailCodeSettings(BaseSettings):
    """邮件验证码配置"""
    code_length: int = Field(default=8, description="验证码长度")
    expire_minutes: int = Field(default=15, description="验证码有效期（分钟）")

    class Config:
        env_prefix = "TWOFACTOR_EMAIL_"


class RateLimitSettings(BaseSettings):
    """二次验证失败频率限制配置

    频率限制默认关闭，启用后同一账户在时间窗口内连续失败
    max_attempts 次会被封锁 block_minutes 分钟。
    """
    enabled: bool = Field(default=False, description="是否启用账户级频率限制")
    max_attempts: int = Field(default=5, description="时间窗口内最大失败次数")
    block_minutes: int = Field(default=15, description="封锁时长（分钟）")
    window_minutes: int = Field(default=15, description="失败计数时间窗口（分钟）")

    class Config:
        env_prefix = "TWOFACTOR_RATELIMIT_"


class RedisSettings(BaseSettings):
    """Redis 配置"""
    url: str = Field(default="", description="Redis连接URL")

    class Config:
        env_prefix = "TWOFACTOR_REDIS_"


class DatabaseSettings(BaseSettings):
    """数据库配置"""
    url: str = Field(default="", description="数据库连接URL")
    echo: bool = Field(default=False, description="是否打印SQL语句")

    class Config:
        env_prefix = "TWOFACTOR_DB_"


class LoggingSettings(BaseSettings):
    """日志配置

    使用示例:
        from twofactor.config import LoggingSettings

        log_config = LoggingSettings(level="DEBUG", file_path="logs/twofactor.log")
    """
    level: str = Field(default="INFO", description="日志级别")
    file_path: str = Field(default="", description="日志文件路径，为空则不写文件")
    max_bytes: int = Field(default=10 * 1024 * 1024, description="单个日志文件最大字节数，0 表示不轮转")
    backup_count: int = Field(default=5, description="轮转保留的备份数量")
    enable_console: bool = Field(default=True, description="是否启用控制台输出")

    class Config:
        env_prefix = "TWOFACTOR_LOG_"


class AppSettings(BaseSettings):
    """应用基础配置

    将各子配置类聚合为嵌套结构，支持 YAML 配置文件和环境变量两种方式。

    配置优先级（从高到低）:
        YAML 配置文件 > 环境变量 > 代码中的默认值

    内置子配置及环境变量前缀:
        - challenge:  ChallengeSettings  (TWOFACTOR_CHALLENGE_)
        - totp:       TOTPSettings       (TWOFACTOR_TOTP_)
        - email:      EmailCodeSettings  (TWOFACTOR_EMAIL_)
        - rate_limit: RateLimitSettings  (TWOFACTOR_RATELIMIT_)
        - redis:      RedisSettings      (TWOFACTOR_REDIS_)
        - database:   DatabaseSettings   (TWOFACTOR_DB_)
        - logging:    LoggingSettings    (TWOFACTOR_LOG_)

    YAML 配置示例 (config/settings.yaml):
        providers: ["email", "totp", "fido_u2f"]
        challenge:
          ttl_seconds: 3600
          store: "redis"
        redis:
          url: "redis://localhost:6379/0"
        logging:
          level: "INFO"
    """
    providers: List[str] = Field(
        default_factory=lambda: ["email", "totp", "fido_u2f"],
        description="启用的二次验证方式，按注册顺序排列",
    )
    challenge: ChallengeSettings = ChallengeSettings()
    totp: TOTPSettings = TOTPSettings()
    email: EmailCodeSettings = EmailCodeSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    redis: RedisSettings = RedisSettings()
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()

    class Config:
        env_prefix = "TWOFACTOR_"
