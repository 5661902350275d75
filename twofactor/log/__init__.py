"""日志模块

提供日志配置与敏感数据过滤：

使用示例:
    from twofactor.log import setup_logger, get_logger, log_filter_hook_manager

    setup_logger("twofactor", level="DEBUG", log_file="logs/twofactor.log")

    logger = get_logger()
    logger.info(f"挑战已签发: {log_filter_hook_manager.apply_filters(data)}")
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    logger,
    get_logger,
)

from .filter_hooks import (
    LogFilterHook,
    SensitiveDataFilterHook,
    LogFilterHookManager,
    log_filter_hook_manager,
    DEFAULT_SENSITIVE_PATTERNS,
    FILTERED_PLACEHOLDER,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "logger",
    "get_logger",

    "LogFilterHook",
    "SensitiveDataFilterHook",
    "LogFilterHookManager",
    "log_filter_hook_manager",
    "DEFAULT_SENSITIVE_PATTERNS",
    "FILTERED_PLACEHOLDER",
]
