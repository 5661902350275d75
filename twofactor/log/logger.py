"""
日志工具模块
提供简化的日志配置功能
"""

import inspect
import logging
import logging.handlers
import os
import time
from typing import Any, Optional


# 默认日志格式
DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"


class MicrosecondFormatter(logging.Formatter):
    """支持微秒精度的日志格式化器"""

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        if datefmt:
            s = time.strftime(datefmt, ct)
        else:
            s = time.strftime("%Y-%m-%d %H:%M:%S", ct)
        # 添加微秒部分（6位数）
        return "%s.%06d" % (s, (record.created - int(record.created)) * 1000000)


def create_formatter(
    log_format: str = None,
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    use_microseconds: bool = True
) -> logging.Formatter:
    """创建日志格式化器

    Args:
        log_format: 日志格式字符串
        datefmt: 时间格式
        use_microseconds: 是否使用微秒精度

    Returns:
        日志格式化器
    """
    fmt = log_format or DEFAULT_LOG_FORMAT
    if use_microseconds:
        return MicrosecondFormatter(fmt=fmt, datefmt=datefmt)
    return logging.Formatter(fmt, datefmt=datefmt)


def setup_logger(
    name: str = None,
    level: str = "INFO",
    log_file: str = None,
    log_format: str = None,
    console: bool = True,
    use_microseconds: bool = True,
    propagate: bool = True,
    max_bytes: int = 0,
    backup_count: int = 5,
    encoding: str = "utf-8",
) -> logging.Logger:
    """设置并返回配置好的日志记录器

    Args:
        name: 日志记录器名称，默认为root logger
        level: 日志级别，可选：DEBUG, INFO, WARNING, ERROR, CRITICAL
        log_file: 日志文件路径，如果不指定则不写入文件
        log_format: 日志格式，如果不指定则使用默认格式
        console: 是否输出到控制台
        use_microseconds: 是否使用微秒精度时间戳
        propagate: 是否传播到父日志器
        max_bytes: 单个日志文件最大字节数，大于 0 时按大小轮转
        backup_count: 轮转保留的备份数量
        encoding: 文件编码

    Returns:
        配置好的日志记录器

    使用示例:
        from twofactor.log import setup_logger

        # 创建简单日志记录器
        logger = setup_logger("twofactor", level="DEBUG")

        # 创建按大小轮转的文件日志
        logger = setup_logger(
            "twofactor",
            log_file="logs/twofactor.log",
            max_bytes=10 * 1024 * 1024,
            backup_count=5,
        )
    """
    # 获取或创建日志记录器
    _logger = logging.getLogger(name) if name else logging.getLogger()
    _logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _logger.propagate = propagate

    # 清除现有的处理器
    _logger.handlers.clear()

    formatter = create_formatter(log_format, use_microseconds=use_microseconds)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        _logger.addHandler(console_handler)

    if log_file:
        # 确保日志目录存在
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        if max_bytes > 0:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding=encoding,
            )
        else:
            file_handler = logging.FileHandler(log_file, encoding=encoding)

        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    return _logger


def setup_root_logger(config: Any = None, **kwargs) -> logging.Logger:
    """按配置对象设置 twofactor 根日志器

    Args:
        config: LoggingSettings 实例（或具有相同属性的对象）
        **kwargs: 直接传给 setup_logger 的参数，优先级高于 config

    Returns:
        "twofactor" 日志记录器

    使用示例:
        settings = load_yaml_config("config/settings.yaml", AppSettings)
        setup_root_logger(settings.logging)
    """
    options = {}
    if config is not None:
        options = {
            "level": getattr(config, "level", "INFO"),
            "log_file": getattr(config, "file_path", None) or None,
            "console": getattr(config, "enable_console", True),
            "max_bytes": getattr(config, "max_bytes", 0),
            "backup_count": getattr(config, "backup_count", 5),
        }
    options.update(kwargs)
    return setup_logger(name="twofactor", propagate=False, **options)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """获取日志记录器，支持自动推断模块名

    无参数调用时，自动从调用栈获取模块的 __name__ 作为日志器名称。
    简写名称（不含点号）自动添加 'twofactor.' 前缀。

    使用示例:
        logger = get_logger()               # 在 twofactor/challenge.py 中 -> "twofactor.challenge"
        logger = get_logger("api")          # -> "twofactor.api"
        logger = get_logger("uvicorn.error")  # -> "uvicorn.error"（含点号不添加前缀）
    """
    if name is None:
        frame = inspect.currentframe()
        if frame is not None and frame.f_back is not None:
            name = frame.f_back.f_globals.get('__name__', 'twofactor')
        else:
            name = 'twofactor'
    elif name != 'twofactor' and '.' not in name:
        name = f"twofactor.{name}"

    return logging.getLogger(name)


# 通用日志记录器
logger = logging.getLogger("twofactor")
