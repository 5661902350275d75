"""日志过滤钩子模块

在把挑战令牌、验证码等写入日志之前对其打码，用于：
- 过滤敏感数据（nonce、验证码、TOTP 密钥等）
- 自定义日志过滤规则

使用示例:
    from twofactor.log import log_filter_hook_manager

    # 使用默认配置（已自动注册敏感数据过滤器）
    safe = log_filter_hook_manager.apply_filters({"account_id": 1, "nonce": "abc"})
    # {"account_id": 1, "nonce": "*SENSITIVE DATA FILTERED*"}
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List
import re

# 默认敏感字段名模式
DEFAULT_SENSITIVE_PATTERNS = [
    r'.*(password|pwd|passwd).*',
    r'.*(token|nonce).*',
    r'.*(secret|key).*',
    r'.*(code|proof|otp).*',
    r'.*(credential|credentials).*',
]

FILTERED_PLACEHOLDER = "*SENSITIVE DATA FILTERED*"


class LogFilterHook(ABC):
    """日志过滤钩子抽象基类

    继承此类可以自定义日志过滤逻辑。
    """

    @abstractmethod
    def should_apply(self, log_data: Dict[str, Any]) -> bool:
        """判断是否应该应用此过滤器"""
        pass

    @abstractmethod
    def filter(self, log_data: Dict[str, Any]) -> Dict[str, Any]:
        """过滤日志数据"""
        pass


class SensitiveDataFilterHook(LogFilterHook):
    """敏感数据过滤器

    根据字段名模式将敏感字段的值替换为占位符，支持嵌套字典和列表。

    Args:
        sensitive_patterns: 敏感字段名模式列表（正则表达式）
    """

    def __init__(self, sensitive_patterns: List[str] = None):
        self.sensitive_patterns = sensitive_patterns if sensitive_patterns is not None else DEFAULT_SENSITIVE_PATTERNS

        # 编译正则表达式以提高性能
        self.compiled_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self.sensitive_patterns
        ]

    def should_apply(self, log_data: Dict[str, Any]) -> bool:
        return True

    def filter(self, log_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._filter_dict(log_data)

    def _is_sensitive(self, key: str) -> bool:
        return any(pattern.search(key) for pattern in self.compiled_patterns)

    def _filter_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        filtered_data = {}
        for key, value in data.items():
            if isinstance(key, str) and self._is_sensitive(key):
                filtered_data[key] = FILTERED_PLACEHOLDER
            elif isinstance(value, dict):
                filtered_data[key] = self._filter_dict(value)
            elif isinstance(value, list):
                filtered_data[key] = self._filter_list(value)
            else:
                filtered_data[key] = value
        return filtered_data

    def _filter_list(self, data: List[Any]) -> List[Any]:
        filtered_data = []
        for item in data:
            if isinstance(item, dict):
                filtered_data.append(self._filter_dict(item))
            elif isinstance(item, list):
                filtered_data.append(self._filter_list(item))
            else:
                filtered_data.append(item)
        return filtered_data


class LogFilterHookManager:
    """日志过滤钩子管理器

    单例模式，管理所有已注册的日志过滤钩子。
    """

    _instance = None
    _hooks: List[LogFilterHook] = []

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(LogFilterHookManager, cls).__new__(cls)
            cls._hooks = []
        return cls._instance

    @classmethod
    def register_hook(cls, hook: LogFilterHook):
        cls._hooks.append(hook)

    @classmethod
    def unregister_hook(cls, hook: LogFilterHook):
        if hook in cls._hooks:
            cls._hooks.remove(hook)

    @classmethod
    def clear_hooks(cls):
        cls._hooks.clear()

    @classmethod
    def get_hooks(cls) -> List[LogFilterHook]:
        return list(cls._hooks)

    @classmethod
    def apply_filters(cls, log_data: Dict[str, Any]) -> Dict[str, Any]:
        """按注册顺序应用所有过滤器

        Args:
            log_data: 原始日志数据

        Returns:
            过滤后的日志数据（原对象不被修改）
        """
        filtered = dict(log_data)
        for hook in cls._hooks:
            if hook.should_apply(filtered):
                filtered = hook.filter(filtered)
        return filtered


# 全局管理器实例，默认注册敏感数据过滤器
log_filter_hook_manager = LogFilterHookManager()
log_filter_hook_manager.register_hook(SensitiveDataFilterHook())
