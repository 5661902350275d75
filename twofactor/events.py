"""登录事件

第二步验证失败或成功时发出事件，供外部频率限制、审计等使用。

使用示例:
    dispatcher = LoginEventDispatcher()

    @dispatcher.on_mfa_failed
    def audit(event: LoginEvent):
        print(f"账户 {event.account_id} 二次验证失败: {event.reason}")
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from twofactor.log import get_logger

logger = get_logger()


class LoginEventKind(str, Enum):
    """登录事件类型"""
    MFA_FAILED = "mfa_failed"
    MFA_SUCCEEDED = "mfa_succeeded"


@dataclass
class LoginEvent:
    """登录事件

    Attributes:
        kind: 事件类型
        account_id: 账户 ID
        reason: 失败原因（错误代码）
        provider: 首选验证方式标识
        occurred_at: 发生时间
    """
    kind: LoginEventKind
    account_id: Any
    reason: Optional[str] = None
    provider: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


LoginEventListener = Callable[[LoginEvent], None]


class LoginEventDispatcher:
    """登录事件分发器

    监听器抛出的异常只记录日志，不影响登录流程。
    """

    def __init__(self):
        self._listeners: Dict[LoginEventKind, List[LoginEventListener]] = {
            LoginEventKind.MFA_FAILED: [],
            LoginEventKind.MFA_SUCCEEDED: [],
        }

    def add_listener(self, kind: LoginEventKind, listener: LoginEventListener) -> LoginEventListener:
        self._listeners[kind].append(listener)
        return listener

    def remove_listener(self, kind: LoginEventKind, listener: LoginEventListener) -> None:
        if listener in self._listeners[kind]:
            self._listeners[kind].remove(listener)

    def on_mfa_failed(self, func: LoginEventListener) -> LoginEventListener:
        """注册第二步验证失败监听器"""
        return self.add_listener(LoginEventKind.MFA_FAILED, func)

    def on_mfa_succeeded(self, func: LoginEventListener) -> LoginEventListener:
        """注册第二步验证成功监听器"""
        return self.add_listener(LoginEventKind.MFA_SUCCEEDED, func)

    def emit(self, event: LoginEvent) -> None:
        """触发事件"""
        for listener in list(self._listeners.get(event.kind, [])):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error in login event listener: {e}")
