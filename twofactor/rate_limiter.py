"""二次验证失败频率限制器

按账户统计第二步验证失败次数，连续失败达到阈值后临时封锁该账户的第二步提交。
作为登录事件监听器接入，策略本身不属于挑战协议。

使用示例::

    from twofactor.rate_limiter import LoginRateLimiter

    limiter = LoginRateLimiter(max_attempts=5, block_minutes=15)

    # 传给 TwoStepLogin 时自动订阅登录事件
    login = TwoStepLogin(..., rate_limiter=limiter)

    # 或手动订阅
    dispatcher.add_listener(LoginEventKind.MFA_FAILED, limiter.as_listener())

    # 独立使用
    was_blocked, remaining = limiter.record_failure("42")
    limiter.reset("42")  # 验证成功时重置
"""

import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Tuple

from twofactor.events import LoginEvent, LoginEventKind
from twofactor.log import get_logger

logger = get_logger()


class LoginRateLimiter:
    """基于账户的失败频率限制器

    线程安全的内存实现，适合单实例部署。

    Args:
        max_attempts: 时间窗口内最大失败次数（默认 5）
        block_minutes: 封锁时长（分钟，默认 15）
        window_minutes: 失败计数的时间窗口（分钟，默认等于 block_minutes）
        clock: 返回当前时间的函数
    """

    def __init__(
        self,
        max_attempts: int = 5,
        block_minutes: int = 15,
        window_minutes: int = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.max_attempts = max_attempts
        self.block_minutes = block_minutes
        self.window_minutes = window_minutes or block_minutes
        self._clock = clock

        # key -> {"count": int, "window_start": datetime}
        self._attempts: dict = {}
        # key -> blocked_until
        self._blocked: dict = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(account_id: Any) -> str:
        return str(account_id)

    def is_blocked(self, account_id: Any) -> bool:
        """检查账户是否被封锁"""
        key = self._key(account_id)
        with self._lock:
            blocked_until = self._blocked.get(key)
            if blocked_until is None:
                return False

            if self._clock() >= blocked_until:
                # 封锁已过期，自动解除
                del self._blocked[key]
                self._attempts.pop(key, None)
                return False

            return True

    def get_block_remaining_seconds(self, account_id: Any) -> int:
        """封锁剩余秒数，未封锁返回 0"""
        with self._lock:
            blocked_until = self._blocked.get(self._key(account_id))
            if blocked_until is None:
                return 0
            remaining = (blocked_until - self._clock()).total_seconds()
            return max(0, int(remaining))

    def get_remaining_attempts(self, account_id: Any) -> int:
        """剩余尝试次数"""
        key = self._key(account_id)
        with self._lock:
            if key in self._blocked:
                return 0

            entry = self._attempts.get(key)
            if entry is None:
                return self.max_attempts

            if self._clock() - entry["window_start"] > timedelta(minutes=self.window_minutes):
                return self.max_attempts

            return max(0, self.max_attempts - entry["count"])

    def record_failure(self, account_id: Any) -> Tuple[bool, int]:
        """记录一次失败

        Returns:
            (是否触发封锁, 剩余尝试次数)
        """
        key = self._key(account_id)
        with self._lock:
            now = self._clock()

            if key in self._blocked:
                if now < self._blocked[key]:
                    return True, 0
                del self._blocked[key]

            entry = self._attempts.get(key)

            # 新账户或时间窗口已过期，重新计数
            if entry is None or (now - entry["window_start"]) > timedelta(minutes=self.window_minutes):
                entry = {"count": 0, "window_start": now}
                self._attempts[key] = entry

            entry["count"] += 1
            remaining = self.max_attempts - entry["count"]

            if remaining <= 0:
                self._blocked[key] = now + timedelta(minutes=self.block_minutes)
                logger.warning(
                    f"Account {key} blocked for second step: "
                    f"{entry['count']} failures, {self.block_minutes} minutes"
                )
                return True, 0

            return False, remaining

    def reset(self, account_id: Any) -> None:
        """验证成功时重置失败计数（已封锁的账户需等待过期）"""
        with self._lock:
            self._attempts.pop(self._key(account_id), None)

    def unblock(self, account_id: Any) -> bool:
        """手动解除封锁（管理员操作）"""
        key = self._key(account_id)
        with self._lock:
            was_blocked = key in self._blocked
            self._blocked.pop(key, None)
            self._attempts.pop(key, None)
            if was_blocked:
                logger.info(f"Account {key} unblocked manually")
            return was_blocked

    def cleanup(self) -> int:
        """清理过期记录

        Returns:
            清理的记录数
        """
        with self._lock:
            now = self._clock()
            cleaned = 0

            for key in [k for k, until in self._blocked.items() if now >= until]:
                del self._blocked[key]
                cleaned += 1

            expired_attempts = [
                k for k, entry in self._attempts.items()
                if (now - entry["window_start"]) > timedelta(minutes=self.window_minutes)
                and k not in self._blocked
            ]
            for key in expired_attempts:
                del self._attempts[key]
                cleaned += 1

            return cleaned

    def handle_event(self, event: LoginEvent) -> None:
        """登录事件监听入口"""
        if event.kind == LoginEventKind.MFA_FAILED:
            self.record_failure(event.account_id)
        elif event.kind == LoginEventKind.MFA_SUCCEEDED:
            self.reset(event.account_id)

    def as_listener(self) -> Callable[[LoginEvent], None]:
        return self.handle_event
