"""挑战存储抽象

每个账户最多保存一条挑战记录，写入即覆盖。
校验时通过 pop 原子地读取并删除，保证同一挑战只能被消费一次。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


class StoreError(Exception):
    """存储后端不可用或读写失败"""
    pass


@dataclass(frozen=True)
class Challenge:
    """登录挑战

    Attributes:
        token: 随机令牌（嵌入表单，提交时回传）
        expires_at: 过期时间（带时区）
    """
    token: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """到期时刻之后才算过期"""
        return now > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Challenge":
        return cls(
            token=data["token"],
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )

    def __repr__(self) -> str:
        # 不输出令牌
        return f"Challenge(expires_at={self.expires_at.isoformat()})"


class ChallengeStore(ABC):
    """挑战存储抽象基类

    所有方法失败时抛出 StoreError。
    """

    @abstractmethod
    def put(self, account_id: Any, challenge: Challenge, ttl_seconds: int) -> None:
        """保存挑战（覆盖该账户已有的挑战）

        Args:
            account_id: 账户 ID
            challenge: 挑战
            ttl_seconds: 后端自动清理的时长（秒），过期判定仍以 expires_at 为准
        """
        pass

    @abstractmethod
    def get(self, account_id: Any) -> Optional[Challenge]:
        """读取挑战，不存在返回 None"""
        pass

    @abstractmethod
    def delete(self, account_id: Any) -> bool:
        """删除挑战

        Returns:
            是否确实删除了记录
        """
        pass

    @abstractmethod
    def pop(self, account_id: Any) -> Optional[Challenge]:
        """原子地读取并删除挑战

        并发调用时至多一个调用者拿到记录。
        """
        pass
