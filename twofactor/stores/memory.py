"""内存挑战存储"""

import threading
from typing import Any, Dict, Optional

from .base import Challenge, ChallengeStore


class InMemoryChallengeStore(ChallengeStore):
    """内存挑战存储

    适用于单实例部署和测试，重启后数据丢失。
    过期记录不会主动清理，校验时按 expires_at 判定。

    使用示例:
        store = InMemoryChallengeStore()
    """

    def __init__(self):
        self._challenges: Dict[Any, Challenge] = {}
        self._lock = threading.Lock()

    def put(self, account_id: Any, challenge: Challenge, ttl_seconds: int) -> None:
        with self._lock:
            self._challenges[account_id] = challenge

    def get(self, account_id: Any) -> Optional[Challenge]:
        with self._lock:
            return self._challenges.get(account_id)

    def delete(self, account_id: Any) -> bool:
        with self._lock:
            return self._challenges.pop(account_id, None) is not None

    def pop(self, account_id: Any) -> Optional[Challenge]:
        with self._lock:
            return self._challenges.pop(account_id, None)

    def __len__(self) -> int:
        return len(self._challenges)
