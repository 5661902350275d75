"""挑战存储后端

- InMemoryChallengeStore: 单实例/测试
- RedisChallengeStore: 多实例部署
- SQLAlchemyChallengeStore: 关系数据库
"""

from .base import Challenge, ChallengeStore, StoreError
from .memory import InMemoryChallengeStore
from .redis_store import RedisChallengeStore
from .database import SQLAlchemyChallengeStore, TwoFactorChallengeRecord, ChallengeBase

__all__ = [
    "Challenge",
    "ChallengeStore",
    "StoreError",
    "InMemoryChallengeStore",
    "RedisChallengeStore",
    "SQLAlchemyChallengeStore",
    "TwoFactorChallengeRecord",
    "ChallengeBase",
]
