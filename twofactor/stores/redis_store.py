"""Redis 挑战存储

适用于多实例部署。挑战以 JSON 保存，键带 TTL，由 Redis 自动清理。

使用示例:
    import redis

    redis_client = redis.Redis.from_url("redis://localhost:6379/0")
    store = RedisChallengeStore(redis_client, prefix="twofactor:challenge:")
"""

import json
from typing import Any, Optional

from redis.exceptions import RedisError

from twofactor.log import get_logger
from .base import Challenge, ChallengeStore, StoreError

logger = get_logger()


class RedisChallengeStore(ChallengeStore):
    """Redis 挑战存储

    Args:
        redis_client: Redis 客户端实例
        prefix: 键前缀
        grace_seconds: 在挑战 TTL 之外多保留的秒数
    """

    def __init__(
        self,
        redis_client,
        prefix: str = "twofactor:challenge:",
        grace_seconds: int = 60,
    ):
        self._redis = redis_client
        self._prefix = prefix
        self._grace = grace_seconds

    def _key(self, account_id: Any) -> str:
        return f"{self._prefix}{account_id}"

    @staticmethod
    def _decode(data) -> Optional[Challenge]:
        if not data:
            return None
        try:
            if isinstance(data, bytes):
                data = data.decode()
            return Challenge.from_dict(json.loads(data))
        except (ValueError, KeyError, TypeError) as e:
            raise StoreError(f"Corrupt challenge record: {e}") from e

    def put(self, account_id: Any, challenge: Challenge, ttl_seconds: int) -> None:
        ttl = max(int(ttl_seconds), 1) + self._grace
        try:
            self._redis.setex(self._key(account_id), ttl, json.dumps(challenge.to_dict()))
        except RedisError as e:
            raise StoreError(f"Redis write failed: {e}") from e

    def get(self, account_id: Any) -> Optional[Challenge]:
        try:
            data = self._redis.get(self._key(account_id))
        except RedisError as e:
            raise StoreError(f"Redis read failed: {e}") from e
        return self._decode(data)

    def delete(self, account_id: Any) -> bool:
        try:
            return self._redis.delete(self._key(account_id)) > 0
        except RedisError as e:
            raise StoreError(f"Redis delete failed: {e}") from e

    def pop(self, account_id: Any) -> Optional[Challenge]:
        key = self._key(account_id)
        try:
            # MULTI/EXEC 保证 GET 与 DEL 之间没有其他客户端插入
            pipe = self._redis.pipeline(transaction=True)
            pipe.get(key)
            pipe.delete(key)
            data, _ = pipe.execute()
        except RedisError as e:
            raise StoreError(f"Redis pop failed: {e}") from e
        return self._decode(data)
