"""登录挑战协调器

主凭证校验通过后，为启用了二次验证的账户签发一次性挑战令牌；
用户回传令牌和验证码时，先校验挑战，再交给首选验证方式校验验证码。

状态流转:
    NO_CHALLENGE  账户未启用二次验证，直接完成登录
    PENDING       已签发挑战，等待提交
    VERIFIED      校验通过（终态）
    REJECTED      账户不存在或挑战缺失、无效、过期（终态，需重新走主凭证登录）；
                  仅验证码错误会重新签发挑战回到 PENDING

使用示例:
    coordinator = ChallengeCoordinator(registry, InMemoryChallengeStore())

    if coordinator.requires_challenge(account):
        token = coordinator.begin(account)
        ...
    coordinator.verify(account, token, "123456")
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from twofactor.accounts import Account
from twofactor.exceptions import Err
from twofactor.log import get_logger
from twofactor.registry import ProviderRegistry
from twofactor.stores.base import Challenge, ChallengeStore, StoreError

logger = get_logger()

DEFAULT_TTL_SECONDS = 3600
DEFAULT_TOKEN_BYTES = 32
MIN_TOKEN_BYTES = 16


class ChallengeState(str, Enum):
    """二次验证状态"""
    NO_CHALLENGE = "no_challenge"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChallengeCoordinator:
    """挑战协调器

    Args:
        registry: 验证方式注册表
        store: 挑战存储
        ttl_seconds: 挑战有效期（秒）
        token_bytes: 令牌随机字节数（至少 16）
        clock: 返回带时区当前时间的函数
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        store: ChallengeStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        token_bytes: int = DEFAULT_TOKEN_BYTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if token_bytes < MIN_TOKEN_BYTES:
            raise ValueError(f"token_bytes must be at least {MIN_TOKEN_BYTES}")
        self.registry = registry
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.token_bytes = token_bytes
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return self._clock()

    def requires_challenge(self, account: Account) -> bool:
        """账户是否需要二次验证"""
        return self.registry.primary_for(account) is not None

    def begin(self, account: Account) -> str:
        """签发挑战并返回令牌（覆盖账户已有的挑战）

        Raises:
            NoProviderConfigured: 账户没有可用的首选验证方式
            PersistenceError: 挑战保存失败，调用方必须中止登录
        """
        if self.registry.primary_for(account) is None:
            raise Err.no_provider(account_id=account.id)

        token = secrets.token_urlsafe(self.token_bytes)
        challenge = Challenge(
            token=token,
            expires_at=self.now() + timedelta(seconds=self.ttl_seconds),
        )

        try:
            self.store.put(account.id, challenge, self.ttl_seconds)
        except StoreError as e:
            logger.error(f"Failed to store login challenge for account {account.id}: {e}")
            raise Err.persistence(account_id=account.id) from e

        logger.info(
            f"Login challenge issued for account {account.id}, "
            f"expires at {challenge.expires_at.isoformat()}"
        )
        return token

    def verify(
        self,
        account: Account,
        submitted_token: Optional[str],
        submitted_proof: Optional[str],
    ) -> ChallengeState:
        """校验挑战和验证码

        挑战在第一步就被原子地取出并删除，任何结果下都不会被再次使用。

        Returns:
            ChallengeState.VERIFIED

        Raises:
            NoActiveChallenge: 没有待验证的挑战
            ChallengeExpiredOrInvalid: 令牌不匹配或已过期
            NoProviderConfigured: 首选验证方式已失效
            InvalidProof: 验证码错误
            PersistenceError: 存储不可用
        """
        try:
            challenge = self.store.pop(account.id)
        except StoreError as e:
            logger.error(f"Failed to load login challenge for account {account.id}: {e}")
            raise Err.persistence(account_id=account.id) from e

        if challenge is None:
            logger.warning(f"Second step rejected for account {account.id}: no active challenge")
            raise Err.no_challenge(account_id=account.id)

        # 两项检查都执行，不暴露是哪一项失败
        token_ok = hmac.compare_digest(
            (submitted_token or "").encode("utf-8"),
            challenge.token.encode("utf-8"),
        )
        expired = challenge.is_expired(self.now())
        if not token_ok or expired:
            logger.warning(
                f"Second step rejected for account {account.id}: "
                f"{'expired' if expired else 'token mismatch'}"
            )
            raise Err.challenge_invalid(account_id=account.id)

        provider = self.registry.primary_for(account)
        if provider is None:
            logger.warning(f"Second step rejected for account {account.id}: no provider configured")
            raise Err.no_provider(account_id=account.id)

        if not provider.verify(account, submitted_proof):
            logger.warning(
                f"Second step rejected for account {account.id}: "
                f"invalid proof for {provider.label}"
            )
            raise Err.invalid_proof(account_id=account.id)

        logger.info(f"Login challenge consumed for account {account.id}")
        return ChallengeState.VERIFIED

    def cancel(self, account: Account) -> bool:
        """放弃账户的待验证挑战"""
        try:
            return self.store.delete(account.id)
        except StoreError as e:
            raise Err.persistence(account_id=account.id) from e
