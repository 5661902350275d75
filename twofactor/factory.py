"""按配置组装二次验证组件

使用示例:
    from twofactor.config import AppSettings, load_yaml_config
    from twofactor.factory import build_login_flow

    settings = load_yaml_config("config/settings.yaml", AppSettings)
    login_flow = build_login_flow(
        settings,
        identity_store=identity_store,
        session_issuer=CallbackSessionIssuer(create_session),
        email_sender=send_email,
    )
"""

from datetime import datetime
from typing import Callable, Dict, Optional

from twofactor.accounts import IdentityStore
from twofactor.challenge import ChallengeCoordinator
from twofactor.config import AppSettings
from twofactor.events import LoginEventDispatcher
from twofactor.log import get_logger
from twofactor.login import ChallengeRenderer, SessionIssuer, TwoStepLogin, render_challenge_form
from twofactor.providers import (
    DummyProvider,
    EmailCodeProvider,
    FidoU2FProvider,
    TOTPProvider,
    TwoFactorProvider,
)
from twofactor.rate_limiter import LoginRateLimiter
from twofactor.registry import ProviderRegistry
from twofactor.stores import (
    ChallengeStore,
    InMemoryChallengeStore,
    RedisChallengeStore,
    SQLAlchemyChallengeStore,
)

logger = get_logger()


def build_provider(identifier: str, settings: AppSettings, email_sender: Callable = None) -> TwoFactorProvider:
    """按标识创建内置验证方式

    Raises:
        ValueError: 未知的验证方式标识
    """
    if identifier == "email":
        return EmailCodeProvider(
            code_length=settings.email.code_length,
            expire_minutes=settings.email.expire_minutes,
            email_sender=email_sender,
        )
    if identifier == "totp":
        return TOTPProvider(
            issuer=settings.totp.issuer,
            digits=settings.totp.digits,
            time_step=settings.totp.time_step,
            window=settings.totp.window,
        )
    if identifier == "fido_u2f":
        return FidoU2FProvider()
    if identifier == "dummy":
        return DummyProvider()
    raise ValueError(f"Unknown two-factor provider in settings: {identifier!r}")


def build_default_registry(
    settings: AppSettings,
    identity_store: IdentityStore,
    email_sender: Callable = None,
    extra_providers: Optional[Dict[str, TwoFactorProvider]] = None,
    finalize: bool = True,
) -> ProviderRegistry:
    """创建注册表，按 settings.providers 的顺序注册内置验证方式

    Args:
        settings: 应用配置
        identity_store: 身份存储
        email_sender: 邮件发送函数
        extra_providers: 额外的自定义验证方式（注册在内置之后，同名覆盖）
        finalize: 是否冻结注册表
    """
    registry = ProviderRegistry(identity_store)
    for identifier in settings.providers:
        registry.register(identifier, build_provider(identifier, settings, email_sender))
    for identifier, provider in (extra_providers or {}).items():
        registry.register(identifier, provider)
    if finalize:
        registry.finalize()
    return registry


def build_challenge_store(settings: AppSettings, redis_client=None, session_factory=None) -> ChallengeStore:
    """按 settings.challenge.store 创建挑战存储

    Args:
        settings: 应用配置
        redis_client: 现成的 Redis 客户端（优先于 settings.redis.url）
        session_factory: 现成的 sessionmaker（优先于 settings.database.url）
    """
    backend = settings.challenge.store

    if backend == "memory":
        return InMemoryChallengeStore()

    if backend == "redis":
        if redis_client is None:
            if not settings.redis.url:
                raise ValueError("Redis challenge store requires redis.url")
            import redis
            redis_client = redis.Redis.from_url(settings.redis.url)
        return RedisChallengeStore(redis_client, prefix=settings.challenge.key_prefix)

    if backend == "database":
        create_tables = False
        if session_factory is None:
            if not settings.database.url:
                raise ValueError("Database challenge store requires database.url")
            from sqlalchemy import create_engine
            from sqlalchemy.orm import sessionmaker
            engine = create_engine(settings.database.url, echo=settings.database.echo)
            session_factory = sessionmaker(bind=engine)
            create_tables = True
        return SQLAlchemyChallengeStore(session_factory, create_tables=create_tables)

    raise ValueError(f"Unknown challenge store: {backend!r}")


def build_login_flow(
    settings: AppSettings,
    identity_store: IdentityStore,
    session_issuer: SessionIssuer,
    email_sender: Callable = None,
    renderer: ChallengeRenderer = render_challenge_form,
    registry: Optional[ProviderRegistry] = None,
    store: Optional[ChallengeStore] = None,
    events: Optional[LoginEventDispatcher] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> TwoStepLogin:
    """组装完整的两步登录流程"""
    registry = registry or build_default_registry(settings, identity_store, email_sender)
    store = store or build_challenge_store(settings)

    coordinator = ChallengeCoordinator(
        registry,
        store,
        ttl_seconds=settings.challenge.ttl_seconds,
        token_bytes=settings.challenge.token_bytes,
        clock=clock,
    )

    rate_limiter = None
    if settings.rate_limit.enabled:
        rate_limiter = LoginRateLimiter(
            max_attempts=settings.rate_limit.max_attempts,
            block_minutes=settings.rate_limit.block_minutes,
            window_minutes=settings.rate_limit.window_minutes,
        )

    logger.info(
        f"Two-step login ready: providers={registry.list_identifiers()}, "
        f"store={type(store).__name__}, rate_limit={settings.rate_limit.enabled}"
    )
    return TwoStepLogin(
        coordinator=coordinator,
        identity_store=identity_store,
        session_issuer=session_issuer,
        renderer=renderer,
        events=events,
        rate_limiter=rate_limiter,
    )
