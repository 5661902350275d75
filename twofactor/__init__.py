"""
twofactor - 两步登录挑战协议库

主凭证校验通过后，为启用了二次验证的账户签发一次性挑战，
再由可插拔的验证方式（邮件验证码、TOTP、硬件令牌等）校验第二因素。
"""

from .version import __version__, __author__, __description__

from .accounts import (
    Account,
    IdentityStore,
    InMemoryIdentityStore,
)

from .registry import ProviderRegistry

from .challenge import (
    ChallengeCoordinator,
    ChallengeState,
)

from .stores import (
    Challenge,
    ChallengeStore,
    StoreError,
    InMemoryChallengeStore,
    RedisChallengeStore,
    SQLAlchemyChallengeStore,
)

from .providers import (
    TwoFactorProvider,
    ChallengeField,
    ChallengeFragment,
    EmailCodeProvider,
    TOTPProvider,
    FidoU2FProvider,
    DummyProvider,
)

from .login import (
    TwoStepLogin,
    LoginOutcome,
    ChallengeForm,
    SessionIssuer,
    CallbackSessionIssuer,
    render_challenge_form,
)

from .events import (
    LoginEvent,
    LoginEventKind,
    LoginEventDispatcher,
)

from .rate_limiter import LoginRateLimiter

from .exceptions import (
    Err,
    ErrorCode,
    BusinessException,
    TwoFactorException,
    InvalidProvider,
    PersistenceError,
    ChallengeError,
    NoActiveChallenge,
    ChallengeExpiredOrInvalid,
    NoProviderConfigured,
    InvalidProof,
    AccountNotFound,
    TooManyAttempts,
    register_exception_handlers,
)

from .response import Resp

from .log import get_logger, setup_logger, setup_root_logger

from .config import AppSettings, load_yaml_config

__all__ = [
    "__version__",
    "__author__",
    "__description__",

    # 账户
    "Account",
    "IdentityStore",
    "InMemoryIdentityStore",

    # 协议核心
    "ProviderRegistry",
    "ChallengeCoordinator",
    "ChallengeState",
    "Challenge",

    # 存储
    "ChallengeStore",
    "StoreError",
    "InMemoryChallengeStore",
    "RedisChallengeStore",
    "SQLAlchemyChallengeStore",

    # 验证方式
    "TwoFactorProvider",
    "ChallengeField",
    "ChallengeFragment",
    "EmailCodeProvider",
    "TOTPProvider",
    "FidoU2FProvider",
    "DummyProvider",

    # 登录流程
    "TwoStepLogin",
    "LoginOutcome",
    "ChallengeForm",
    "SessionIssuer",
    "CallbackSessionIssuer",
    "render_challenge_form",
    "LoginEvent",
    "LoginEventKind",
    "LoginEventDispatcher",
    "LoginRateLimiter",

    # 异常
    "Err",
    "ErrorCode",
    "BusinessException",
    "TwoFactorException",
    "InvalidProvider",
    "PersistenceError",
    "ChallengeError",
    "NoActiveChallenge",
    "ChallengeExpiredOrInvalid",
    "NoProviderConfigured",
    "InvalidProof",
    "AccountNotFound",
    "TooManyAttempts",
    "register_exception_handlers",

    # 响应、日志、配置
    "Resp",
    "get_logger",
    "setup_logger",
    "setup_root_logger",
    "AppSettings",
    "load_yaml_config",
]
