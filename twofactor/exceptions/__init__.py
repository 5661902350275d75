"""异常处理模块

使用示例:
    from twofactor.exceptions import Err, register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)

    raise Err.invalid_provider(provider="sms")
"""

from .exceptions import (
    Err,
    ErrorCode,
    ErrorCodeType,
    INVALID_OR_EXPIRED_MESSAGE,
    INVALID_CODE_MESSAGE,

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
)

from .handlers import (
    register_exception_handlers,
    business_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)

__all__ = [
    "Err",
    "ErrorCode",
    "ErrorCodeType",
    "INVALID_OR_EXPIRED_MESSAGE",
    "INVALID_CODE_MESSAGE",
    "register_exception_handlers",

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
    "business_exception_handler",
    "validation_exception_handler",
    "general_exception_handler",
]
