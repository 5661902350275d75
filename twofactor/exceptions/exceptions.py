"""业务异常类定义

定义二次验证流程使用的异常类体系。每个异常都携带面向用户的消息、
程序可判断的错误代码和对应的 HTTP 状态码。
"""

import copy
from enum import Enum
from typing import Optional, List, Any, Dict, Union

from fastapi import status


class ErrorCode(str, Enum):
    """错误代码枚举

    继承自 str，可以直接作为字符串使用。
    """

    # ==================== 通用错误 ====================
    BUSINESS_ERROR = "BUSINESS_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # ==================== 二次验证 ====================
    INVALID_PROVIDER = "INVALID_PROVIDER"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    # 无挑战与挑战无效/过期共用同一代码，避免泄露具体失败原因
    CHALLENGE_INVALID = "CHALLENGE_INVALID"
    NO_PROVIDER_CONFIGURED = "NO_PROVIDER_CONFIGURED"
    INVALID_PROOF = "INVALID_PROOF"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


# 类型别名，支持枚举和字符串
ErrorCodeType = Union[str, ErrorCode]

# 面向用户的通用提示
INVALID_OR_EXPIRED_MESSAGE = "Invalid or expired code"
INVALID_CODE_MESSAGE = "Invalid verification code"


class BusinessException(Exception):
    """业务异常基类

    属性:
        message: 错误消息（面向用户）
        code: 错误代码（用于程序判断，支持 ErrorCode 枚举或字符串）
        status_code: HTTP 状态码
        details: 详细错误信息列表
        extra: 额外的上下文信息
    """

    def __init__(
        self,
        message: str,
        code: ErrorCodeType = ErrorCode.BUSINESS_ERROR,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or []
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra)
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"status_code={self.status_code})"
        )


class TwoFactorException(BusinessException):
    """二次验证异常基类

    子类通过类属性声明默认消息、错误代码和 HTTP 状态码。
    """

    default_message: str = "Two-factor authentication failed"
    default_code: ErrorCodeType = ErrorCode.BUSINESS_ERROR
    default_status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[ErrorCodeType] = None,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message or self.default_message,
            code=code or self.default_code,
            status_code=self.default_status_code,
            details=details,
            **extra
        )


class InvalidProvider(TwoFactorException):
    """选项更新指定了未注册的验证方式（拒绝且不持久化）"""

    default_message = "Unknown two-factor provider"
    default_code = ErrorCode.INVALID_PROVIDER
    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PersistenceError(TwoFactorException):
    """挑战存储不可用

    登录必须中止，不允许降级为单因素登录。
    """

    default_message = "Could not save login challenge"
    default_code = ErrorCode.PERSISTENCE_ERROR
    default_status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ChallengeError(TwoFactorException):
    """挑战校验失败的公共基类

    NoActiveChallenge 与 ChallengeExpiredOrInvalid 对客户端表现完全一致。
    """

    default_message = INVALID_OR_EXPIRED_MESSAGE
    default_code = ErrorCode.CHALLENGE_INVALID
    default_status_code = status.HTTP_401_UNAUTHORIZED


class NoActiveChallenge(ChallengeError):
    """账户没有待验证的挑战"""


class ChallengeExpiredOrInvalid(ChallengeError):
    """挑战令牌不匹配或已过期"""


class NoProviderConfigured(TwoFactorException):
    """账户未配置（或配置已失效的）二次验证方式"""

    default_message = "No two-factor provider configured"
    default_code = ErrorCode.NO_PROVIDER_CONFIGURED
    default_status_code = status.HTTP_409_CONFLICT


class InvalidProof(TwoFactorException):
    """验证方式判定提交的验证码无效"""

    default_message = INVALID_CODE_MESSAGE
    default_code = ErrorCode.INVALID_PROOF
    default_status_code = status.HTTP_401_UNAUTHORIZED


class AccountNotFound(TwoFactorException):
    """身份存储中找不到账户"""

    default_message = "Account not found"
    default_code = ErrorCode.ACCOUNT_NOT_FOUND
    default_status_code = status.HTTP_404_NOT_FOUND


class TooManyAttempts(TwoFactorException):
    """账户因连续验证失败被临时封锁"""

    default_message = "Too many failed attempts, try again later"
    default_code = ErrorCode.RATE_LIMIT_EXCEEDED
    default_status_code = status.HTTP_429_TOO_MANY_REQUESTS


class Err:
    """异常快捷创建类

    使用示例:
        from twofactor.exceptions import Err

        raise Err.invalid_provider(provider="sms")
        raise Err.persistence("Redis 不可用")
    """

    @staticmethod
    def invalid_provider(message: str = None, **kwargs) -> InvalidProvider:
        """未注册的验证方式 (422)"""
        return InvalidProvider(message, **kwargs)

    @staticmethod
    def persistence(message: str = None, **kwargs) -> PersistenceError:
        """挑战存储失败 (503)"""
        return PersistenceError(message, **kwargs)

    @staticmethod
    def no_challenge(**kwargs) -> NoActiveChallenge:
        """无待验证挑战 (401)"""
        return NoActiveChallenge(**kwargs)

    @staticmethod
    def challenge_invalid(**kwargs) -> ChallengeExpiredOrInvalid:
        """挑战无效或过期 (401)"""
        return ChallengeExpiredOrInvalid(**kwargs)

    @staticmethod
    def no_provider(message: str = None, **kwargs) -> NoProviderConfigured:
        """未配置验证方式 (409)"""
        return NoProviderConfigured(message, **kwargs)

    @staticmethod
    def invalid_proof(message: str = None, **kwargs) -> InvalidProof:
        """验证码无效 (401)"""
        return InvalidProof(message, **kwargs)

    @staticmethod
    def account_not_found(message: str = None, **kwargs) -> AccountNotFound:
        """账户不存在 (404)"""
        return AccountNotFound(message, **kwargs)

    @staticmethod
    def too_many_attempts(message: str = None, **kwargs) -> TooManyAttempts:
        """失败次数过多 (429)"""
        return TooManyAttempts(message, **kwargs)
