"""邮件验证码验证方式

渲染挑战时生成新的数字验证码并通过邮件发送，用户在表单中回填。

使用示例:
    def send_email(email: str, code: str) -> bool:
        return mail_service.send(
            to=email,
            subject="Login code",
            body=f"Enter {code} to log in.",
        )

    provider = EmailCodeProvider(code_length=8, expire_minutes=15, email_sender=send_email)
"""

import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Any, Callable, Dict, Optional

from twofactor.accounts import Account
from twofactor.log import get_logger
from .base import TwoFactorProvider, ChallengeFragment, ChallengeField, normalize_code

logger = get_logger()


@dataclass
class EmailCode:
    """邮件验证码数据"""
    code: str
    account_id: Any
    created_at: datetime
    expires_at: datetime
    target: str = ""

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


def generate_numeric_code(length: int = 8) -> str:
    """生成纯数字验证码"""
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailCodeProvider(TwoFactorProvider):
    """邮件验证码验证方式

    Args:
        code_length: 验证码长度
        expire_minutes: 过期时间（分钟）
        email_sender: 邮件发送函数，接收 (email, code)，返回是否成功
        code_store: 保存验证码的回调 (account_id, EmailCode) -> bool
        code_getter: 获取验证码的回调 (account_id) -> EmailCode | None
        code_consumer: 删除验证码的回调 (account_id) -> bool
        clock: 返回当前时间的函数
    """

    def __init__(
        self,
        code_length: int = 8,
        expire_minutes: int = 15,
        email_sender: Callable[[str, str], bool] = None,
        code_store: Callable[[Any, EmailCode], bool] = None,
        code_getter: Callable[[Any], Optional[EmailCode]] = None,
        code_consumer: Callable[[Any], bool] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.code_length = code_length
        self.expire_minutes = expire_minutes
        self.email_sender = email_sender
        self._clock = clock

        self._code_store = code_store
        self._code_getter = code_getter
        self._code_consumer = code_consumer

        # 内存存储（默认）
        self._codes: Dict[Any, EmailCode] = {}

    def set_stores(
        self,
        store: Callable[[Any, EmailCode], bool],
        getter: Callable[[Any], Optional[EmailCode]],
        consumer: Callable[[Any], bool] = None,
    ) -> "EmailCodeProvider":
        """设置存储回调"""
        self._code_store = store
        self._code_getter = getter
        self._code_consumer = consumer
        return self

    def set_email_sender(self, sender: Callable[[str, str], bool]) -> "EmailCodeProvider":
        """设置邮件发送函数"""
        self.email_sender = sender
        return self

    @property
    def label(self) -> str:
        return "Email"

    def is_available_for(self, account: Account) -> bool:
        return bool(account.email)

    def generate_code(self, account: Account) -> EmailCode:
        """生成并保存新的验证码（覆盖旧验证码）"""
        now = self._clock()
        email_code = EmailCode(
            code=generate_numeric_code(self.code_length),
            account_id=account.id,
            created_at=now,
            expires_at=now + timedelta(minutes=self.expire_minutes),
            target=account.email or "",
        )
        self._save_code(account.id, email_code)
        return email_code

    def send_code(self, account: Account) -> tuple:
        """生成并发送验证码

        Returns:
            tuple: (success, message)
        """
        email_code = self.generate_code(account)

        if not self.email_sender:
            logger.warning(f"No email sender configured, code for account {account.id} not delivered")
            return False, "Email sender not configured"

        try:
            if self.email_sender(email_code.target, email_code.code):
                return True, "Verification code sent"
            return False, "Failed to send email"
        except Exception as e:
            logger.error(f"Email sending error for account {account.id}: {type(e).__name__}: {e}")
            return False, "Failed to send email"

    def render_challenge(self, account: Account) -> ChallengeFragment:
        sent, message = self.send_code(account)
        prompt = (
            "A verification code has been sent to the email address associated with your account."
            if sent else message
        )
        return ChallengeFragment(
            prompt=prompt,
            fields=[
                ChallengeField(
                    name="two-factor-email-code",
                    label="Verification Code",
                    input_type="tel",
                    autocomplete="one-time-code",
                ),
            ],
            extra={"sent": sent},
        )

    def verify(self, account: Account, proof: Optional[str]) -> bool:
        email_code = self._get_code(account.id)
        if email_code is None:
            return False

        if email_code.is_expired(self._clock()):
            self._consume_code(account.id)
            return False

        code = normalize_code(proof)
        if not hmac.compare_digest(code.encode(), email_code.code.encode()):
            return False

        # 验证码一次性使用
        self._consume_code(account.id)
        return True

    def _save_code(self, account_id: Any, email_code: EmailCode) -> bool:
        if self._code_store:
            return self._code_store(account_id, email_code)
        self._codes[account_id] = email_code
        return True

    def _get_code(self, account_id: Any) -> Optional[EmailCode]:
        if self._code_getter:
            return self._code_getter(account_id)
        return self._codes.get(account_id)

    def _consume_code(self, account_id: Any) -> bool:
        if self._code_consumer:
            return self._code_consumer(account_id)
        return self._codes.pop(account_id, None) is not None
