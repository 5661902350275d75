"""TOTP (Time-based One-Time Password) 验证方式

实现基于时间的一次性密码（RFC 6238），兼容 Google Authenticator、
Microsoft Authenticator 等。

使用示例:
    provider = TOTPProvider(issuer="MyApp")

    # 为账户生成密钥
    setup = provider.setup(account)
    print(setup["uri"])  # otpauth://totp/MyApp:john?secret=...

    # 登录第二步
    provider.verify(account, "123456")
"""

import base64
import hashlib
import hmac
import secrets
import struct
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

from twofactor.accounts import Account
from .base import TwoFactorProvider, ChallengeFragment, ChallengeField, normalize_code


def generate_secret(length: int = 20) -> str:
    """生成随机 Base32 密钥"""
    random_bytes = secrets.token_bytes(length)
    return base64.b32encode(random_bytes).decode("utf-8").rstrip("=")


def hotp(secret: str, counter: int, digits: int = 6) -> str:
    """HOTP (HMAC-based One-Time Password, RFC 4226)

    Args:
        secret: Base32 编码的密钥
        counter: 计数器
        digits: 密码位数

    Returns:
        str: 一次性密码
    """
    key = base64.b32decode(secret.upper() + "=" * (-len(secret) % 8))

    counter_bytes = struct.pack(">Q", counter)
    hmac_hash = hmac.new(key, counter_bytes, hashlib.sha1).digest()

    # 动态截断
    offset = hmac_hash[-1] & 0x0F
    truncated = struct.unpack(">I", hmac_hash[offset:offset + 4])[0]
    truncated &= 0x7FFFFFFF

    return str(truncated % (10 ** digits)).zfill(digits)


def totp(secret: str, time_step: int = 30, digits: int = 6, timestamp: int = None) -> str:
    """TOTP (Time-based One-Time Password)"""
    if timestamp is None:
        timestamp = int(time.time())
    return hotp(secret, timestamp // time_step, digits)


def verify_totp(
    secret: str,
    code: str,
    time_step: int = 30,
    digits: int = 6,
    window: int = 1,
    timestamp: int = None,
) -> bool:
    """在时间窗口内验证 TOTP

    Args:
        secret: Base32 编码的密钥
        code: 待验证的代码
        time_step: 时间步长（秒）
        digits: 密码位数
        window: 允许的时间窗口（前后多少个时间步）
        timestamp: 时间戳（默认当前时间）
    """
    if timestamp is None:
        timestamp = int(time.time())

    matched = False
    for offset in range(-window, window + 1):
        expected = totp(secret, time_step, digits, timestamp + offset * time_step)
        # 不提前返回，每个窗口都做一次比较
        if hmac.compare_digest(code, expected):
            matched = True
    return matched


class TOTPProvider(TwoFactorProvider):
    """TOTP 验证方式

    Args:
        issuer: 发行者名称（显示在 Authenticator 中）
        digits: OTP 位数
        time_step: 时间步长（秒）
        window: 验证时允许的时间窗口
        secret_store: 密钥存储回调 (account_id, secret | None) -> bool
        secret_getter: 密钥获取回调 (account_id) -> secret | None
        clock: 返回 Unix 时间戳的函数（测试时可替换）
    """

    def __init__(
        self,
        issuer: str = "TwoFactor",
        digits: int = 6,
        time_step: int = 30,
        window: int = 1,
        secret_store: Callable[[Any, Optional[str]], bool] = None,
        secret_getter: Callable[[Any], Optional[str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.issuer = issuer
        self.digits = digits
        self.time_step = time_step
        self.window = window
        self._clock = clock

        self._secret_store = secret_store
        self._secret_getter = secret_getter

        # 内存存储（默认，生产环境应替换）
        self._secrets: Dict[Any, str] = {}

    def set_stores(
        self,
        store: Callable[[Any, Optional[str]], bool],
        getter: Callable[[Any], Optional[str]],
    ) -> "TOTPProvider":
        """设置存储回调，支持链式调用"""
        self._secret_store = store
        self._secret_getter = getter
        return self

    @property
    def label(self) -> str:
        return "Time Based One-Time Password (TOTP)"

    def setup(self, account: Account, secret: str = None) -> Dict[str, Any]:
        """为账户生成并保存密钥

        Args:
            account: 账户
            secret: 指定密钥（默认随机生成）

        Returns:
            dict: 包含 secret 和 otpauth URI
        """
        secret = secret or generate_secret()
        self._save_secret(account.id, secret)
        return {
            "secret": secret,
            "uri": self.build_uri(secret, account.email or account.login or str(account.id)),
            "digits": self.digits,
            "period": self.time_step,
        }

    def build_uri(self, secret: str, account_name: str) -> str:
        """构建 otpauth URI（用于生成二维码）"""
        label = f"{self.issuer}:{account_name}"
        params = {
            "secret": secret,
            "issuer": self.issuer,
            "digits": str(self.digits),
            "period": str(self.time_step),
        }
        param_str = "&".join(f"{k}={quote(v)}" for k, v in params.items())
        return f"otpauth://totp/{quote(label)}?{param_str}"

    def is_available_for(self, account: Account) -> bool:
        return bool(self._get_secret(account.id))

    def render_challenge(self, account: Account) -> ChallengeFragment:
        return ChallengeFragment(
            prompt="Enter the code from your authenticator app.",
            fields=[
                ChallengeField(
                    name="authcode",
                    label="Authentication Code",
                    input_type="text",
                    autocomplete="one-time-code",
                ),
            ],
        )

    def verify(self, account: Account, proof: Optional[str]) -> bool:
        secret = self._get_secret(account.id)
        if not secret:
            return False

        code = normalize_code(proof)
        if len(code) != self.digits or not code.isdigit():
            return False

        return verify_totp(
            secret=secret,
            code=code,
            time_step=self.time_step,
            digits=self.digits,
            window=self.window,
            timestamp=int(self._clock()),
        )

    def disable(self, account: Account) -> None:
        """删除账户的 TOTP 密钥"""
        if self._secret_store:
            self._secret_store(account.id, None)
        else:
            self._secrets.pop(account.id, None)

    def current_code(self, account: Account) -> Optional[str]:
        """生成当前的 TOTP 代码（仅用于测试）"""
        secret = self._get_secret(account.id)
        if not secret:
            return None
        return totp(secret, self.time_step, self.digits, int(self._clock()))

    def _save_secret(self, account_id: Any, secret: str) -> bool:
        if self._secret_store:
            return self._secret_store(account_id, secret)
        self._secrets[account_id] = secret
        return True

    def _get_secret(self, account_id: Any) -> Optional[str]:
        if self._secret_getter:
            return self._secret_getter(account_id)
        return self._secrets.get(account_id)
