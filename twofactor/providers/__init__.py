"""二次验证方式

使用示例:
    from twofactor.providers import TOTPProvider, EmailCodeProvider

    totp = TOTPProvider(issuer="MyApp")
    email = EmailCodeProvider(email_sender=send_email)
"""

from .base import (
    TwoFactorProvider,
    ChallengeField,
    ChallengeFragment,
    normalize_code,
)
from .email import EmailCodeProvider, EmailCode, generate_numeric_code
from .totp import TOTPProvider, generate_secret, hotp, totp, verify_totp
from .fido_u2f import FidoU2FProvider
from .dummy import DummyProvider

__all__ = [
    "TwoFactorProvider",
    "ChallengeField",
    "ChallengeFragment",
    "normalize_code",
    "EmailCodeProvider",
    "EmailCode",
    "generate_numeric_code",
    "TOTPProvider",
    "generate_secret",
    "hotp",
    "totp",
    "verify_totp",
    "FidoU2FProvider",
    "DummyProvider",
]
