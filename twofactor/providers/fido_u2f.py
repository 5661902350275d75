"""FIDO U2F 硬件令牌验证方式（占位实现）

注册后出现在选项列表中，但对任何账户都不可用，也不会通过验证。
"""

from typing import Optional

from twofactor.accounts import Account
from .base import TwoFactorProvider, ChallengeFragment


class FidoU2FProvider(TwoFactorProvider):
    """FIDO U2F 占位验证方式"""

    @property
    def label(self) -> str:
        return "FIDO U2F"

    def is_available_for(self, account: Account) -> bool:
        return False

    def render_challenge(self, account: Account) -> ChallengeFragment:
        return ChallengeFragment(prompt="Security key authentication is not available.")

    def verify(self, account: Account, proof: Optional[str]) -> bool:
        return False
