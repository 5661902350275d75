"""空验证方式

对所有账户可用，任何提交都视为通过。仅用于测试和演示，不要在生产环境注册。
"""

from typing import Optional

from twofactor.accounts import Account
from .base import TwoFactorProvider, ChallengeFragment


class DummyProvider(TwoFactorProvider):
    """总是通过的验证方式"""

    @property
    def label(self) -> str:
        return "Dummy Method"

    def is_available_for(self, account: Account) -> bool:
        return True

    def render_challenge(self, account: Account) -> ChallengeFragment:
        return ChallengeFragment(prompt="Are you really you?")

    def verify(self, account: Account, proof: Optional[str]) -> bool:
        return True
