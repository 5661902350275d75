"""二次验证方式基础定义"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from twofactor.accounts import Account


@dataclass
class ChallengeField:
    """挑战表单中的一个输入项

    Attributes:
        name: 表单字段名
        label: 显示名称
        input_type: 输入类型（text / number / hidden ...）
        autocomplete: 浏览器自动填充提示
    """
    name: str
    label: str
    input_type: str = "text"
    autocomplete: str = "off"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "input_type": self.input_type,
            "autocomplete": self.autocomplete,
        }


@dataclass
class ChallengeFragment:
    """验证方式渲染出的挑战片段

    渲染器把它嵌入到完整的二次验证表单中。

    Attributes:
        prompt: 提示文字
        fields: 输入项列表
        extra: 额外数据（如 WebAuthn 请求参数）
    """
    prompt: str = ""
    fields: List[ChallengeField] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompt": self.prompt,
            "fields": [f.to_dict() for f in self.fields],
            "extra": dict(self.extra),
        }


class TwoFactorProvider(ABC):
    """二次验证方式抽象基类

    所有验证方式都应继承此类，实现三个能力：
    是否对账户可用、渲染挑战片段、校验用户提交的验证码。
    """

    @property
    @abstractmethod
    def label(self) -> str:
        """返回显示名称"""
        pass

    @abstractmethod
    def is_available_for(self, account: Account) -> bool:
        """检查该验证方式是否已为账户配置好

        Args:
            account: 账户

        Returns:
            bool: 是否可用
        """
        pass

    @abstractmethod
    def render_challenge(self, account: Account) -> ChallengeFragment:
        """渲染挑战片段

        Args:
            account: 账户

        Returns:
            ChallengeFragment: 表单片段
        """
        pass

    @abstractmethod
    def verify(self, account: Account, proof: Optional[str]) -> bool:
        """校验用户提交的凭证

        Args:
            account: 账户
            proof: 用户提交的验证码或签名

        Returns:
            bool: 是否通过
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(label={self.label!r})"


def normalize_code(proof: Optional[str]) -> str:
    """清理用户输入的验证码（移除空格和连字符）"""
    if not proof:
        return ""
    return proof.strip().replace(" ", "").replace("-", "")
