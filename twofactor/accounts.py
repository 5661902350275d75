"""账户与身份存储

账户本身由外部身份存储维护，这里只定义二次验证流程需要的最小视图，
以及身份存储需要实现的接口。

使用示例:
    from twofactor.accounts import Account, InMemoryIdentityStore

    store = InMemoryIdentityStore()
    store.add(Account(id=1, login="john", email="john@example.com"))

    account = store.get_account(1)
    store.set_primary_provider_id(account, "totp")
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Account:
    """账户身份句柄

    Attributes:
        id: 账户唯一标识（身份存储中的主键）
        login: 登录名
        email: 邮箱（邮件验证码方式需要）
        attributes: 额外属性
    """
    id: Any
    login: str = ""
    email: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


class IdentityStore(ABC):
    """身份存储抽象基类

    保存账户以及账户选择的首选二次验证方式标识。
    空字符串表示未启用二次验证。
    """

    @abstractmethod
    def get_account(self, identifier: Any) -> Optional[Account]:
        """按标识查找账户，不存在返回 None"""
        pass

    @abstractmethod
    def get_primary_provider_id(self, account: Account) -> str:
        """获取账户保存的首选验证方式标识，未配置返回空字符串"""
        pass

    @abstractmethod
    def set_primary_provider_id(self, account: Account, provider_id: str) -> None:
        """保存账户的首选验证方式标识"""
        pass


class InMemoryIdentityStore(IdentityStore):
    """内存身份存储

    适用于测试和单实例演示，重启后数据丢失。
    """

    def __init__(self):
        self._accounts: Dict[Any, Account] = {}
        self._primary: Dict[Any, str] = {}
        self._lock = threading.Lock()

    def add(self, account: Account, provider_id: str = "") -> Account:
        """添加账户（可同时设置首选验证方式）"""
        with self._lock:
            self._accounts[account.id] = account
            if provider_id:
                self._primary[account.id] = provider_id
        return account

    def get_account(self, identifier: Any) -> Optional[Account]:
        account = self._accounts.get(identifier)
        if account is None and isinstance(identifier, str) and identifier.isdigit():
            # 表单提交的账户 ID 总是字符串
            account = self._accounts.get(int(identifier))
        return account

    def get_primary_provider_id(self, account: Account) -> str:
        return self._primary.get(account.id, "")

    def set_primary_provider_id(self, account: Account, provider_id: str) -> None:
        with self._lock:
            if provider_id:
                self._primary[account.id] = provider_id
            else:
                self._primary.pop(account.id, None)
