"""验证方式注册表

按注册顺序维护「标识 -> 验证方式」映射，并负责解析和更新账户的首选验证方式。

使用示例:
    from twofactor import ProviderRegistry
    from twofactor.providers import EmailCodeProvider, TOTPProvider

    registry = ProviderRegistry(identity_store)
    registry.register("email", EmailCodeProvider(email_sender=send_email))
    registry.register("totp", TOTPProvider(issuer="MyApp"))
    registry.finalize()

    # 账户可用的验证方式
    registry.list_available_for(account)

    # 更新首选验证方式（空字符串表示关闭二次验证）
    registry.set_primary_for(account, "totp")
"""

import threading
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from twofactor.accounts import Account, IdentityStore
from twofactor.exceptions import Err
from twofactor.log import get_logger
from twofactor.providers.base import TwoFactorProvider

logger = get_logger()


class ProviderRegistry:
    """验证方式注册表

    finalize() 之前可以增删条目；之后映射冻结，可被多线程并发读取。

    Args:
        identity_store: 保存账户首选验证方式的身份存储
    """

    def __init__(self, identity_store: IdentityStore):
        self._identity_store = identity_store
        self._providers: Dict[str, TwoFactorProvider] = {}
        self._frozen: Optional[Mapping[str, TwoFactorProvider]] = None
        self._lock = threading.Lock()

    @property
    def identity_store(self) -> IdentityStore:
        return self._identity_store

    @property
    def is_finalized(self) -> bool:
        return self._frozen is not None

    def _check_mutable(self) -> None:
        if self._frozen is not None:
            raise RuntimeError("Provider registry is finalized")

    def register(self, identifier: str, provider: TwoFactorProvider) -> "ProviderRegistry":
        """注册验证方式，同一标识后注册的覆盖先注册的

        Returns:
            self: 支持链式调用
        """
        if not identifier:
            raise ValueError("Provider identifier must not be empty")
        with self._lock:
            self._check_mutable()
            self._providers[identifier] = provider
        return self

    def unregister(self, identifier: str) -> "ProviderRegistry":
        """注销验证方式"""
        with self._lock:
            self._check_mutable()
            self._providers.pop(identifier, None)
        return self

    def finalize(self) -> "ProviderRegistry":
        """冻结注册表（可重复调用）"""
        with self._lock:
            if self._frozen is None:
                self._frozen = MappingProxyType(dict(self._providers))
                logger.info(f"Provider registry finalized: {list(self._frozen)}")
        return self

    @property
    def providers(self) -> Mapping[str, TwoFactorProvider]:
        """按注册顺序的只读映射"""
        if self._frozen is not None:
            return self._frozen
        return MappingProxyType(dict(self._providers))

    def get(self, identifier: str) -> Optional[TwoFactorProvider]:
        if not identifier:
            return None
        return self.providers.get(identifier)

    def __contains__(self, identifier: Any) -> bool:
        return identifier in self.providers

    def __len__(self) -> int:
        return len(self.providers)

    def list_identifiers(self) -> List[str]:
        return list(self.providers.keys())

    def list_available_for(self, account: Account) -> List[TwoFactorProvider]:
        """账户可用的验证方式（保持注册顺序，可能为空列表）"""
        return [p for p in self.providers.values() if p.is_available_for(account)]

    def primary_id_for(self, account: Account) -> Optional[str]:
        """账户首选验证方式的标识

        未配置或标识已不在注册表中时返回 None（不修改已保存的配置）。
        """
        identifier = self._identity_store.get_primary_provider_id(account)
        if not identifier:
            return None
        if identifier not in self.providers:
            logger.warning(
                f"Account {account.id} has unregistered primary provider {identifier!r}"
            )
            return None
        return identifier

    def primary_for(self, account: Account) -> Optional[TwoFactorProvider]:
        """账户首选验证方式，未配置或已失效返回 None"""
        identifier = self.primary_id_for(account)
        return self.providers[identifier] if identifier else None

    def set_primary_for(self, account: Account, identifier: str) -> None:
        """更新账户首选验证方式

        Args:
            account: 账户
            identifier: 已注册的标识，空字符串表示关闭二次验证

        Raises:
            InvalidProvider: 标识未注册，此时不做任何持久化
        """
        identifier = identifier or ""
        if identifier and identifier not in self.providers:
            logger.warning(f"Rejected unknown provider {identifier!r} for account {account.id}")
            raise Err.invalid_provider(
                details=[f"provider: {identifier} is not registered"],
                provider=identifier,
            )
        self._identity_store.set_primary_provider_id(account, identifier)
        logger.info(f"Primary provider for account {account.id} set to {identifier or '(disabled)'}")

    def describe_for(self, account: Account) -> List[Dict[str, Any]]:
        """生成账户的验证方式选项表"""
        primary_id = self.primary_id_for(account)
        return [
            {
                "id": identifier,
                "label": provider.label,
                "available": provider.is_available_for(account),
                "primary": identifier == primary_id,
            }
            for identifier, provider in self.providers.items()
        ]
