"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 可控时钟
- 身份存储、注册表、挑战存储
- 假 Redis 客户端
- 内存数据库
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Generator, List, Optional, Tuple

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from twofactor.accounts import Account, InMemoryIdentityStore
from twofactor.challenge import ChallengeCoordinator
from twofactor.login import SessionIssuer, TwoStepLogin
from twofactor.providers import (
    ChallengeField,
    ChallengeFragment,
    DummyProvider,
    FidoU2FProvider,
    TwoFactorProvider,
)
from twofactor.registry import ProviderRegistry
from twofactor.stores import ChallengeBase, ChallengeStore, InMemoryChallengeStore, StoreError


# ==================== 测试替身 ====================

class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class FixedCodeProvider(TwoFactorProvider):
    """只接受固定验证码的验证方式，并记录调用次数"""

    def __init__(self, code: str = "123456"):
        self.code = code
        self.verify_calls = 0

    @property
    def label(self) -> str:
        return "Fixed Code"

    def is_available_for(self, account: Account) -> bool:
        return True

    def render_challenge(self, account: Account) -> ChallengeFragment:
        return ChallengeFragment(
            prompt="Enter the code.",
            fields=[ChallengeField(name="code", label="Code")],
        )

    def verify(self, account: Account, proof: Optional[str]) -> bool:
        self.verify_calls += 1
        return proof == self.code


class FailingChallengeStore(ChallengeStore):
    """所有操作都失败的存储"""

    def put(self, account_id, challenge, ttl_seconds):
        raise StoreError("store unavailable")

    def get(self, account_id):
        raise StoreError("store unavailable")

    def delete(self, account_id):
        raise StoreError("store unavailable")

    def pop(self, account_id):
        raise StoreError("store unavailable")


class RecordingSessionIssuer(SessionIssuer):
    """记录会话签发调用"""

    def __init__(self):
        self.calls: List[Tuple[Any, bool]] = []

    def establish_session(self, account: Account, remember: bool) -> Any:
        self.calls.append((account.id, remember))
        return {"account_id": account.id, "remember": remember, "session_id": f"s-{len(self.calls)}"}


class FakePipeline:
    """收集命令，execute 时依次执行"""

    def __init__(self, client: "FakeRedis"):
        self._client = client
        self._commands = []

    def get(self, key):
        self._commands.append(("get", key))
        return self

    def delete(self, key):
        self._commands.append(("delete", key))
        return self

    def execute(self):
        if self._client.fail:
            raise RedisConnectionError("connection refused")
        results = [getattr(self._client, name)(key) for name, key in self._commands]
        self._commands = []
        return results


class FakeRedis:
    """最小化的 Redis 客户端替身（值以 bytes 保存）"""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise RedisConnectionError("connection refused")

    def setex(self, key, ttl, value):
        self._check()
        self.data[key] = value.encode() if isinstance(value, str) else value
        self.ttls[key] = ttl
        return True

    def get(self, key):
        self._check()
        return self.data.get(key)

    def delete(self, key):
        self._check()
        existed = key in self.data
        self.data.pop(key, None)
        self.ttls.pop(key, None)
        return 1 if existed else 0

    def pipeline(self, transaction=True):
        return FakePipeline(self)


# ==================== 基础 Fixtures ====================

@pytest.fixture
def clock():
    """可控时钟，起点 2024-01-01 12:00 UTC"""
    return FakeClock()


@pytest.fixture
def alice():
    return Account(id=1, login="alice", email="alice@example.com")


@pytest.fixture
def bob():
    """未启用二次验证的账户"""
    return Account(id=2, login="bob")


@pytest.fixture
def identity_store(alice, bob):
    store = InMemoryIdentityStore()
    store.add(alice, provider_id="code")
    store.add(bob)
    return store


@pytest.fixture
def code_provider():
    return FixedCodeProvider("123456")


@pytest.fixture
def registry(identity_store, code_provider):
    registry = ProviderRegistry(identity_store)
    registry.register("code", code_provider)
    registry.register("fido_u2f", FidoU2FProvider())
    registry.register("dummy", DummyProvider())
    return registry.finalize()


@pytest.fixture
def challenge_store():
    return InMemoryChallengeStore()


@pytest.fixture
def coordinator(registry, challenge_store, clock):
    return ChallengeCoordinator(registry, challenge_store, clock=clock)


@pytest.fixture
def failing_store():
    return FailingChallengeStore()


@pytest.fixture
def session_issuer():
    return RecordingSessionIssuer()


@pytest.fixture
def login_flow(coordinator, identity_store, session_issuer):
    return TwoStepLogin(
        coordinator=coordinator,
        identity_store=identity_store,
        session_issuer=session_issuer,
    )


# ==================== 存储 Fixtures ====================

@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(scope="function")
def memory_engine():
    """创建内存数据库引擎

    使用 StaticPool 和 check_same_thread=False，所有会话共享同一个连接。
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ChallengeBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(memory_engine) -> Generator[sessionmaker, None, None]:
    yield sessionmaker(autoflush=False, bind=memory_engine)
