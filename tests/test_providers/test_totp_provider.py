"""TOTP 验证方式测试

使用 RFC 4226 / RFC 6238 附录中的测试向量
"""

import pytest

from twofactor.accounts import Account
from twofactor.providers import TOTPProvider, generate_secret, hotp, totp, verify_totp

# ASCII "12345678901234567890" 的 Base32 编码
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


class TestTOTPAlgorithm:
    """HOTP / TOTP 算法测试"""

    @pytest.mark.parametrize("counter,expected", [
        (0, "755224"),
        (1, "287082"),
        (2, "359152"),
        (3, "969429"),
        (4, "338314"),
    ])
    def test_hotp_rfc4226_vectors(self, counter, expected):
        """RFC 4226 测试向量"""
        assert hotp(RFC_SECRET, counter) == expected

    def test_totp_rfc6238_vectors(self):
        """RFC 6238 测试向量（8 位）"""
        assert totp(RFC_SECRET, time_step=30, digits=8, timestamp=59) == "94287082"
        assert totp(RFC_SECRET, time_step=30, digits=8, timestamp=1111111109) == "07081804"

    def test_verify_within_window(self):
        """前后一个时间步内的代码有效"""
        assert verify_totp(RFC_SECRET, "287082", timestamp=59)
        assert verify_totp(RFC_SECRET, "287082", timestamp=89)
        assert not verify_totp(RFC_SECRET, "287082", timestamp=149)

    def test_generate_secret_is_base32(self):
        """生成的密钥可以直接用于计算"""
        secret = generate_secret()
        assert len(totp(secret)) == 6
        assert generate_secret() != secret


class TestTOTPProvider:
    """TOTP 提供者测试"""

    @pytest.fixture
    def now(self):
        return {"ts": 59}

    @pytest.fixture
    def totp_provider(self, now):
        """创建使用独立存储和固定时钟的 TOTP 提供者"""
        provider = TOTPProvider(issuer="TestApp", clock=lambda: now["ts"])
        secrets = {}
        provider.set_stores(
            store=lambda account_id, secret: secrets.update({account_id: secret}) or True,
            getter=lambda account_id: secrets.get(account_id),
        )
        return provider

    @pytest.fixture
    def account(self):
        return Account(id=7, login="carol", email="carol@example.com")

    def test_label(self, totp_provider):
        assert "TOTP" in totp_provider.label

    def test_not_available_before_setup(self, totp_provider, account):
        """未设置密钥时不可用"""
        assert totp_provider.is_available_for(account) is False

    def test_setup(self, totp_provider, account):
        """设置后返回密钥和 otpauth URI"""
        setup = totp_provider.setup(account)

        assert setup["secret"]
        assert setup["uri"].startswith("otpauth://totp/")
        assert "TestApp" in setup["uri"]
        assert "carol%40example.com" in setup["uri"]
        assert totp_provider.is_available_for(account) is True

    def test_verify_current_code(self, totp_provider, account):
        totp_provider.setup(account, secret=RFC_SECRET)

        assert totp_provider.current_code(account) == "287082"
        assert totp_provider.verify(account, "287082") is True

    def test_verify_accepts_spaces_and_dashes(self, totp_provider, account):
        totp_provider.setup(account, secret=RFC_SECRET)

        assert totp_provider.verify(account, "287 082") is True
        assert totp_provider.verify(account, "287-082") is True

    def test_verify_rejects_wrong_code(self, totp_provider, account):
        totp_provider.setup(account, secret=RFC_SECRET)

        assert totp_provider.verify(account, "000000") is False

    @pytest.mark.parametrize("proof", [None, "", "12345", "1234567", "abcdef"])
    def test_verify_rejects_malformed(self, totp_provider, account, proof):
        totp_provider.setup(account, secret=RFC_SECRET)

        assert totp_provider.verify(account, proof) is False

    def test_verify_outside_window(self, totp_provider, account, now):
        """超出时间窗口的旧代码无效"""
        totp_provider.setup(account, secret=RFC_SECRET)
        now["ts"] = 149

        assert totp_provider.verify(account, "287082") is False
        assert totp_provider.verify(account, "338314") is True

    def test_verify_without_secret(self, totp_provider, account):
        assert totp_provider.verify(account, "287082") is False

    def test_disable(self, totp_provider, account):
        totp_provider.setup(account)
        totp_provider.disable(account)

        assert totp_provider.is_available_for(account) is False

    def test_default_memory_store(self, account):
        """未设置回调时使用内存存储"""
        provider = TOTPProvider(clock=lambda: 59)
        provider.setup(account, secret=RFC_SECRET)

        assert provider.verify(account, "287082") is True

    def test_render_challenge(self, totp_provider, account):
        fragment = totp_provider.render_challenge(account)

        assert fragment.fields[0].name == "authcode"
        assert fragment.fields[0].autocomplete == "one-time-code"
