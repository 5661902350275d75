"""两步登录流程测试

覆盖完整登录场景：未启用二次验证、签发挑战、验证通过、
验证码错误后重新签发挑战、挑战无效时拒绝、账户不存在、存储失败以及频率限制
"""

import pytest

from twofactor.accounts import InMemoryIdentityStore
from twofactor.challenge import ChallengeCoordinator, ChallengeState
from twofactor.events import LoginEvent, LoginEventDispatcher, LoginEventKind
from twofactor.exceptions import (
    AccountNotFound,
    ErrorCode,
    NoProviderConfigured,
    PersistenceError,
    TooManyAttempts,
)
from twofactor.login import (
    CallbackSessionIssuer,
    ChallengeForm,
    TwoStepLogin,
)
from twofactor.rate_limiter import LoginRateLimiter
from twofactor.registry import ProviderRegistry


class FlippingIdentityStore(InMemoryIdentityStore):
    """读取若干次后首选验证方式变为空"""

    def __init__(self, reads_before_disable: int):
        super().__init__()
        self.reads_before_disable = reads_before_disable
        self.reads = 0

    def get_primary_provider_id(self, account):
        self.reads += 1
        if self.reads > self.reads_before_disable:
            return ""
        return super().get_primary_provider_id(account)


class TestPrimaryAuth:
    """主凭证校验通过后"""

    def test_account_without_two_factor(self, login_flow, bob, session_issuer):
        """未启用二次验证直接建立会话"""
        outcome = login_flow.on_primary_auth(bob, remember=True)

        assert outcome.state == ChallengeState.NO_CHALLENGE
        assert outcome.is_authenticated is True
        assert session_issuer.calls == [(bob.id, True)]

    def test_challenge_issued(self, login_flow, alice, session_issuer, challenge_store):
        """启用二次验证时只返回表单，不建立会话"""
        outcome = login_flow.on_primary_auth(alice)

        assert outcome.state == ChallengeState.PENDING
        assert outcome.is_authenticated is False
        assert isinstance(outcome.form, ChallengeForm)
        assert outcome.form.nonce == challenge_store.get(alice.id).token
        assert outcome.form.provider_label == "Fixed Code"
        assert outcome.form.error_message == ""
        assert session_issuer.calls == []

    def test_persistence_failure_aborts_login(self, registry, identity_store, session_issuer, alice, failing_store):
        """挑战保存失败时中止登录，不降级为单因素"""
        flow = TwoStepLogin(
            coordinator=ChallengeCoordinator(registry, failing_store),
            identity_store=identity_store,
            session_issuer=session_issuer,
        )

        with pytest.raises(PersistenceError):
            flow.on_primary_auth(alice)
        assert session_issuer.calls == []

    def test_form_to_dict(self, login_flow, alice):
        data = login_flow.on_primary_auth(alice, remember=True).form.to_dict()

        assert data["account_id"] == alice.id
        assert data["remember_me"] is True
        assert data["challenge"]["fields"][0]["name"] == "code"


class TestSubmit:
    """第二步提交"""

    def test_verified(self, login_flow, alice, session_issuer):
        nonce = login_flow.on_primary_auth(alice).form.nonce

        outcome = login_flow.submit(alice.id, nonce, "123456", remember=True)

        assert outcome.state == ChallengeState.VERIFIED
        assert outcome.session["account_id"] == alice.id
        assert session_issuer.calls == [(alice.id, True)]

    def test_account_id_as_string(self, login_flow, alice):
        """表单提交的账户 ID 是字符串"""
        nonce = login_flow.on_primary_auth(alice).form.nonce

        assert login_flow.submit("1", nonce, "123456").state == ChallengeState.VERIFIED

    def test_verified_after_30_minutes(self, login_flow, alice, clock):
        nonce = login_flow.on_primary_auth(alice).form.nonce
        clock.advance(minutes=30)

        assert login_flow.submit(alice.id, nonce, "123456").state == ChallengeState.VERIFIED

    def test_invalid_proof_rechallenges(self, login_flow, alice, session_issuer, challenge_store):
        """验证码错误时重新签发挑战，旧令牌失效"""
        old_nonce = login_flow.on_primary_auth(alice).form.nonce

        outcome = login_flow.submit(alice.id, old_nonce, "000000")

        assert outcome.state == ChallengeState.PENDING
        assert outcome.error.code == ErrorCode.INVALID_PROOF
        assert outcome.form.error_message == "Invalid verification code"
        assert outcome.form.nonce != old_nonce
        assert challenge_store.get(alice.id).token == outcome.form.nonce
        assert session_issuer.calls == []

        retry = login_flow.submit(alice.id, old_nonce, "123456")
        assert retry.state == ChallengeState.REJECTED
        assert retry.form is None
        assert retry.error.message == "Invalid or expired code"

    def test_retry_with_fresh_nonce(self, login_flow, alice):
        nonce = login_flow.on_primary_auth(alice).form.nonce
        fresh = login_flow.submit(alice.id, nonce, "000000").form.nonce

        assert login_flow.submit(alice.id, fresh, "123456").state == ChallengeState.VERIFIED

    def test_expired_rejected(self, login_flow, alice, clock, session_issuer, challenge_store):
        """61 分钟后提交被拒绝，需重新走主凭证登录"""
        nonce = login_flow.on_primary_auth(alice).form.nonce
        clock.advance(minutes=61)

        outcome = login_flow.submit(alice.id, nonce, "123456")

        assert outcome.state == ChallengeState.REJECTED
        assert outcome.error.code == ErrorCode.CHALLENGE_INVALID
        assert outcome.error.message == "Invalid or expired code"
        assert outcome.form is None
        assert challenge_store.get(alice.id) is None
        assert session_issuer.calls == []

    def test_forged_nonce_rejected(self, login_flow, alice, challenge_store):
        """令牌不匹配时挑战被消耗且不签发新挑战"""
        login_flow.on_primary_auth(alice)

        outcome = login_flow.submit(alice.id, "forged", "123456")

        assert outcome.state == ChallengeState.REJECTED
        assert outcome.form is None
        assert challenge_store.get(alice.id) is None

    def test_no_challenge_same_message(self, login_flow, alice):
        """无挑战与令牌错误的提示相同"""
        outcome = login_flow.submit(alice.id, "anything", "123456")

        assert outcome.state == ChallengeState.REJECTED
        assert outcome.error.message == "Invalid or expired code"

    def test_submit_without_primary_auth(self, login_flow, alice, challenge_store, session_issuer):
        """未通过主凭证登录时，只凭账户 ID 拿不到挑战令牌"""
        outcome = login_flow.submit("1", "x", "")

        assert outcome.state == ChallengeState.REJECTED
        assert outcome.form is None
        assert challenge_store.get(alice.id) is None
        assert len(challenge_store) == 0

        again = login_flow.submit("1", "x", "123456")
        assert again.state == ChallengeState.REJECTED
        assert session_issuer.calls == []

    def test_provider_removed_while_issuing(self, code_provider, challenge_store, session_issuer, alice):
        """签发挑战期间首选验证方式被移除时，以 NoProviderConfigured 结束"""
        identity_store = FlippingIdentityStore(reads_before_disable=2)
        identity_store.add(alice, provider_id="code")
        registry = ProviderRegistry(identity_store).register("code", code_provider).finalize()
        flow = TwoStepLogin(ChallengeCoordinator(registry, challenge_store), identity_store, session_issuer)

        with pytest.raises(NoProviderConfigured):
            flow.on_primary_auth(alice)
        assert session_issuer.calls == []

    def test_unknown_account(self, login_flow, challenge_store, session_issuer):
        """账户不存在是终态，不签发挑战"""
        with pytest.raises(AccountNotFound):
            login_flow.submit(404, "nonce", "123456")

        assert len(challenge_store) == 0
        assert session_issuer.calls == []

    def test_custom_renderer(self, coordinator, identity_store, alice):
        rendered = []

        def renderer(account, provider, token, error_message, remember):
            rendered.append((account.id, provider.label, token, error_message, remember))
            return f"<form>{token}</form>"

        flow = TwoStepLogin(
            coordinator=coordinator,
            identity_store=identity_store,
            session_issuer=CallbackSessionIssuer(lambda account, remember: "session"),
            renderer=renderer,
        )

        outcome = flow.on_primary_auth(alice, remember=True)

        assert outcome.form == f"<form>{rendered[0][2]}</form>"
        assert rendered[0][0] == alice.id
        assert rendered[0][3:] == ("", True)


class TestLoginEvents:
    """登录事件"""

    def test_failed_event_emitted(self, coordinator, identity_store, session_issuer, alice):
        events = LoginEventDispatcher()
        received = []
        events.on_mfa_failed(received.append)
        flow = TwoStepLogin(coordinator, identity_store, session_issuer, events=events)
        nonce = flow.on_primary_auth(alice).form.nonce

        flow.submit(alice.id, nonce, "000000")

        assert len(received) == 1
        assert received[0].kind == LoginEventKind.MFA_FAILED
        assert received[0].account_id == alice.id
        assert received[0].reason == "INVALID_PROOF"
        assert received[0].provider == "code"

    def test_succeeded_event_emitted(self, coordinator, identity_store, session_issuer, alice):
        events = LoginEventDispatcher()
        received = []
        events.on_mfa_succeeded(received.append)
        flow = TwoStepLogin(coordinator, identity_store, session_issuer, events=events)
        nonce = flow.on_primary_auth(alice).form.nonce

        flow.submit(alice.id, nonce, "123456")

        assert [e.kind for e in received] == [LoginEventKind.MFA_SUCCEEDED]

    def test_listener_error_does_not_break_login(self, coordinator, identity_store, session_issuer, alice):
        events = LoginEventDispatcher()

        @events.on_mfa_succeeded
        def broken(event: LoginEvent):
            raise RuntimeError("audit down")

        flow = TwoStepLogin(coordinator, identity_store, session_issuer, events=events)
        nonce = flow.on_primary_auth(alice).form.nonce

        assert flow.submit(alice.id, nonce, "123456").state == ChallengeState.VERIFIED

    def test_remove_listener(self, alice):
        events = LoginEventDispatcher()
        received = []
        events.add_listener(LoginEventKind.MFA_FAILED, received.append)
        events.remove_listener(LoginEventKind.MFA_FAILED, received.append)

        events.emit(LoginEvent(kind=LoginEventKind.MFA_FAILED, account_id=alice.id))

        assert received == []


class TestRateLimit:
    """账户级频率限制"""

    @pytest.fixture
    def limiter(self):
        return LoginRateLimiter(max_attempts=2, block_minutes=15)

    @pytest.fixture
    def limited_flow(self, coordinator, identity_store, session_issuer, limiter):
        return TwoStepLogin(coordinator, identity_store, session_issuer, rate_limiter=limiter)

    def test_blocked_after_failures(self, limited_flow, limiter, alice, challenge_store):
        """封锁后拒绝提交，且不触碰挑战"""
        nonce = limited_flow.on_primary_auth(alice).form.nonce
        nonce = limited_flow.submit(alice.id, nonce, "000000").form.nonce
        nonce = limited_flow.submit(alice.id, nonce, "000000").form.nonce

        assert limiter.is_blocked(alice.id) is True

        with pytest.raises(TooManyAttempts) as exc_info:
            limited_flow.submit(alice.id, nonce, "123456")

        assert exc_info.value.status_code == 429
        assert challenge_store.get(alice.id).token == nonce

    def test_success_resets_counter(self, limited_flow, limiter, alice):
        nonce = limited_flow.on_primary_auth(alice).form.nonce
        nonce = limited_flow.submit(alice.id, nonce, "000000").form.nonce
        assert limiter.get_remaining_attempts(alice.id) == 1

        limited_flow.submit(alice.id, nonce, "123456")

        assert limiter.get_remaining_attempts(alice.id) == 2
