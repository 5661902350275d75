"""两步登录流程

把挑战协调器接到宿主应用的登录流程上：

1. 主凭证校验通过后调用 on_primary_auth()：未启用二次验证直接建立会话，
   否则签发挑战并返回第二步表单；
2. 用户提交第二步表单后调用 submit()：通过则建立会话；验证码错误时
   重新签发挑战并返回带错误提示的新表单；挑战缺失、令牌不匹配或过期时
   直接拒绝（REJECTED），必须重新走主凭证登录。

会话只会在未启用二次验证或校验通过（VERIFIED）时建立。

使用示例:
    login = TwoStepLogin(
        coordinator=coordinator,
        identity_store=identity_store,
        session_issuer=CallbackSessionIssuer(create_session),
    )

    outcome = login.on_primary_auth(account, remember=True)
    if outcome.state == ChallengeState.PENDING:
        return render(outcome.form)

    outcome = login.submit(form["account_id"], form["nonce"], form["authcode"])
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from twofactor.accounts import Account, IdentityStore
from twofactor.challenge import ChallengeCoordinator, ChallengeState
from twofactor.events import LoginEvent, LoginEventDispatcher, LoginEventKind
from twofactor.exceptions import (
    Err,
    TwoFactorException,
    ChallengeError,
    InvalidProof,
)
from twofactor.log import get_logger
from twofactor.providers.base import ChallengeFragment, TwoFactorProvider
from twofactor.rate_limiter import LoginRateLimiter

logger = get_logger()


@dataclass
class ChallengeForm:
    """第二步验证表单

    nonce 需要随表单原样回传。
    """
    account_id: Any
    nonce: str
    provider_label: str
    fragment: ChallengeFragment
    error_message: str = ""
    remember: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "nonce": self.nonce,
            "provider": self.provider_label,
            "error_message": self.error_message,
            "remember_me": self.remember,
            "challenge": self.fragment.to_dict(),
        }


@dataclass
class LoginOutcome:
    """登录流程的一步结果

    Attributes:
        state: 当前状态
        session: 已建立的会话（仅 NO_CHALLENGE / VERIFIED）
        form: 第二步表单（仅 PENDING）
        error: 导致重新签发挑战的异常
    """
    state: ChallengeState
    session: Any = None
    form: Optional[ChallengeForm] = None
    error: Optional[TwoFactorException] = None

    @property
    def is_authenticated(self) -> bool:
        return self.state in (ChallengeState.NO_CHALLENGE, ChallengeState.VERIFIED)


class SessionIssuer(ABC):
    """会话签发接口（由宿主应用实现）"""

    @abstractmethod
    def establish_session(self, account: Account, remember: bool) -> Any:
        pass


class CallbackSessionIssuer(SessionIssuer):
    """用函数实现的会话签发器"""

    def __init__(self, callback: Callable[[Account, bool], Any]):
        self._callback = callback

    def establish_session(self, account: Account, remember: bool) -> Any:
        return self._callback(account, remember)


ChallengeRenderer = Callable[[Account, TwoFactorProvider, str, str, bool], Any]


def render_challenge_form(
    account: Account,
    provider: TwoFactorProvider,
    token: str,
    error_message: str = "",
    remember: bool = False,
) -> ChallengeForm:
    """默认渲染器：生成结构化表单，由前端负责展示"""
    return ChallengeForm(
        account_id=account.id,
        nonce=token,
        provider_label=provider.label,
        fragment=provider.render_challenge(account),
        error_message=error_message,
        remember=remember,
    )


class TwoStepLogin:
    """两步登录流程

    Args:
        coordinator: 挑战协调器
        identity_store: 身份存储
        session_issuer: 会话签发器
        renderer: 挑战表单渲染器
        events: 登录事件分发器
        rate_limiter: 失败频率限制器（可选）
    """

    def __init__(
        self,
        coordinator: ChallengeCoordinator,
        identity_store: IdentityStore,
        session_issuer: SessionIssuer,
        renderer: ChallengeRenderer = render_challenge_form,
        events: Optional[LoginEventDispatcher] = None,
        rate_limiter: Optional[LoginRateLimiter] = None,
    ):
        self.coordinator = coordinator
        self.identity_store = identity_store
        self.session_issuer = session_issuer
        self.renderer = renderer
        self.events = events or LoginEventDispatcher()
        self.rate_limiter = rate_limiter

        if rate_limiter is not None:
            listener = rate_limiter.as_listener()
            self.events.add_listener(LoginEventKind.MFA_FAILED, listener)
            self.events.add_listener(LoginEventKind.MFA_SUCCEEDED, listener)

    @property
    def registry(self):
        return self.coordinator.registry

    def _issue_challenge(self, account: Account, remember: bool, error_message: str = "") -> Any:
        provider = self.registry.primary_for(account)
        if provider is None:
            raise Err.no_provider(account_id=account.id)
        token = self.coordinator.begin(account)
        return self.renderer(account, provider, token, error_message, remember)

    def on_primary_auth(self, account: Account, remember: bool = False) -> LoginOutcome:
        """主凭证校验通过后调用

        Raises:
            PersistenceError: 挑战保存失败，登录必须中止
        """
        if not self.coordinator.requires_challenge(account):
            session = self.session_issuer.establish_session(account, remember)
            return LoginOutcome(state=ChallengeState.NO_CHALLENGE, session=session)

        form = self._issue_challenge(account, remember)
        return LoginOutcome(state=ChallengeState.PENDING, form=form)

    def submit(
        self,
        account_id: Any,
        nonce: Optional[str],
        proof: Optional[str],
        remember: bool = False,
    ) -> LoginOutcome:
        """处理第二步提交

        Returns:
            VERIFIED: 已建立会话
            PENDING: 验证码错误，已重新签发挑战并返回新表单
            REJECTED: 挑战缺失、令牌不匹配或已过期，需重新走主凭证登录

        Raises:
            AccountNotFound: 账户不存在（终态，不重新签发挑战）
            TooManyAttempts: 账户因连续失败被封锁
            NoProviderConfigured: 首选验证方式已失效
            PersistenceError: 挑战存储不可用
        """
        account = self.identity_store.get_account(account_id)
        if account is None:
            logger.warning(f"Second step rejected: account {account_id} not found")
            raise Err.account_not_found(account_id=account_id)

        if self.rate_limiter is not None and self.rate_limiter.is_blocked(account.id):
            raise Err.too_many_attempts(
                retry_after=self.rate_limiter.get_block_remaining_seconds(account.id),
            )

        try:
            self.coordinator.verify(account, nonce, proof)
        except ChallengeError as e:
            # 没有有效令牌就无法证明主凭证已通过，不能签发新挑战
            self._emit_failure(account, e)
            return LoginOutcome(state=ChallengeState.REJECTED, error=e)
        except InvalidProof as e:
            self._emit_failure(account, e)
            form = self._issue_challenge(account, remember, e.message)
            return LoginOutcome(state=ChallengeState.PENDING, form=form, error=e)

        self.events.emit(LoginEvent(
            kind=LoginEventKind.MFA_SUCCEEDED,
            account_id=account.id,
            provider=self.registry.primary_id_for(account),
        ))
        session = self.session_issuer.establish_session(account, remember)
        return LoginOutcome(state=ChallengeState.VERIFIED, session=session)

    def _emit_failure(self, account: Account, error: TwoFactorException) -> None:
        self.events.emit(LoginEvent(
            kind=LoginEventKind.MFA_FAILED,
            account_id=account.id,
            reason=getattr(error.code, "value", error.code),
            provider=self.registry.primary_id_for(account),
        ))
