"""二次验证路由

端点列表：
    POST /twostep                        - 提交第二步验证（登录路由，无需会话）
    GET  /accounts/{account_id}/options  - 获取账户的验证方式选项（选项路由）
    PUT  /accounts/{account_id}/options  - 更新账户的首选验证方式（选项路由）

主凭证登录由宿主应用负责，成功后调用 TwoStepLogin.on_primary_auth()，
把返回的表单交给前端；前端提交表单到 /twostep。

/twostep 必须在建立会话之前可访问，而选项路由会修改账户的安全设置，
宿主应用应当通过 options_dependencies 为其加上鉴权。

使用示例::

    from fastapi import Depends
    from twofactor.api import create_two_factor_router

    router = create_two_factor_router(
        login_flow,
        options_dependencies=[Depends(require_account_owner)],
    )
    app.include_router(router, prefix="/api/v1/2fa", tags=["two-factor"])

    # 或分别挂载
    app.include_router(create_two_step_router(login_flow), prefix="/login")
    app.include_router(
        create_options_router(registry, identity_store, dependencies=[Depends(require_admin)]),
        prefix="/admin/2fa",
    )
"""

from typing import Any, List, Optional, Sequence

from fastapi import APIRouter, Path
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel as PydanticBaseModel, Field

from twofactor.accounts import Account, IdentityStore
from twofactor.challenge import ChallengeState
from twofactor.exceptions import Err
from twofactor.login import ChallengeForm, TwoStepLogin
from twofactor.registry import ProviderRegistry
from twofactor.response import Resp, ItemResponse


def _form_data(form: Any) -> Any:
    if isinstance(form, ChallengeForm):
        return form.to_dict()
    return jsonable_encoder(form)


def create_two_step_router(login_flow: TwoStepLogin) -> APIRouter:
    """创建第二步验证路由（不带鉴权依赖）

    Args:
        login_flow: 两步登录流程

    Returns:
        APIRouter
    """
    router = APIRouter()

    class TwoStepRequest(PydanticBaseModel):
        """第二步验证请求"""
        account_id: str = Field(..., min_length=1, description="账户ID")
        nonce: str = Field(default="", description="挑战令牌")
        proof: str = Field(default="", description="验证码")
        remember_me: bool = Field(default=False, description="记住登录")

    @router.post("/twostep", summary="提交第二步验证")
    def twostep(data: TwoStepRequest):
        """校验挑战令牌和验证码

        - 通过：200，返回会话
        - 验证码错误：401，state=pending，返回新签发的挑战表单
        - 挑战缺失、无效或过期：401，state=rejected，需重新走主凭证登录
        """
        outcome = login_flow.submit(
            account_id=data.account_id,
            nonce=data.nonce,
            proof=data.proof,
            remember=data.remember_me,
        )

        if outcome.state == ChallengeState.VERIFIED:
            return Resp.OK(
                data={"state": outcome.state.value, "session": jsonable_encoder(outcome.session)},
                message="验证成功",
            )

        error = outcome.error
        payload = {"state": outcome.state.value}
        if outcome.form is not None:
            payload["form"] = _form_data(outcome.form)
        return Resp.Unauthorized(
            data=payload,
            message=error.message if error else "验证失败",
            error_code=getattr(error.code, "value", error.code) if error else None,
        )

    return router


def create_options_router(
    registry: ProviderRegistry,
    identity_store: IdentityStore,
    dependencies: Optional[Sequence] = None,
) -> APIRouter:
    """创建验证方式选项路由

    Args:
        registry: 验证方式注册表
        identity_store: 身份存储
        dependencies: 路由级别依赖（如鉴权、权限检查）

    Returns:
        APIRouter
    """
    router = APIRouter(dependencies=list(dependencies) if dependencies else None)

    class UpdateOptionsRequest(PydanticBaseModel):
        """更新首选验证方式请求，空字符串表示关闭二次验证"""
        provider: str = Field(default="", description="验证方式标识")

    class ProviderOption(PydanticBaseModel):
        id: str
        label: str
        available: bool
        primary: bool

    class OptionsResponse(PydanticBaseModel):
        account_id: str
        primary: str = ""
        providers: List[ProviderOption] = []

    def _get_account(account_id: str) -> Account:
        account = identity_store.get_account(account_id)
        if account is None:
            raise Err.account_not_found(account_id=account_id)
        return account

    def _options(account: Account) -> dict:
        return {
            "account_id": str(account.id),
            "primary": registry.primary_id_for(account) or "",
            "providers": registry.describe_for(account),
        }

    @router.get(
        "/accounts/{account_id}/options",
        response_model=ItemResponse[OptionsResponse],
        summary="获取验证方式选项",
    )
    def get_options(account_id: str = Path(..., description="账户ID")):
        account = _get_account(account_id)
        return Resp.OK(_options(account))

    @router.put(
        "/accounts/{account_id}/options",
        response_model=ItemResponse[OptionsResponse],
        summary="更新首选验证方式",
    )
    def update_options(
        data: UpdateOptionsRequest,
        account_id: str = Path(..., description="账户ID"),
    ):
        """未注册的验证方式返回 422，不做任何修改"""
        account = _get_account(account_id)
        registry.set_primary_for(account, data.provider)
        return Resp.OK(_options(account), message="设置成功")

    return router


def create_two_factor_router(
    login_flow: TwoStepLogin,
    registry: Optional[ProviderRegistry] = None,
    identity_store: Optional[IdentityStore] = None,
    options_dependencies: Optional[Sequence] = None,
) -> APIRouter:
    """创建二次验证路由

    组合第二步验证与验证方式选项两组子路由，鉴权依赖只作用于选项路由。

    Args:
        login_flow: 两步登录流程
        registry: 验证方式注册表（默认取 login_flow 的）
        identity_store: 身份存储（默认取 login_flow 的）
        options_dependencies: 选项路由的依赖（如鉴权）

    Returns:
        APIRouter
    """
    if registry is None:
        registry = login_flow.registry
    if identity_store is None:
        identity_store = login_flow.identity_store

    router = APIRouter()
    router.include_router(create_two_step_router(login_flow))
    router.include_router(
        create_options_router(registry, identity_store, dependencies=options_dependencies)
    )
    return router
