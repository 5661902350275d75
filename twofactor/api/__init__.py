"""二次验证 API 路由

使用示例::

    from twofactor.api import create_two_factor_router

    app.include_router(
        create_two_factor_router(login_flow, options_dependencies=[Depends(get_current_user)]),
        prefix="/api/v1/2fa",
    )
"""

from .two_factor_api import (
    create_two_factor_router,
    create_two_step_router,
    create_options_router,
)

__all__ = [
    "create_two_factor_router",
    "create_two_step_router",
    "create_options_router",
]
