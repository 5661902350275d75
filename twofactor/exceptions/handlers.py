"""全局异常处理器

提供 FastAPI 全局异常处理器，自动将异常转换为统一的 JSON 响应格式。
"""

import os
import traceback

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from twofactor.log import get_logger, log_filter_hook_manager
from twofactor.response import ResponseStatus, ValidationErrorResponse
from .exceptions import BusinessException

logger = get_logger()


def _is_debug() -> bool:
    return os.getenv("DEBUG", "false").lower() == "true"


async def business_exception_handler(
    request: Request,
    exc: BusinessException
) -> JSONResponse:
    """业务异常处理器

    处理所有继承自 BusinessException 的异常，转换为统一的 JSON 响应。
    """
    logger.warning(
        f"Business exception occurred: {exc.code} - {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_code": exc.code,
            "status_code": exc.status_code,
        }
    )

    content = {
        "status": ResponseStatus.ERROR.value,
        "message": exc.message,
        "msg_details": exc.details,
        "data": {},
    }
    if exc.code:
        content["error_code"] = exc.code

    if _is_debug() and exc.extra:
        content["debug_info"] = log_filter_hook_manager.apply_filters(exc.extra)

    return JSONResponse(
        status_code=exc.status_code,
        content=content
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """请求参数验证异常处理器"""
    errors = []
    for error in exc.errors():
        loc_parts = [str(loc) for loc in error["loc"] if loc not in ("body", "query", "path", "header", "cookie")]
        field = ".".join(loc_parts) if loc_parts else "请求体"
        errors.append(f"{field}: {error['msg']}")

    logger.warning(
        f"Validation error: {len(errors)} field(s) failed validation",
        extra={"path": request.url.path, "method": request.method}
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": ResponseStatus.ERROR.value,
            "message": "请求参数验证失败",
            "msg_details": errors,
            "data": {},
            "error_code": "VALIDATION_ERROR"
        }
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """通用异常处理器

    捕获所有未被其他处理器处理的异常，记录完整堆栈信息，
    不向客户端暴露原始异常。
    """
    tb_lines = traceback.format_exception(type(exc), exc, exc.__traceback__)

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": "".join(tb_lines),
        }
    )

    content = {
        "status": ResponseStatus.ERROR.value,
        "message": "服务器内部错误",
        "msg_details": [],
        "data": {},
        "error_code": "INTERNAL_SERVER_ERROR"
    }

    if _is_debug():
        content["msg_details"] = [
            f"异常类型: {type(exc).__name__}",
            f"异常消息: {exc}"
        ]

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content
    )


def register_exception_handlers(app) -> None:
    """注册所有异常处理器到 FastAPI 应用

    使用示例:
        from fastapi import FastAPI
        from twofactor.exceptions import register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(BusinessException, business_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    # 通用异常处理器必须放在最后
    app.add_exception_handler(Exception, general_exception_handler)

    app.router.responses[422] = {
        "description": "请求参数验证失败",
        "model": ValidationErrorResponse,
    }

    logger.info("Exception handlers registered successfully")
