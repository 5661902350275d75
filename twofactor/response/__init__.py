"""响应模块

统一的 JSON 响应信封：{status, message, msg_details, data}

使用示例:
    from twofactor.response import Resp

    return Resp.OK(data=result, message="验证成功")
    return Resp.Unauthorized(data={"form": form}, message="Invalid verification code")
"""

from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


T = TypeVar('T')


class ResponseStatus(str, Enum):
    """响应状态枚举，与 HTTP 状态码独立"""
    SUCCESS = "success"
    ERROR = "error"


class ItemResponse(BaseModel, Generic[T]):
    """泛型单项响应模型"""
    status: str = Field(default="success", description="响应状态")
    message: str = Field(default="请求成功", description="响应消息")
    msg_details: List[str] = Field(default=[], description="详细信息")
    data: T = Field(description="数据")


class OkResponse(BaseModel):
    """通用操作响应模型（设置、删除等简单操作）"""
    status: str = Field(default="success", description="响应状态")
    message: str = Field(default="请求成功", description="响应消息")
    msg_details: List[str] = Field(default=[], description="详细信息")
    data: dict = Field(default={}, description="操作结果")


class ValidationErrorResponse(BaseModel):
    """验证错误响应模型（422）"""
    status: str = Field(default="error", description="响应状态")
    message: str = Field(default="请求参数验证失败", description="错误消息")
    msg_details: List[str] = Field(default=[], description="各字段验证错误详情")
    data: dict = Field(default={}, description="空数据")
    error_code: str = Field(default="VALIDATION_ERROR", description="错误码")


def _envelope(
    response_status: ResponseStatus,
    message: str,
    data: Any = None,
    msg_details: Optional[List[str]] = None,
    error_code: Optional[str] = None,
) -> dict:
    content = {
        "status": response_status.value,
        "message": message,
        "msg_details": msg_details or [],
        "data": data if data is not None else {},
    }
    if error_code:
        content["error_code"] = error_code
    return content


class Resp:
    """响应快捷类"""

    @staticmethod
    def OK(data: Any = None, message: str = "请求成功", msg_details: List[str] = None) -> dict:
        """成功响应 (200)，返回 dict 交由 FastAPI 按 response_model 序列化"""
        return _envelope(ResponseStatus.SUCCESS, message, data, msg_details)

    @staticmethod
    def Error(
        status_code: int,
        message: str,
        data: Any = None,
        error_code: Optional[str] = None,
        msg_details: List[str] = None,
    ) -> JSONResponse:
        """错误响应（任意状态码）"""
        return JSONResponse(
            status_code=status_code,
            content=_envelope(ResponseStatus.ERROR, message, data, msg_details, error_code),
        )

    @staticmethod
    def Unauthorized(data: Any = None, message: str = "未授权", error_code: Optional[str] = None) -> JSONResponse:
        """未授权响应 (401)"""
        return Resp.Error(status.HTTP_401_UNAUTHORIZED, message, data, error_code)


__all__ = [
    "Resp",
    "ResponseStatus",
    "ItemResponse",
    "OkResponse",
    "ValidationErrorResponse",
]
