# builddesk/schemas/api_result.py
from typing import Any, Optional
from pydantic import BaseModel
from builddesk.errors import ErrorType


class ApiResult(BaseModel):
    '''
    失败响应的结构化表达

    ok: bool - 这次请求是否完成预期操作
    error_type: Optional[ErrorType] - 错误类型，决定 HTTP 状态码
    error_message: Optional[str] - 面向人类的可读报错信息
    field: Optional[str] - 出错的输入字段（校验失败时）
    '''
    ok: bool

    error_type: Optional[ErrorType] = None
    error_message: Optional[str] = None
    field: Optional[str] = None

    data: Optional[Any] = None
