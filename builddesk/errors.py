# builddesk/errors.py
from enum import Enum
from typing import Optional


class ErrorType(str, Enum):
    '''
    业务失败的结构化分类，决定 HTTP 状态码

    NOT_FOUND: 任意 id 查找失败（project / estimation / item / template / agreement / line item）
    VALIDATION_ERROR: 输入不合法，例如负数数量、负数单价、必填字段为空
    INVARIANT_VIOLATION: 操作会破坏领域不变量，例如删除项目唯一的估算版本
    SYSTEM_ERROR: 未分类异常
    '''
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class BuilddeskError(Exception):
    error_type: ErrorType = ErrorType.SYSTEM_ERROR
    http_status: int = 500

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(BuilddeskError):
    error_type = ErrorType.NOT_FOUND
    http_status = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id: str) -> "NotFoundError":
        return cls(f"{entity} not found: {entity_id}")


class ValidationError(BuilddeskError):
    error_type = ErrorType.VALIDATION_ERROR
    http_status = 400


class InvariantViolation(BuilddeskError):
    error_type = ErrorType.INVARIANT_VIOLATION
    http_status = 409
