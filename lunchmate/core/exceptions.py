"""
自定义异常类
提供更精确的错误处理和异常信息

领域异常（参数、不存在、选择无效、截单）由服务层抛出，由 error_handler
转换为带 error_code 的 JSON 响应；DatabaseError 表示基础设施故障，单独处理。
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """应用基础异常类"""

    default_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常"""
    default_code = "DATABASE_ERROR"


class DuplicateKeyError(DatabaseError):
    """唯一约束冲突（并发插入同一逻辑键）"""
    default_code = "DUPLICATE_KEY"


class ConcurrencyError(BaseApplicationError):
    """并发控制错误"""
    default_code = "CONCURRENCY_CONFLICT"


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""
    default_code = "AUTHENTICATION_REQUIRED"


class PermissionDeniedError(BaseApplicationError):
    """权限拒绝错误"""
    default_code = "PERMISSION_DENIED"


class BusinessLogicError(BaseApplicationError):
    """业务逻辑异常"""
    default_code = "BUSINESS_RULE_VIOLATION"


class InvalidArgumentError(BusinessLogicError):
    """缺少必填标识等调用方可修正的参数错误"""
    default_code = "INVALID_ARGUMENT"


class NotFoundError(BusinessLogicError):
    """引用的菜单日、订单或菜品不存在"""
    default_code = "RESOURCE_NOT_FOUND"


class MenuDayNotFoundError(NotFoundError):
    """菜单日不存在"""
    default_code = "MENU_DAY_NOT_FOUND"

    def __init__(self, message: str = "No menu found for the selected day.", **kwargs):
        super().__init__(message, **kwargs)


class OrderNotFoundError(NotFoundError):
    """订单不存在"""
    default_code = "ORDER_NOT_FOUND"

    def __init__(self, message: str = "Order not found.", **kwargs):
        super().__init__(message, **kwargs)


class MealNotFoundError(NotFoundError):
    """菜品在目录中不存在"""
    default_code = "MEAL_NOT_FOUND"

    def __init__(self, message: str = "Meal not found.", **kwargs):
        super().__init__(message, **kwargs)


class InvalidSelectionError(BusinessLogicError):
    """所选菜品不属于当天菜单"""
    default_code = "INVALID_SELECTION"

    def __init__(self, message: str = "Selected meal is not part of this day's menu.", **kwargs):
        super().__init__(message, **kwargs)


class CutoffExpiredError(BusinessLogicError):
    """已过截单时间"""
    default_code = "CUTOFF_EXPIRED"

    def __init__(self, message: str = "Cutoff time has passed. You cannot modify this order.", **kwargs):
        super().__init__(message, **kwargs)


class OrderStatusError(BusinessLogicError):
    """订单状态不允许该操作"""
    default_code = "ORDER_STATUS_INVALID"


class MenuDayStatusError(BusinessLogicError):
    """菜单日状态流转非法"""
    default_code = "MENU_DAY_STATUS_INVALID"
