"""
安全相关功能
JWT 签发/校验，以及基于角色的 FastAPI 依赖
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import settings
from .exceptions import AuthenticationError, PermissionDeniedError

ROLES = ("cook", "customer", "admin")


@dataclass(frozen=True)
class CurrentUser:
    """请求的调用方身份"""
    user_id: str
    role: str


class SecurityManager:
    """安全管理器"""

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None,
                 expire_hours: Optional[int] = None):
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expire_hours = expire_hours or settings.jwt_expire_hours

    def create_jwt_token(self, user_id: str, role: str,
                         additional_claims: Dict[str, Any] = None) -> str:
        """创建JWT token"""
        if role not in ROLES:
            raise AuthenticationError(f"Unknown role: {role}")

        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "role": role,
            "exp": now + timedelta(hours=self.expire_hours),
            "iat": now,
        }
        if additional_claims:
            payload.update(additional_claims)

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        """解码JWT token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

    def get_user_from_token(self, token: str) -> CurrentUser:
        """从token中提取用户ID和角色"""
        payload = self.decode_jwt_token(token)
        user_id = payload.get("sub")
        role = payload.get("role")
        if not user_id:
            raise AuthenticationError("Token missing subject")
        if role not in ROLES:
            raise AuthenticationError("Token missing role")
        return CurrentUser(user_id=str(user_id), role=role)


# 全局安全管理器实例
security_manager = SecurityManager()

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)
) -> CurrentUser:
    """从Authorization header中提取并验证调用方"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return security_manager.get_user_from_token(credentials.credentials)


def require_role(*roles: str):
    """生成角色校验依赖；admin 总是放行"""

    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role != "admin" and user.role not in roles:
            raise PermissionDeniedError(
                f"This action requires role: {', '.join(roles)}",
                details={"role": user.role}
            )
        return user

    return checker


require_cook = require_role("cook")
require_customer = require_role("customer")
