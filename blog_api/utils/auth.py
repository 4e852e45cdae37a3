"""
认证工具函数（管理员身份）
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fastapi import Header, HTTPException, status
from blog_api.core.config import settings

ADMIN_ROLE = "admin"


@dataclass
class AdminUser:
    """管理员资料"""
    nickname: str
    email: str
    website: Optional[str] = None
    avatar: Optional[str] = None


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    创建JWT访问token

    Args:
        data: 要编码到token中的数据
        expires_delta: token过期时间增量，默认使用配置中的时间

    Returns:
        str: JWT token字符串
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def create_admin_token(expires_delta: Optional[timedelta] = None) -> str:
    """创建管理员token"""
    return create_access_token({"sub": "admin", "role": ADMIN_ROLE}, expires_delta)


def verify_token(token: str, raise_on_error: bool = True) -> Optional[Dict[str, Any]]:
    """
    验证JWT token

    Args:
        token: JWT token字符串
        raise_on_error: 验证失败时是否抛出异常，False时返回None

    Returns:
        Dict: token中的payload数据，验证失败时返回None（如果raise_on_error=False）

    Raises:
        HTTPException: token无效或过期（如果raise_on_error=True）
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        if raise_on_error:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token无效或已过期",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return None


async def get_admin_user(authorization: Optional[str] = Header(None)) -> Optional[AdminUser]:
    """
    从请求头获取管理员身份

    未提供token、格式错误或token无效时返回None（按普通访客处理）

    Args:
        authorization: Authorization请求头，格式为 "Bearer {token}"

    Returns:
        AdminUser: 管理员资料，非管理员返回None
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    payload = verify_token(parts[1], raise_on_error=False)
    if not payload or payload.get("role") != ADMIN_ROLE:
        return None

    return AdminUser(
        nickname=settings.ADMIN_NICKNAME,
        email=settings.ADMIN_EMAIL,
        website=settings.ADMIN_WEBSITE,
        avatar=settings.ADMIN_AVATAR
    )
