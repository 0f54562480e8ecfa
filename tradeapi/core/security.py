from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tradeapi.config import settings
from tradeapi.core.exceptions import AuthenticationError

# JWT Bearer 토큰 스킴 - 토큰 누락도 AuthenticationError 로 통일하기 위해 auto_error 끔
security = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: int,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """사용자 ID 를 담은 액세스 토큰 발급 (계정 서비스 / 테스트용)"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: Dict[str, Any] = {
        "sub": str(user_id),
        "user_id": user_id,
        "exp": expire,
        **(extra_claims or {}),
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_user_id(token: str) -> int:
    """토큰을 검증하고 user_id 를 반환합니다. user_id 클레임이 없으면 sub 사용"""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as exc:
        raise AuthenticationError("Invalid authentication credentials") from exc

    raw_user_id = payload.get("user_id", payload.get("sub"))
    try:
        user_id = int(raw_user_id)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Token does not identify a user") from exc
    if user_id <= 0:
        raise AuthenticationError("Token does not identify a user")
    return user_id


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> int:
    """필수 사용자 인증 - 유효한 Bearer 토큰이 필요함"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return decode_user_id(credentials.credentials)
