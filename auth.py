import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

import config
from errors import Unauthenticated

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


class Principal(BaseModel):
    id: str
    email: str


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"iat": now, "exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def token_for(principal: Principal) -> str:
    return create_access_token({"sub": principal.id, "email": principal.email})


def decode_access_token(token: str) -> Principal:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as e:
        logger.warning("token verification failed: %s", e)
        raise Unauthenticated("Invalid token. Please sign in again.")
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthenticated("Invalid token. Please sign in again.")
    return Principal(id=user_id, email=payload.get("email") or "")


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        config.AUTH_COOKIE_NAME,
        token,
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(config.AUTH_COOKIE_NAME, httponly=True, secure=config.COOKIE_SECURE, samesite="lax")


def get_current_user(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Principal:
    """Resolve the calling principal.

    Checked in order: the gateway-injected ``x-user-id`` header (only when
    TRUST_USER_HEADER is on), an ``Authorization: Bearer`` token, then the
    session cookie.
    """
    if config.TRUST_USER_HEADER:
        user_id = request.headers.get("x-user-id")
        if user_id:
            return Principal(id=user_id, email=request.headers.get("x-user-email", ""))
    token = bearer or request.cookies.get(config.AUTH_COOKIE_NAME)
    if not token:
        raise Unauthenticated()
    return decode_access_token(token)
