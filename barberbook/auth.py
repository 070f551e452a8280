# barberbook/auth.py

from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session

from barberbook import config, store
from barberbook.db import get_session

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def create_access_token(data: dict, expires_minutes: int = config.ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    claims = dict(data, exp=datetime.now(timezone.utc) + timedelta(minutes=expires_minutes))
    return jwt.encode(claims, config.SECRET_KEY, algorithm=config.ALGORITHM)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    """Resolve the bearer token to the acting user as a plain dict (the booking actor)."""
    try:
        email = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM]).get("sub")
    except JWTError:
        raise _unauthorized("Invalid token")
    if email is None:
        raise _unauthorized("Invalid token")

    user = store.find_user(session, email)
    if user is None:
        raise _unauthorized("User not found")

    return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}
