from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from exco_nominations.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from exco_nominations.models.admin_model import AdminUser

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


# Hash a password
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


# Verify a plain password against a hash
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def is_password_hash(value: str) -> bool:
    return pwd_context.identify(value) is not None


# Create JWT access token
def create_access_token(admin: AdminUser, expires_delta: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    to_encode = {
        "sub": admin.email,
        "name": admin.name,
        "privilege": admin.privilege,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_delta),
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> AdminUser:
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    return AdminUser(name=payload["name"], email=payload["sub"], privilege=payload["privilege"])


def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> AdminUser:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin login required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_access_token(credentials.credentials)
    except (JWTError, KeyError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_super_admin(admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
    if not admin.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only Super Administrators can perform this action.",
        )
    return admin
