# auth.py — Authentication for the storefront API
# Features:
# - JWT access tokens with JTI
# - bcrypt password hashing (cost 10)
# - Brute force protection on login
# - Role checks (admin, user)

import os
import uuid
import secrets
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from collections import defaultdict

from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field

from models import UserRole
from passwords import verify_password
from schemas import UserRecord, UserUpdate
from storage import Storage, get_storage

logger = logging.getLogger("storefront.auth")

# ============================================================
# CONFIGURATION
# ============================================================

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
if not SECRET_KEY:
    SECRET_KEY = secrets.token_urlsafe(64)
    logger.warning(
        "JWT_SECRET_KEY not set. Generated ephemeral key; "
        "tokens will not survive a restart. Set JWT_SECRET_KEY in production!"
    )

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
MIN_PASSWORD_LENGTH = 6
MAX_LOGIN_ATTEMPTS = 5
LOGIN_LOCKOUT_MINUTES = 15

security = HTTPBearer()

# In-memory brute force tracker (per process)
_login_attempts: Dict[str, list] = defaultdict(list)


# ============================================================
# PYDANTIC SCHEMAS
# ============================================================

class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    name: Optional[str] = None


class UserLogin(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: Dict[str, Any]


class CurrentUser(BaseModel):
    id: int
    username: str
    email: str
    role: str


# ============================================================
# AUTH SERVICE
# ============================================================

class AuthService:
    """Token issuing and credential checks on top of the storage layer"""

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        to_encode.update({
            "exp": now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
            "iat": now,
            "type": "access",
            "jti": str(uuid.uuid4()),
        })
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def token_for(user: UserRecord) -> TokenResponse:
        token = AuthService.create_access_token({
            "sub": str(user.id),
            "username": user.username,
            "role": user.role,
        })
        return TokenResponse(
            token=token,
            expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=user.public(),
        )

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except JWTError:
            raise HTTPException(status_code=401, detail="Invalid token")

    @staticmethod
    def _check_brute_force(username: str) -> None:
        """Check if login attempts exceed threshold"""
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=LOGIN_LOCKOUT_MINUTES)
        key = username.lower()
        _login_attempts[key] = [t for t in _login_attempts[key] if t > cutoff]
        if len(_login_attempts[key]) >= MAX_LOGIN_ATTEMPTS:
            raise HTTPException(
                status_code=429,
                detail=f"Too many login attempts. Try again in {LOGIN_LOCKOUT_MINUTES} minutes.",
            )

    @staticmethod
    def _record_failed_attempt(username: str) -> None:
        _login_attempts[username.lower()].append(datetime.now(timezone.utc))

    @staticmethod
    def _clear_attempts(username: str) -> None:
        _login_attempts.pop(username.lower(), None)

    @staticmethod
    async def authenticate_user(username: str, password: str, storage: Storage) -> Optional[UserRecord]:
        AuthService._check_brute_force(username)

        user = await storage.get_user_by_username(username)
        if not user or not verify_password(password, user.password):
            AuthService._record_failed_attempt(username)
            return None

        AuthService._clear_attempts(username)

        # A failed last-login write must not block the login itself
        try:
            updated = await storage.update_user(user.id, UserUpdate(last_login=datetime.now(timezone.utc)))
            user = updated or user
        except Exception as e:
            logger.error(f"Error updating last login for user {user.id}: {e}")

        return user


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    storage: Storage = Depends(get_storage),
) -> CurrentUser:
    payload = AuthService.verify_token(credentials.credentials)

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")

    user = await storage.get_user(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return CurrentUser(id=user.id, username=user.username, email=user.email, role=user.role)


def require_role(*roles: UserRole):
    """Dependency factory: require user to have one of the specified roles"""
    allowed = {r.value for r in roles}

    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient role privileges")
        return user
    return _check
