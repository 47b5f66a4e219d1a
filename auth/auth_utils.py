from datetime import datetime, timedelta
from typing import Optional

from bson import ObjectId
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from config.settings import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, AUTH_COOKIE_NAME
from constants import ROLE_ADMIN, USER_STATUS_SUSPENDED
from database import users_collection
from utils.exceptions import UnauthorizedException, ForbiddenException

# Header is optional here: the cookie is tried when it is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash password using Argon2 algorithm."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify plain password against hashed password."""
    if not plain or not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token with expiration."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def token_for_user(user: dict) -> str:
    return create_access_token(
        {"sub": str(user["_id"]), "email": user["email"], "role": user.get("role")}
    )


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry; raises UnauthorizedException on any failure."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Invalid or expired token")
    if not payload.get("sub") or not ObjectId.is_valid(payload["sub"]):
        raise UnauthorizedException("Invalid authentication token")
    return payload


def extract_token(request: Request, header_token: Optional[str]) -> Optional[str]:
    return header_token or request.cookies.get(AUTH_COOKIE_NAME)


async def get_current_user(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> dict:
    """Resolve the caller from the bearer header or the session cookie."""
    token = extract_token(request, token)
    if not token:
        raise UnauthorizedException("No token provided")

    payload = decode_access_token(token)
    user = await users_collection.find_one({"_id": ObjectId(payload["sub"])})
    if not user:
        raise UnauthorizedException("Invalid token")
    if user.get("status") == USER_STATUS_SUSPENDED:
        raise UnauthorizedException("Account suspended")
    return user


def require_role(required_role: str):
    """Dependency factory: the caller must hold `required_role`; admins always pass."""
    async def _checker(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") != required_role and user.get("role") != ROLE_ADMIN:
            raise ForbiddenException("Insufficient permissions")
        return user
    return _checker


require_admin = require_role(ROLE_ADMIN)
