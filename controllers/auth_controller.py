# controllers/auth_controller.py
import logging

from fastapi import APIRouter, Depends, Request, Response
from pymongo.errors import DuplicateKeyError

from auth.auth_utils import get_current_user, hash_password, token_for_user, verify_password
from config.settings import ACCESS_TOKEN_EXPIRE_MINUTES, AUTH_COOKIE_NAME, COOKIE_SECURE
from constants import MIN_PASSWORD_LENGTH, ROLE_USER, USER_STATUS_ACTIVE, USER_STATUS_SUSPENDED
from database import users_collection
from middleware.rate_limiter import limiter, RATE_LIMIT_LOGIN, RATE_LIMIT_REGISTER
from models.user_model import UserLogin, UserRegister, UserResponse
from utils.exceptions import UnauthorizedException, ValidationException
from utils.mongo_helper import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


# --------------------------------------------------------------------
# Routes
# --------------------------------------------------------------------
@router.post("/register")
@limiter.limit(RATE_LIMIT_REGISTER)
async def register(request: Request, response: Response, user: UserRegister):
    """Register a new user with role=user, status=active."""
    if not user.name or not user.email or not user.password:
        raise ValidationException("All fields are required")
    if user.password != user.confirm_password:
        raise ValidationException("Passwords do not match")
    if len(user.password) < MIN_PASSWORD_LENGTH:
        raise ValidationException(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    email = user.email.lower()
    if await users_collection.find_one({"email": email}):
        raise ValidationException("User already exists")

    now = utcnow()
    user_doc = {
        "name": user.name.strip(),
        "email": email,
        "password_hash": hash_password(user.password),
        "role": ROLE_USER,
        "status": USER_STATUS_ACTIVE,
        "avatar": None,
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = await users_collection.insert_one(user_doc)
    except DuplicateKeyError:
        raise ValidationException("User already exists")
    user_doc["_id"] = result.inserted_id

    token = token_for_user(user_doc)
    set_auth_cookie(response, token)
    logger.info(f"Registered user {result.inserted_id}")

    return {
        "success": True,
        "message": "Account created successfully",
        "user": UserResponse.from_doc(user_doc),
        "token": token,
    }


@router.post("/login")
@limiter.limit(RATE_LIMIT_LOGIN)
async def login(request: Request, response: Response, credentials: UserLogin):
    """Authenticate user, set the session cookie and return the JWT."""
    if not credentials.email or not credentials.password:
        raise ValidationException("Email and password are required")

    db_user = await users_collection.find_one({"email": credentials.email.lower()})
    if not db_user:
        raise UnauthorizedException("Invalid credentials")
    if db_user.get("status") == USER_STATUS_SUSPENDED:
        raise UnauthorizedException("Account suspended")
    if not verify_password(credentials.password, db_user.get("password_hash")):
        raise UnauthorizedException("Invalid credentials")

    token = token_for_user(db_user)
    set_auth_cookie(response, token)

    return {
        "success": True,
        "message": "Login successful",
        "user": UserResponse.from_doc(db_user),
        "token": token,
    }


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(AUTH_COOKIE_NAME)
    return {"success": True, "message": "Logged out"}


@router.get("/me")
async def me(current_user: dict = Depends(get_current_user)):
    return {"success": True, "user": UserResponse.from_doc(current_user)}
