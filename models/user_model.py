# models/user_model.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

from utils.mongo_helper import id_str


class UserRegister(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None
    current_password: Optional[str] = Field(None, alias="currentPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")


class RoleChangeRequest(BaseModel):
    role: str


class StatusChangeRequest(BaseModel):
    status: str


class AdminUserUpdate(BaseModel):
    role: Optional[str] = None
    status: Optional[str] = None


class UserStats(BaseModel):
    events_created: int = 0
    events_subscribed: int = 0


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str = "user"
    status: str = "active"
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    stats: Optional[UserStats] = None

    @classmethod
    def from_doc(cls, user: dict, stats: UserStats = None) -> "UserResponse":
        # password_hash never leaves the database layer
        return cls(
            id=id_str(user["_id"]),
            name=user.get("name", ""),
            email=user["email"],
            role=user.get("role", "user"),
            status=user.get("status", "active"),
            avatar=user.get("avatar"),
            created_at=user.get("created_at"),
            updated_at=user.get("updated_at"),
            stats=stats,
        )


class CreatorSummary(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
