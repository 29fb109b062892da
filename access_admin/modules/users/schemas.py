from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List
from enum import Enum
from datetime import datetime
from access_admin.modules.service_roles.schemas import ServiceRoleResponse


class RoleFilter(str, Enum):
    ADMIN = "admin"
    USER = "user"
    NONE = "none"  # no role row at all (in serviceId, when given)


class StatusFilter(str, Enum):
    VERIFIED = "verified"
    NOT_VERIFIED = "not-verified"
    BANNED = "banned"


class UserCreate(BaseModel):
    email: EmailStr
    username: str = Field(min_length=2)
    invite: bool = True  # False creates a confirmed account directly
    password: Optional[str] = Field(None, min_length=8)


class UserUpdate(BaseModel):
    full_name: str = Field(min_length=2)


class BanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    banned: bool
    duration_in_days: Optional[int] = Field(None, alias="durationInDays", ge=0)


class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    created_at: Optional[datetime] = None
    email_confirmed_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None
    banned_until: Optional[datetime] = None
    service_roles: List[ServiceRoleResponse] = []

    class Config:
        from_attributes = True


class UserListData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    users: List[UserResponse]
    total: int
    total_pages: int = Field(alias="totalPages")
    current_page: int = Field(alias="currentPage")


class UserListResponse(BaseModel):
    data: UserListData


class UserDetailResponse(BaseModel):
    data: UserResponse


class UserServiceRolesResponse(BaseModel):
    data: List[ServiceRoleResponse]


class CreatedUser(BaseModel):
    id: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None


class UserCreatedResponse(BaseModel):
    data: CreatedUser
    message: str


class UserUpdatedResponse(BaseModel):
    data: UserResponse
    message: str


class MessageResponse(BaseModel):
    message: str
