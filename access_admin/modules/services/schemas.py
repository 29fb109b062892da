from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class ServiceCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)


class ServiceResponse(BaseModel):
    id: str
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceMember(BaseModel):
    user_id: str
    role: str
    created_at: Optional[datetime] = None


class ServiceDetail(ServiceResponse):
    model_config = ConfigDict(populate_by_name=True)

    admin_count: int = Field(alias="adminCount")
    user_count: int = Field(alias="userCount")
    total_users: int = Field(alias="totalUsers")
    members: List[ServiceMember] = []


class ServiceListResponse(BaseModel):
    data: List[ServiceResponse]


class ServiceDetailResponse(BaseModel):
    data: ServiceDetail


class ServiceCreatedResponse(BaseModel):
    data: ServiceResponse
    message: str
