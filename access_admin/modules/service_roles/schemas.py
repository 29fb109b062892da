from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from access_admin.core.authorization import ServiceRoleName


class ServiceSummary(BaseModel):
    id: str
    name: str


class ServiceRoleCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID = Field(alias="userId")
    service_id: UUID = Field(alias="serviceId")
    role: ServiceRoleName


class ServiceRoleUpdate(BaseModel):
    role: ServiceRoleName


class ServiceRoleResponse(BaseModel):
    id: Optional[str] = None
    user_id: str
    service_id: str
    role: ServiceRoleName
    created_at: Optional[datetime] = None
    service: Optional[ServiceSummary] = None

    class Config:
        from_attributes = True


class ServiceRoleMutationResponse(BaseModel):
    message: str
    data: Optional[ServiceRoleResponse] = None
