from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class AuditLogResponse(BaseModel):
    id: str
    created_at: datetime
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    action: str
    target_id: Optional[str] = None
    target_email: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class AuditLogListData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    logs: List[AuditLogResponse]
    total: int
    total_pages: int = Field(alias="totalPages")
    current_page: int = Field(alias="currentPage")


class AuditLogListResponse(BaseModel):
    data: AuditLogListData
