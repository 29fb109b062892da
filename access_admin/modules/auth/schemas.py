from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class VerifyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_member: bool = Field(alias="isMember")
    role: Optional[str] = None
