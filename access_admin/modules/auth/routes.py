from fastapi import APIRouter, Depends
from access_admin.core.authorization import ResolvedRole
from access_admin.core.dependencies import get_resolved_role
from access_admin.modules.auth.schemas import VerifyResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/verify", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify(role: ResolvedRole = Depends(get_resolved_role)):
    """Whether the token's account is an Administration member, and with which role (for the frontend)"""
    if role == ResolvedRole.NONE:
        return VerifyResponse(is_member=False)
    return VerifyResponse(is_member=True, role=role.value)
