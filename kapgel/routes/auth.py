import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from kapgel.db import STORE_ERRORS
from kapgel.deps import get_actor, pool_dependency
from kapgel.onboarding_service import InvalidRoleSelectionError, select_role
from kapgel.rate_limit import RATE_LIMITS, limiter
from kapgel.rbac import Actor
from kapgel.roles import resolve_role_redirect

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class RoleSelectionBody(BaseModel):
    role: str | None = Field(default=None, description="customer, vendor_admin or courier")
    email: str | None = None


@router.get("/role")
@limiter.limit(RATE_LIMITS["general"])
async def get_role(request: Request, actor: Actor = Depends(get_actor)) -> JSONResponse:
    """Where the caller should land: their dashboard, or onboarding while the role is pending."""
    resolution = resolve_role_redirect(actor.role)
    return JSONResponse(
        status_code=200,
        content={
            "role": resolution.role.value if resolution.role else None,
            "needs_onboarding": resolution.needs_onboarding,
            "target": resolution.target,
        },
    )


@router.post("/role")
@limiter.limit(RATE_LIMITS["general"])
async def post_role(
    request: Request,
    body: RoleSelectionBody,
    actor: Actor = Depends(get_actor),
    pool=Depends(pool_dependency),
) -> JSONResponse:
    """
    Onboarding role choice. Customers are settled immediately; vendor and courier
    choices are stored as pending until an admin approves the application.
    """
    try:
        stored = await select_role(pool, actor.user_id, body.role, body.email)
    except InvalidRoleSelectionError:
        return JSONResponse(status_code=400, content={"error": "Invalid role selection", "code": "INVALID_ROLE"})
    except STORE_ERRORS:
        logger.exception("Failed to store role for user_id=%s", actor.user_id)
        return JSONResponse(status_code=500, content={"error": "Role could not be saved", "code": "STORE_ERROR"})
    return JSONResponse(status_code=200, content={"metadataRole": stored.value})
