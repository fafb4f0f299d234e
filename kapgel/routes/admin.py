import logging
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from kapgel.db import STORE_ERRORS
from kapgel.deps import pool_dependency, require_admin
from kapgel.errors import ApplicationNotFoundError
from kapgel.onboarding_service import ApplicationDecision, ApplicationKind, decide_application
from kapgel.rate_limit import RATE_LIMITS, limiter
from kapgel.rbac import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/applications/{kind}/{user_id}/{decision}")
@limiter.limit(RATE_LIMITS["general"])
async def application_decision(
    request: Request,
    kind: ApplicationKind,
    user_id: uuid.UUID,
    decision: ApplicationDecision,
    admin: Actor = Depends(require_admin),
    pool=Depends(pool_dependency),
) -> JSONResponse:
    """Approve or reject a vendor/courier application. Returns the applicant's new role."""
    try:
        role = await decide_application(pool, kind, str(user_id), decision)
    except ApplicationNotFoundError:
        return JSONResponse(status_code=404, content={"error": "Application not found", "code": "NOT_FOUND"})
    except STORE_ERRORS:
        logger.exception("Failed to %s %s application user_id=%s", decision.value, kind.value, user_id)
        return JSONResponse(status_code=500, content={"error": "Application could not be updated", "code": "STORE_ERROR"})
    logger.info("Admin user_id=%s %sd %s application of user_id=%s", admin.user_id, decision.value, kind.value, user_id)
    return JSONResponse(status_code=200, content={"status": "ok", "user_id": str(user_id), "role": role.value})
