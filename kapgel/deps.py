"""
Request dependencies. The identity proxy in front of the API authenticates the session
and forwards the caller as X-User-Id / X-User-Role (and X-Vendor-Ids claims when it has them).
"""
import uuid

from fastapi import Depends, Header, HTTPException

from kapgel.db import get_pool
from kapgel.rbac import Actor, get_courier_auth_context, get_vendor_auth_context
from kapgel.roles import PrimaryRole, parse_role


async def pool_dependency():
    return await get_pool()


def _claimed_vendor_ids(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [v.strip() for v in raw.split(",") if v.strip()]


async def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_vendor_ids: str | None = Header(default=None),
    pool=Depends(pool_dependency),
) -> Actor:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        user_id = str(uuid.UUID(x_user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized")

    role = parse_role(x_user_role)
    match role:
        case PrimaryRole.VENDOR_ADMIN:
            context = await get_vendor_auth_context(
                jwt_claims={"vendor_ids": _claimed_vendor_ids(x_vendor_ids)},
                pool=pool,
                user_id=user_id,
            )
            return Actor(role=role, user_id=user_id, vendor_ids=tuple(context.vendor_ids))
        case PrimaryRole.COURIER:
            courier_id = await get_courier_auth_context(pool, user_id)
            return Actor(role=role, user_id=user_id, courier_id=courier_id)
        case _:
            return Actor(role=role, user_id=user_id)


async def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role is not PrimaryRole.ADMIN:
        raise HTTPException(status_code=403, detail="Forbidden")
    return actor
