import logging
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from kapgel.db import STORE_ERRORS
from kapgel.deps import get_actor, pool_dependency
from kapgel.errors import (
    InvalidTransitionError,
    OrderAccessDeniedError,
    OrderNotFoundError,
    TransitionConflictError,
)
from kapgel.order_service import get_order_for_actor, transition_order
from kapgel.order_state import OrderStatus
from kapgel.rate_limit import RATE_LIMITS, limiter
from kapgel.rbac import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

TransitionStatus = Literal[
    "CONFIRMED",
    "PREPARING",
    "PICKED_UP",
    "ON_ROUTE",
    "DELIVERED",
    "REJECTED",
    "CANCELED_BY_VENDOR",
]


class TransitionBody(BaseModel):
    status: TransitionStatus = Field(..., description="Requested next order status")
    note: str | None = Field(default=None, max_length=500, description="Optional note kept with the status event")

    @field_validator("note", mode="before")
    @classmethod
    def strip_note(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


def _error(status_code: int, message: str, code: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code, **extra})


@router.get("/{order_id}")
@limiter.limit(RATE_LIMITS["orders"])
async def get_order(
    request: Request,
    order_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    pool=Depends(pool_dependency),
) -> JSONResponse:
    try:
        order = await get_order_for_actor(pool, str(order_id), actor)
    except OrderNotFoundError:
        return _error(404, "Order not found", "ORDER_NOT_FOUND")
    except OrderAccessDeniedError:
        return _error(403, "Forbidden", "FORBIDDEN")
    except STORE_ERRORS:
        logger.exception("Failed to read order_id=%s", order_id)
        return _error(500, "Order could not be read", "STORE_ERROR")
    return JSONResponse(status_code=200, content={"order": order})


@router.post("/{order_id}/transition")
@limiter.limit(RATE_LIMITS["orders"])
async def post_transition(
    request: Request,
    order_id: uuid.UUID,
    body: TransitionBody,
    actor: Actor = Depends(get_actor),
    pool=Depends(pool_dependency),
) -> JSONResponse:
    """
    Move an order to the requested status.
    403 when the caller may not touch the order or the move is not allowed for its role,
    409 when another request changed the status first.
    """
    try:
        order = await transition_order(pool, str(order_id), OrderStatus(body.status), actor, body.note)
    except OrderNotFoundError:
        return _error(404, "Order not found", "ORDER_NOT_FOUND")
    except OrderAccessDeniedError:
        return _error(403, "Forbidden", "FORBIDDEN")
    except InvalidTransitionError as e:
        return _error(
            403,
            "Transition not allowed",
            "INVALID_TRANSITION",
            current_status=e.current_state,
            requested_status=e.attempted_state,
        )
    except TransitionConflictError as e:
        return _error(409, "Order status changed concurrently", "CONFLICT", expected_status=e.expected_state)
    except STORE_ERRORS:
        logger.exception("Failed to update order_id=%s", order_id)
        return _error(500, "Order could not be updated", "STORE_ERROR")
    return JSONResponse(status_code=200, content={"order": order})
