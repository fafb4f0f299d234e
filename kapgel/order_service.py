"""
Order reads and status transitions on behalf of an authenticated actor.

Transition flow: role gate -> load order -> participant check (RBAC) -> matrix check ->
conditional write against the status that was read. A concurrent transition that lands
first makes the write match no row, which surfaces as TransitionConflictError.
"""
import logging

from kapgel import db
from kapgel.errors import (
    InvalidTransitionError,
    OrderAccessDeniedError,
    OrderNotFoundError,
    TransitionConflictError,
)
from kapgel.metrics import (
    order_events_publish_failed_total,
    order_transition_conflicts_total,
    order_transitions_rejected_total,
    order_transitions_total,
)
from kapgel.order_state import INITIAL_STATUS, OrderStatus, can_transition
from kapgel.publisher import publish_status_change
from kapgel.rbac import Action, Actor, Resource, can_access
from kapgel.roles import PrimaryRole, primary_role

logger = logging.getLogger(__name__)

# Customers never move order status themselves
TRANSITION_ROLES = frozenset({PrimaryRole.VENDOR_ADMIN, PrimaryRole.COURIER, PrimaryRole.ADMIN})


def order_resource(order: dict) -> Resource:
    return Resource(
        type="order",
        owner_user_id=order.get("customer_id"),
        vendor_id=order.get("vendor_id"),
        courier_id=order.get("courier_id"),
    )


def _public(order: dict) -> dict:
    return {k: v for k, v in order.items() if k != "vendor_id"}


def _stored_status(observed: str | None) -> OrderStatus | None:
    """Stored status as an OrderStatus; a missing status reads as NEW, an unknown one as None."""
    if not observed:
        return INITIAL_STATUS
    try:
        return OrderStatus(observed)
    except ValueError:
        return None


async def get_order_for_actor(pool, order_id: str, actor: Actor) -> dict:
    order = await db.fetch_order(pool, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    if not can_access(actor, order_resource(order), Action.READ):
        logger.warning("Read denied order_id=%s user_id=%s role=%s", order_id, actor.user_id, actor.role)
        raise OrderAccessDeniedError(order_id)
    return _public(order)


async def transition_order(
    pool,
    order_id: str,
    next_status: OrderStatus,
    actor: Actor,
    note: str | None = None,
) -> dict:
    """Apply next_status to the order. Returns the updated order row."""
    role = primary_role(actor.role)
    role_label = role.value if role is not None else "none"
    if role not in TRANSITION_ROLES:
        order_transitions_rejected_total.labels(reason="role", role=role_label).inc()
        logger.warning("Transition denied for role=%s user_id=%s order_id=%s", role_label, actor.user_id, order_id)
        raise OrderAccessDeniedError(order_id)

    order = await db.fetch_order(pool, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)

    if not can_access(actor, order_resource(order), Action.UPDATE):
        order_transitions_rejected_total.labels(reason="not_participant", role=role_label).inc()
        logger.warning("Transition denied, not a participant: order_id=%s user_id=%s role=%s", order_id, actor.user_id, role_label)
        raise OrderAccessDeniedError(order_id)

    observed = order["status"]
    current = _stored_status(observed)
    current_label = current.value if current is not None else observed
    next_status = OrderStatus(next_status)
    # Admin overrides do not depend on the stored value being a known status
    if role is PrimaryRole.ADMIN:
        allowed = True
    else:
        allowed = current is not None and can_transition(current, next_status, role)
    if not allowed:
        order_transitions_rejected_total.labels(reason="invalid_transition", role=role_label).inc()
        logger.warning(
            "Invalid transition order_id=%s %s -> %s for role=%s",
            order_id, current_label, next_status.value, role_label,
        )
        raise InvalidTransitionError(current_state=current_label, attempted_state=next_status.value)

    try:
        updated = await db.apply_transition(pool, order_id, observed, next_status.value, actor.user_id, note)
    except TransitionConflictError:
        order_transition_conflicts_total.inc()
        logger.warning("Transition conflict order_id=%s: status is no longer %s", order_id, current_label)
        raise

    order_transitions_total.labels(from_status=current_label, to_status=next_status.value, role=role_label).inc()
    logger.info(
        "Order status changed order_id=%s %s -> %s by user_id=%s role=%s",
        order_id, current_label, next_status.value, actor.user_id, role_label,
    )

    try:
        await publish_status_change(updated, current_label, actor.user_id)
    except Exception:
        # The write is committed; subscribers catch up from the events table.
        order_events_publish_failed_total.inc()
        logger.exception("Failed to publish status change for order_id=%s", order_id)
    return updated
