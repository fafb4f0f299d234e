"""
Order lifecycle state machine. Each role may only move an order along its own row of the matrix.
"""
from enum import Enum

from kapgel.roles import PrimaryRole


class OrderStatus(str, Enum):
    NEW = "NEW"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    PICKED_UP = "PICKED_UP"
    ON_ROUTE = "ON_ROUTE"
    DELIVERED = "DELIVERED"
    REJECTED = "REJECTED"
    CANCELED_BY_VENDOR = "CANCELED_BY_VENDOR"


INITIAL_STATUS = OrderStatus.NEW

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.REJECTED,
    OrderStatus.CANCELED_BY_VENDOR,
})

# Role -> current status -> allowed next statuses.
# A missing status key means no transitions from it; admin is never looked up.
TRANSITION_MATRIX: dict[PrimaryRole, dict[OrderStatus, frozenset[OrderStatus]]] = {
    PrimaryRole.VENDOR_ADMIN: {
        OrderStatus.NEW: frozenset({OrderStatus.CONFIRMED, OrderStatus.REJECTED}),
        OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELED_BY_VENDOR}),
        OrderStatus.PREPARING: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELED_BY_VENDOR}),
        OrderStatus.PICKED_UP: frozenset({OrderStatus.ON_ROUTE}),
        OrderStatus.ON_ROUTE: frozenset({OrderStatus.DELIVERED}),
    },
    PrimaryRole.COURIER: {
        OrderStatus.PREPARING: frozenset({OrderStatus.PICKED_UP}),
        OrderStatus.PICKED_UP: frozenset({OrderStatus.ON_ROUTE, OrderStatus.DELIVERED}),
        OrderStatus.ON_ROUTE: frozenset({OrderStatus.DELIVERED}),
    },
    PrimaryRole.CUSTOMER: {},
}


def allowed_next_statuses(current_status: OrderStatus, role: PrimaryRole) -> frozenset[OrderStatus]:
    """Statuses `role` may move an order to from `current_status`."""
    if role == PrimaryRole.ADMIN:
        return frozenset(OrderStatus) - {current_status}
    return TRANSITION_MATRIX.get(role, {}).get(current_status, frozenset())


def can_transition(current_status: OrderStatus, next_status: OrderStatus, role: PrimaryRole) -> bool:
    """True if `role` may move an order from current_status to next_status. Admin may force any move."""
    if role == PrimaryRole.ADMIN:
        return True
    return next_status in TRANSITION_MATRIX.get(role, {}).get(current_status, frozenset())
