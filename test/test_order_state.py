import pytest

from kapgel.order_state import (
    TERMINAL_STATUSES,
    TRANSITION_MATRIX,
    OrderStatus,
    allowed_next_statuses,
    can_transition,
)
from kapgel.roles import PrimaryRole

NON_ADMIN_ROLES = [PrimaryRole.CUSTOMER, PrimaryRole.VENDOR_ADMIN, PrimaryRole.COURIER]


@pytest.mark.parametrize("role", NON_ADMIN_ROLES)
def test_statuses_without_a_row_allow_nothing(role):
    for current in OrderStatus:
        if current in TRANSITION_MATRIX[role]:
            continue
        assert not any(can_transition(current, target, role) for target in OrderStatus)


def test_admin_may_force_any_transition():
    for current in OrderStatus:
        for target in OrderStatus:
            assert can_transition(current, target, PrimaryRole.ADMIN)


@pytest.mark.parametrize("role", NON_ADMIN_ROLES)
def test_terminal_statuses_are_final(role):
    for terminal in TERMINAL_STATUSES:
        for target in OrderStatus:
            assert not can_transition(terminal, target, role)


def test_vendor_cannot_skip_confirmation():
    assert not can_transition(OrderStatus.NEW, OrderStatus.PREPARING, PrimaryRole.VENDOR_ADMIN)
    assert allowed_next_statuses(OrderStatus.NEW, PrimaryRole.VENDOR_ADMIN) == {
        OrderStatus.CONFIRMED,
        OrderStatus.REJECTED,
    }


def test_courier_cannot_confirm():
    assert not can_transition(OrderStatus.NEW, OrderStatus.CONFIRMED, PrimaryRole.COURIER)
    assert allowed_next_statuses(OrderStatus.NEW, PrimaryRole.COURIER) == frozenset()


@pytest.mark.parametrize(
    "role,current,target",
    [
        (PrimaryRole.VENDOR_ADMIN, OrderStatus.NEW, OrderStatus.CONFIRMED),
        (PrimaryRole.VENDOR_ADMIN, OrderStatus.NEW, OrderStatus.REJECTED),
        (PrimaryRole.VENDOR_ADMIN, OrderStatus.CONFIRMED, OrderStatus.CANCELED_BY_VENDOR),
        (PrimaryRole.VENDOR_ADMIN, OrderStatus.PREPARING, OrderStatus.PICKED_UP),
        (PrimaryRole.VENDOR_ADMIN, OrderStatus.PICKED_UP, OrderStatus.ON_ROUTE),
        (PrimaryRole.VENDOR_ADMIN, OrderStatus.ON_ROUTE, OrderStatus.DELIVERED),
        (PrimaryRole.COURIER, OrderStatus.PREPARING, OrderStatus.PICKED_UP),
        (PrimaryRole.COURIER, OrderStatus.PICKED_UP, OrderStatus.DELIVERED),
        (PrimaryRole.COURIER, OrderStatus.ON_ROUTE, OrderStatus.DELIVERED),
    ],
)
def test_matrix_rows(role, current, target):
    assert can_transition(current, target, role)


def test_vendor_cannot_deliver_from_picked_up_but_courier_can():
    assert not can_transition(OrderStatus.PICKED_UP, OrderStatus.DELIVERED, PrimaryRole.VENDOR_ADMIN)
    assert can_transition(OrderStatus.PICKED_UP, OrderStatus.DELIVERED, PrimaryRole.COURIER)


def test_customer_has_no_transitions():
    assert TRANSITION_MATRIX[PrimaryRole.CUSTOMER] == {}
    assert not can_transition(OrderStatus.NEW, OrderStatus.CONFIRMED, PrimaryRole.CUSTOMER)


def test_plain_string_role_is_looked_up_like_the_enum():
    assert can_transition(OrderStatus.NEW, OrderStatus.CONFIRMED, "vendor_admin")
    assert can_transition(OrderStatus.DELIVERED, OrderStatus.NEW, "admin")
