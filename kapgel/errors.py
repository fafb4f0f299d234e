"""
Domain errors raised by the order service. Routes map each one to an HTTP status.
Authorization outcomes of the pure decision functions are plain booleans, never these.
"""


class OrderNotFoundError(Exception):
    """No order with the requested id."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(order_id)


class OrderAccessDeniedError(Exception):
    """The actor is not a participant of the order (wrong owner, vendor or courier)."""


class InvalidTransitionError(Exception):
    """The actor's role may not move the order from its current status to the requested one."""

    def __init__(self, current_state: str | None = None, attempted_state: str | None = None):
        self.current_state = current_state
        self.attempted_state = attempted_state
        super().__init__(current_state, attempted_state)


class TransitionConflictError(Exception):
    """The order's status changed between read and write; the conditional update matched no row."""

    def __init__(self, order_id: str, expected_state: str | None = None):
        self.order_id = order_id
        self.expected_state = expected_state
        super().__init__(order_id, expected_state)


class ApplicationNotFoundError(Exception):
    """No onboarding application for this user and kind."""
