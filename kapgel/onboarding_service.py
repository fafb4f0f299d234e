"""
Role onboarding: users pick a role, vendor and courier picks wait for an admin decision.
"""
import logging
from enum import Enum

from kapgel import db
from kapgel.roles import PendingRole, PrimaryRole, approved_role, normalize_selection, to_pending_metadata

logger = logging.getLogger(__name__)


class ApplicationKind(str, Enum):
    VENDOR = "vendor"
    COURIER = "courier"


class ApplicationDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class InvalidRoleSelectionError(Exception):
    pass


def application_kind(role: PrimaryRole | PendingRole) -> ApplicationKind | None:
    match role:
        case PendingRole.VENDOR_ADMIN_PENDING:
            return ApplicationKind.VENDOR
        case PendingRole.COURIER_PENDING:
            return ApplicationKind.COURIER
        case _:
            return None


def pending_role_for(kind: ApplicationKind) -> PendingRole:
    match kind:
        case ApplicationKind.VENDOR:
            return PendingRole.VENDOR_ADMIN_PENDING
        case ApplicationKind.COURIER:
            return PendingRole.COURIER_PENDING


async def select_role(pool, user_id: str, raw_role: str | None, email: str | None = None) -> PrimaryRole | PendingRole:
    """
    Store the user's onboarding choice. Admin cannot be self-selected.
    Returns the role now stored for the user.
    """
    selected = normalize_selection(raw_role)
    if selected is None or selected is PrimaryRole.ADMIN:
        raise InvalidRoleSelectionError(raw_role)

    stored = to_pending_metadata(selected)
    await db.set_user_role(pool, user_id, stored.value, email)
    kind = application_kind(stored)
    if kind is not None:
        await db.upsert_application(pool, kind.value, user_id, "pending")
    logger.info("Role selected user_id=%s role=%s", user_id, stored.value)
    return stored


async def decide_application(pool, kind: ApplicationKind, user_id: str, decision: ApplicationDecision) -> PrimaryRole:
    """
    Approve or reject an onboarding application. Approval grants the primary role;
    rejection leaves the user a customer.
    """
    if decision is ApplicationDecision.APPROVE:
        role = approved_role(pending_role_for(kind))
        status = "approved"
    else:
        role = PrimaryRole.CUSTOMER
        status = "rejected"
    await db.decide_application(pool, kind.value, user_id, status, role.value)
    logger.info("Application %s kind=%s user_id=%s role=%s", status, kind.value, user_id, role.value)
    return role
