"""
Role model: settled primary roles, pending onboarding markers, or no role at all.
Only primary roles carry permissions.
"""
from dataclasses import dataclass
from enum import Enum


class PrimaryRole(str, Enum):
    CUSTOMER = "customer"
    VENDOR_ADMIN = "vendor_admin"
    COURIER = "courier"
    ADMIN = "admin"


class PendingRole(str, Enum):
    PENDING = "pending"
    VENDOR_ADMIN_PENDING = "vendor_admin_pending"
    COURIER_PENDING = "courier_pending"


Role = PrimaryRole | PendingRole | None

ONBOARDING_TARGET = "/onboarding/role"


@dataclass(frozen=True)
class RoleResolution:
    needs_onboarding: bool
    target: str
    role: PrimaryRole | None = None


def parse_role(raw: str | None) -> Role:
    """Parse a role claim. Unknown strings resolve to None so callers fail closed."""
    if raw is None:
        return None
    value = raw.strip().lower()
    for enum_cls in (PrimaryRole, PendingRole):
        try:
            return enum_cls(value)
        except ValueError:
            continue
    return None


def primary_role(role: Role) -> PrimaryRole | None:
    match role:
        case PrimaryRole():
            return role
        case PendingRole() | None:
            return None


def role_target(role: PrimaryRole) -> str:
    match role:
        case PrimaryRole.CUSTOMER:
            return "/"
        case PrimaryRole.VENDOR_ADMIN:
            return "/vendor"
        case PrimaryRole.COURIER:
            return "/courier"
        case PrimaryRole.ADMIN:
            return "/admin"


def resolve_role_redirect(role: Role) -> RoleResolution:
    """Where a user with `role` lands after sign-in."""
    match role:
        case PrimaryRole():
            return RoleResolution(needs_onboarding=False, target=role_target(role), role=role)
        case PendingRole() | None:
            return RoleResolution(needs_onboarding=True, target=ONBOARDING_TARGET)


def normalize_selection(raw: str | None) -> PrimaryRole | None:
    match parse_role(raw):
        case PrimaryRole() as role:
            return role
        case _:
            return None


def to_pending_metadata(role: PrimaryRole) -> PrimaryRole | PendingRole:
    """Role stored while an onboarding application awaits admin approval."""
    match role:
        case PrimaryRole.VENDOR_ADMIN:
            return PendingRole.VENDOR_ADMIN_PENDING
        case PrimaryRole.COURIER:
            return PendingRole.COURIER_PENDING
        case PrimaryRole.CUSTOMER | PrimaryRole.ADMIN:
            return role


def approved_role(role: PendingRole) -> PrimaryRole | None:
    match role:
        case PendingRole.VENDOR_ADMIN_PENDING:
            return PrimaryRole.VENDOR_ADMIN
        case PendingRole.COURIER_PENDING:
            return PrimaryRole.COURIER
        case PendingRole.PENDING:
            return None
