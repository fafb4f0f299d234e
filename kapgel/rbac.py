"""
Role-based access control for marketplace resources.

`can_access` is a pure decision over caller-supplied data. `get_vendor_auth_context`
and `get_courier_auth_context` resolve an actor's affiliations, from trusted claims
when present and otherwise with a single read against the store.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from kapgel.roles import PendingRole, PrimaryRole, Role


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    TRANSITION = "transition"


def _dedupe(ids) -> tuple[str, ...]:
    # first-seen order
    return tuple(dict.fromkeys(str(i) for i in ids if i))


@dataclass(frozen=True)
class Actor:
    role: Role
    user_id: str
    vendor_ids: tuple[str, ...] = ()
    courier_id: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "vendor_ids", _dedupe(self.vendor_ids or ()))


@dataclass(frozen=True)
class Resource:
    type: str
    owner_user_id: str | None = None
    vendor_id: str | None = None
    courier_id: str | None = None


@dataclass(frozen=True)
class VendorAuthContext:
    vendor_ids: list[str] = field(default_factory=list)


def can_access(actor: Actor, resource: Resource, action: Action) -> bool:
    """
    Decide whether `actor` may perform `action` on `resource`.

    Admins bypass every check. Customers reach what they own, vendor admins what
    belongs to one of their vendors, couriers what is assigned to them. No role,
    a pending role or anything unrecognized is denied.
    """
    match actor.role:
        case None | PendingRole():
            return False
        case PrimaryRole.ADMIN:
            return True
        case PrimaryRole.CUSTOMER:
            return resource.owner_user_id is not None and resource.owner_user_id == actor.user_id
        case PrimaryRole.VENDOR_ADMIN:
            return resource.vendor_id is not None and resource.vendor_id in actor.vendor_ids
        case PrimaryRole.COURIER:
            return resource.courier_id is not None and resource.courier_id == actor.courier_id
        case _:
            return False


async def get_vendor_auth_context(
    jwt_claims: Mapping[str, Any] | None = None,
    pool=None,
    user_id: str | None = None,
) -> VendorAuthContext:
    """
    Vendor ids administered by `user_id`.

    Non-empty `vendor_ids` claims are trusted and returned without touching the store.
    Otherwise vendors are looked up by owner. Store errors propagate: a failed lookup
    is not the same outcome as "administers nothing".
    """
    claimed = (jwt_claims or {}).get("vendor_ids")
    if isinstance(claimed, (list, tuple)):
        claimed = _dedupe(claimed)
        if claimed:
            return VendorAuthContext(vendor_ids=list(claimed))

    if pool is None or not user_id:
        return VendorAuthContext()

    rows = await pool.fetch("SELECT id FROM vendors WHERE owner_user_id = $1;", user_id)
    return VendorAuthContext(vendor_ids=list(_dedupe(row["id"] for row in rows or [])))


async def get_courier_auth_context(pool, user_id: str) -> str | None:
    """Courier record id for a courier user, None if the user has no courier profile."""
    row = await pool.fetchrow("SELECT id FROM couriers WHERE user_id = $1 LIMIT 1;", user_id)
    if row is None:
        return None
    return str(row["id"])
