"""
Shared fakes for the test suite: an in-memory order store standing in for Postgres
and a minimal Redis with just the commands the service uses.
"""
import asyncio
import uuid

from kapgel.db import order_row
from kapgel.errors import ApplicationNotFoundError, TransitionConflictError

CUSTOMER_ID = "11111111-1111-1111-1111-111111111111"
VENDOR_USER_ID = "22222222-2222-2222-2222-222222222222"
COURIER_USER_ID = "33333333-3333-3333-3333-333333333333"
ADMIN_ID = "44444444-4444-4444-4444-444444444444"
OTHER_USER_ID = "55555555-5555-5555-5555-555555555555"

VENDOR_ID = "aaaaaaaa-0000-0000-0000-000000000001"
OTHER_VENDOR_ID = "aaaaaaaa-0000-0000-0000-000000000002"
BRANCH_ID = "bbbbbbbb-0000-0000-0000-000000000001"
COURIER_ID = "cccccccc-0000-0000-0000-000000000001"


class InMemoryStore:
    """
    Plays both the asyncpg pool (for the raw vendor/courier lookups) and the
    kapgel.db functions the services call. Status writes are compare-and-set.
    """

    def __init__(self):
        self.orders: dict[str, dict] = {}
        self.vendors: dict[str, str] = {VENDOR_ID: VENDOR_USER_ID, OTHER_VENDOR_ID: OTHER_USER_ID}
        self.branches: dict[str, str] = {BRANCH_ID: VENDOR_ID}
        self.couriers: dict[str, str] = {COURIER_ID: COURIER_USER_ID}
        self.users: dict[str, dict] = {}
        self.applications: dict[tuple[str, str], str] = {}
        self.events: list[dict] = []
        self.queries: list[tuple[str, tuple]] = []
        self.fail_with: Exception | None = None

    def add_order(self, status: str | None = "NEW", courier_id: str | None = None, branch_id: str = BRANCH_ID) -> str:
        order_id = str(uuid.uuid4())
        self.orders[order_id] = {
            "id": order_id,
            "status": status,
            "customer_id": CUSTOMER_ID,
            "courier_id": courier_id,
            "branch_id": branch_id,
            "created_at": None,
        }
        return order_id

    def _check(self, query: str, args: tuple) -> None:
        self.queries.append((query, args))
        if self.fail_with is not None:
            raise self.fail_with

    # asyncpg pool surface

    async def fetch(self, query: str, *args):
        self._check(query, args)
        if "FROM vendors" in query:
            return [{"id": vid} for vid, owner in self.vendors.items() if owner == args[0]]
        raise AssertionError(f"unexpected query {query}")

    async def fetchrow(self, query: str, *args):
        self._check(query, args)
        if "FROM couriers" in query:
            for cid, user_id in self.couriers.items():
                if user_id == args[0]:
                    return {"id": cid}
            return None
        raise AssertionError(f"unexpected query {query}")

    # kapgel.db doubles

    async def fetch_order(self, pool, order_id: str):
        self._check("fetch_order", (order_id,))
        row = self.orders.get(order_id)
        order = None
        if row is not None:
            order = order_row(row)
            order["vendor_id"] = self.branches.get(row["branch_id"])
        # snapshot taken; let concurrent requests interleave between read and write
        await asyncio.sleep(0)
        return order

    async def apply_transition(self, pool, order_id, expected_status, next_status, actor_user_id, note=None):
        self._check("apply_transition", (order_id, expected_status, next_status))
        row = self.orders.get(order_id)
        if row is None or row["status"] != expected_status:
            raise TransitionConflictError(order_id, expected_status)
        row["status"] = next_status
        self.events.append({
            "order_id": order_id,
            "type": "order.status_changed",
            "old_status": expected_status,
            "new_status": next_status,
            "user_id": actor_user_id,
            "note": note,
        })
        return order_row(row)

    async def set_user_role(self, pool, user_id, role, email=None):
        self._check("set_user_role", (user_id, role))
        self.users[user_id] = {"role": role, "email": email}

    async def upsert_application(self, pool, kind, user_id, status):
        self._check("upsert_application", (kind, user_id, status))
        self.applications[(kind, user_id)] = status

    async def decide_application(self, pool, kind, user_id, status, role):
        self._check("decide_application", (kind, user_id, status, role))
        if (kind, user_id) not in self.applications:
            raise ApplicationNotFoundError(user_id)
        self.applications[(kind, user_id)] = status
        self.users.setdefault(user_id, {})["role"] = role


class FakeRedis:
    def __init__(self):
        self.published: list[tuple[str, str]] = []

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    async def aclose(self) -> None:
        pass


def headers(user_id: str, role: str | None, vendor_ids: list[str] | None = None) -> dict:
    h = {"X-User-Id": user_id}
    if role is not None:
        h["X-User-Role"] = role
    if vendor_ids:
        h["X-Vendor-Ids"] = ",".join(vendor_ids)
    return h
