"""
Async Postgres access: orders, their status-change event log, and the onboarding tables.
Status writes are conditional on the status the caller observed, so concurrent transitions
of one order cannot silently overwrite each other.
"""
import json
from datetime import datetime

import asyncpg

from kapgel.config import settings
from kapgel.errors import ApplicationNotFoundError, TransitionConflictError

_pool: asyncpg.Pool | None = None

# Transport and server failures surfaced to callers as store errors
STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

ORDER_COLUMNS = "o.id, o.status, o.customer_id, o.courier_id, o.branch_id, o.created_at"

APPLICATION_TABLES = {
    "vendor": "vendor_applications",
    "courier": "courier_applications",
}


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def init_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id UUID PRIMARY KEY,
                email TEXT,
                role VARCHAR(32),
                created_at TIMESTAMPTZ DEFAULT NOW()
            );
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS vendors (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                name TEXT NOT NULL,
                owner_user_id UUID REFERENCES users(id),
                verified BOOLEAN DEFAULT FALSE
            );
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_vendors_owner_user_id
            ON vendors(owner_user_id);
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS branches (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                vendor_id UUID REFERENCES vendors(id),
                name TEXT NOT NULL
            );
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS couriers (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                vendor_id UUID REFERENCES vendors(id),
                user_id UUID REFERENCES users(id),
                is_active BOOLEAN DEFAULT TRUE
            );
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                customer_id UUID REFERENCES users(id),
                branch_id UUID REFERENCES branches(id),
                courier_id UUID REFERENCES couriers(id),
                status VARCHAR(32) DEFAULT 'NEW',
                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            );
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS events (
                id BIGSERIAL PRIMARY KEY,
                order_id UUID REFERENCES orders(id),
                type VARCHAR(64) NOT NULL,
                payload_json JSONB,
                created_at TIMESTAMPTZ DEFAULT NOW()
            );
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_events_order_id
            ON events(order_id);
        """)
        for table in APPLICATION_TABLES.values():
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    user_id UUID PRIMARY KEY REFERENCES users(id),
                    status VARCHAR(16) NOT NULL DEFAULT 'pending',
                    business_name TEXT,
                    updated_at TIMESTAMPTZ DEFAULT NOW()
                );
            """)


def _to_json(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def order_row(record) -> dict:
    """Order row as returned to clients: id, status, customer_id, courier_id, branch_id, created_at."""
    return {
        "id": str(record["id"]),
        "status": record["status"],
        "customer_id": _to_json(record["customer_id"]),
        "courier_id": _to_json(record["courier_id"]),
        "branch_id": _to_json(record["branch_id"]),
        "created_at": _to_json(record["created_at"]),
    }


async def fetch_order(pool: asyncpg.Pool, order_id: str) -> dict | None:
    """Order row plus the vendor that owns its branch, or None."""
    row = await pool.fetchrow(
        f"""
        SELECT {ORDER_COLUMNS}, b.vendor_id
        FROM orders o
        LEFT JOIN branches b ON b.id = o.branch_id
        WHERE o.id = $1;
        """,
        order_id,
    )
    if row is None:
        return None
    order = order_row(row)
    order["vendor_id"] = _to_json(row["vendor_id"])
    return order


async def apply_transition(
    pool: asyncpg.Pool,
    order_id: str,
    expected_status: str | None,
    next_status: str,
    actor_user_id: str,
    note: str | None = None,
) -> dict:
    """
    Move the order to next_status only if its status is still expected_status.
    Appends an order.status_changed event in the same transaction.
    Raises TransitionConflictError when the status moved in the meantime.
    """
    payload = {
        "old_status": expected_status,
        "new_status": next_status,
        "user_id": actor_user_id,
    }
    if note:
        payload["note"] = note

    async with pool.acquire() as conn:
        async with conn.transaction():
            row = await conn.fetchrow(
                f"""
                UPDATE orders o SET status = $2, updated_at = NOW()
                WHERE o.id = $1 AND o.status IS NOT DISTINCT FROM $3
                RETURNING {ORDER_COLUMNS};
                """,
                order_id,
                next_status,
                expected_status,
            )
            if row is None:
                raise TransitionConflictError(order_id, expected_status)
            await conn.execute(
                """
                INSERT INTO events (order_id, type, payload_json)
                VALUES ($1, 'order.status_changed', $2::jsonb);
                """,
                order_id,
                json.dumps(payload),
            )
    return order_row(row)


async def set_user_role(pool: asyncpg.Pool, user_id: str, role: str, email: str | None = None) -> None:
    await pool.execute(
        """
        INSERT INTO users (id, email, role) VALUES ($1, $2, $3)
        ON CONFLICT (id) DO UPDATE SET role = EXCLUDED.role, email = COALESCE(EXCLUDED.email, users.email);
        """,
        user_id,
        email,
        role,
    )


async def upsert_application(pool: asyncpg.Pool, kind: str, user_id: str, status: str) -> None:
    table = APPLICATION_TABLES[kind]
    await pool.execute(
        f"""
        INSERT INTO {table} (user_id, status, updated_at) VALUES ($1, $2, NOW())
        ON CONFLICT (user_id) DO UPDATE SET status = EXCLUDED.status, updated_at = NOW();
        """,
        user_id,
        status,
    )


async def decide_application(pool: asyncpg.Pool, kind: str, user_id: str, status: str, role: str) -> None:
    """
    Record an admin decision on an onboarding application and the user's resulting role.
    Approved vendor applicants get a vendor profile if they do not own one yet.
    """
    table = APPLICATION_TABLES[kind]
    async with pool.acquire() as conn:
        async with conn.transaction():
            application = await conn.fetchrow(
                f"""
                UPDATE {table} SET status = $2, updated_at = NOW()
                WHERE user_id = $1
                RETURNING business_name;
                """,
                user_id,
                status,
            )
            if application is None:
                raise ApplicationNotFoundError(user_id)
            await conn.execute("UPDATE users SET role = $2 WHERE id = $1;", user_id, role)
            if kind == "vendor" and status == "approved":
                existing = await conn.fetchval(
                    "SELECT id FROM vendors WHERE owner_user_id = $1 LIMIT 1;", user_id
                )
                if existing is None:
                    name = (application["business_name"] or "").strip() or f"Vendor {str(user_id)[:8]}"
                    await conn.execute(
                        "INSERT INTO vendors (owner_user_id, name, verified) VALUES ($1, $2, FALSE);",
                        user_id,
                        name,
                    )
