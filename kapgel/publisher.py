"""
Publish order status changes for realtime subscribers (customer tracking, courier apps, notifier).
"""
import json
from datetime import datetime, timezone

from kapgel.config import settings
from kapgel.redis_client import get_redis


def _make_body(order: dict, old_status: str | None, actor_user_id: str) -> dict:
    return {
        "type": "order.status_changed",
        "order_id": order["id"],
        "old_status": old_status,
        "new_status": order["status"],
        "customer_id": order.get("customer_id"),
        "courier_id": order.get("courier_id"),
        "branch_id": order.get("branch_id"),
        "user_id": actor_user_id,
        "at": datetime.now(timezone.utc).isoformat(),
    }


async def publish_status_change(order: dict, old_status: str | None, actor_user_id: str) -> None:
    body = _make_body(order, old_status, actor_user_id)
    r = await get_redis()
    await r.publish(settings.order_events_channel, json.dumps(body))
