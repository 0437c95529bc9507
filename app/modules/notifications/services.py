from typing import Any, Awaitable, Callable, Dict, Optional
import json
import logging

from redis import asyncio as aioredis

from app.core.config import settings
from app.core.database import get_redis

logger = logging.getLogger(__name__)

COMMITTED_EVENT = "transaction.committed"


def build_transaction_event(txn, high_value: bool = False) -> Dict[str, Any]:
    """Serializable payload describing a committed ledger entry"""
    return {
        "event": COMMITTED_EVENT,
        "transaction_id": txn.id,
        "account_id": txn.account_id,
        "seq": txn.seq,
        "txn_type": txn.txn_type.value,
        "amount": str(txn.amount),
        "balance_after": str(txn.balance_after),
        "reference": txn.reference,
        "counterparty": txn.counterparty,
        "high_value": high_value,
        "created_at": txn.created_at.isoformat() if txn.created_at else None,
    }


class NotificationSink:
    """
    Post-commit event sink.

    Publishing is fire-and-forget from the ledger's point of view: the
    engine logs and discards whatever a sink raises.
    """

    async def publish(self, event: Dict[str, Any]) -> None:
        raise NotImplementedError


class NullNotificationSink(NotificationSink):
    """Sink used when notifications are disabled"""

    async def publish(self, event: Dict[str, Any]) -> None:
        logger.debug(f"Notifications disabled, dropping {event.get('event')} for {event.get('reference')}")


class RedisNotificationSink(NotificationSink):
    """Publishes ledger events to a Redis pub/sub channel"""

    def __init__(
        self,
        channel: Optional[str] = None,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
    ):
        self.channel = channel or settings.NOTIFICATION_CHANNEL
        self._redis_factory = redis_factory

    async def publish(self, event: Dict[str, Any]) -> None:
        redis = await self._redis_factory()
        receivers = await redis.publish(self.channel, json.dumps(event))
        logger.info(f"Published {event['event']} for {event['reference']} to {self.channel} ({receivers} receivers)")


def get_notification_sink() -> NotificationSink:
    """Sink selected by NOTIFICATIONS_ENABLED"""
    if settings.NOTIFICATIONS_ENABLED:
        return RedisNotificationSink()
    return NullNotificationSink()
