from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.database import get_session_factory
from app.modules.notifications.services import NotificationSink, get_notification_sink
from app.modules.transactions.services import TransactionService


async def get_transaction_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    notification_sink: NotificationSink = Depends(get_notification_sink)
) -> TransactionService:
    """Transaction engine wired with the configured session factory and sink"""
    return TransactionService(session_factory, notification_sink=notification_sink)
