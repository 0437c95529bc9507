# Notifications module
from app.modules.notifications.services import (
    NotificationSink, NullNotificationSink, RedisNotificationSink, get_notification_sink
)

__all__ = ["NotificationSink", "NullNotificationSink", "RedisNotificationSink", "get_notification_sink"]
