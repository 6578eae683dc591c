from django.conf import settings
from django.db import transaction
from channels.layers import get_channel_layer
from asgiref.sync import async_to_sync
from .models import Notification
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    """In-app notification sink with realtime push over the channel layer"""

    def __init__(self):
        self.channel_layer = get_channel_layer()

    def notify(self, recipient, notification_type, title, message, link=''):
        """
        Persist a notification for ``recipient`` and push it to the user's
        websocket group once the surrounding transaction commits.
        """
        if recipient is None:
            return None
        notification = Notification.objects.create(
            recipient=recipient,
            notification_type=notification_type,
            title=title,
            message=message,
            link=link or '',
        )
        transaction.on_commit(lambda: self._send_in_app_notification(notification))
        return notification

    def notify_managers(self, organization, notification_type, title, message, link='', exclude=None):
        """Notify every active manager and admin of an organization"""
        from accounts.models import CustomUser

        managers = CustomUser.objects.filter(
            organization=organization,
            role__in=settings.MANAGER_ROLES,
            is_active=True,
        )
        if exclude is not None:
            managers = managers.exclude(id=exclude.id)
        return [
            self.notify(manager, notification_type, title, message, link)
            for manager in managers
        ]

    def _send_in_app_notification(self, notification):
        """WebSocket real-time event; failures are logged, never raised."""
        if self.channel_layer is None:
            return False
        group = f"user_{notification.recipient_id}_notifications"
        try:
            async_to_sync(self.channel_layer.group_send)(
                group,
                {
                    'type': 'send_notification',
                    'notification': {
                        'id': str(notification.id),
                        'title': notification.title,
                        'message': notification.message,
                        'link': notification.link,
                        'notification_type': notification.notification_type,
                        'created_at': notification.created_at.isoformat(),
                        'is_read': notification.is_read,
                    }
                }
            )
            return True
        except Exception:
            logger.exception("Realtime push failed for notification %s", notification.id)
            return False
