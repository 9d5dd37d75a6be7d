import logging

from sqlalchemy.exc import SQLAlchemyError

from services.errors import DependencyFailure, NotFound, ValidationError

logger = logging.getLogger(__name__)


class InboxService:
    def __init__(self, store):
        self.store = store

    def list_for(self, user_id, unread_only=False, limit=50):
        return self.store.list_notifications(user_id, unread_only=unread_only, limit=limit)

    def mark_read(self, user_id, notification_id=None, mark_all=False):
        """Marks one notification (or all unread) as read; returns rows touched."""
        if not mark_all and notification_id is None:
            raise ValidationError("Provide notificationId or markAll")

        try:
            if mark_all:
                count = self.store.mark_all_notifications_read(user_id)
            else:
                notification = self.store.get_notification(notification_id)
                # Someone else's notification looks the same as a missing one
                if notification is None or notification.user_id != user_id:
                    raise NotFound("Notification not found")
                count = 0 if notification.is_read else 1
                notification.is_read = True
            self.store.commit()
        except SQLAlchemyError:
            logger.exception("Could not mark notifications read for user %s", user_id)
            self.store.rollback()
            raise DependencyFailure("Failed to mark notifications as read")
        return count
