"""Notification listing, read state and the badge counts shown in the navbar."""

import logging

from django.conf import settings

from . import entanglements, messaging
from .models import Notification

logger = logging.getLogger(__name__)


def latest(user, limit=None):
    limit = limit or getattr(settings, 'Q5_NOTIFICATIONS_LIMIT', 50)
    return list(
        Notification.objects.filter(user=user)
        .select_related('actor', 'post', 'org', 'connection')
        .order_by('-created_at')[:limit]
    )


def unread_count(user):
    if user is None or not user.is_authenticated:
        return 0
    return Notification.objects.filter(user=user, is_read=False).count()


def mark_all_read(user):
    return Notification.objects.filter(user=user, is_read=False).update(is_read=True)


def mark_read(user, notification_id):
    """Returns the number of rows changed (0 when the id is not the user's)."""
    return Notification.objects.filter(user=user, pk=notification_id).update(is_read=True)


def delete(user, notification_id):
    deleted, _ = Notification.objects.filter(user=user, pk=notification_id).delete()
    return deleted


def clear_all(user):
    deleted, _ = Notification.objects.filter(user=user).delete()
    logger.info("User %s cleared %s notifications", user.pk, deleted)
    return deleted


def badge_counts(user):
    """Counts for the navbar badges. Zeros for anonymous visitors."""
    if user is None or not user.is_authenticated:
        return {
            'pending_requests_count': 0,
            'unread_notifications_count': 0,
            'unread_messages_count': 0,
            'nav_notifications_count': 0,
        }
    pending = entanglements.pending_count(user)
    unread = unread_count(user)
    return {
        'pending_requests_count': pending,
        'unread_notifications_count': unread,
        'unread_messages_count': messaging.unread_message_count(user),
        'nav_notifications_count': pending + unread,
    }
