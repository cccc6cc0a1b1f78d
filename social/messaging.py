"""
Direct messages between entangled members.

Threads store their pair ordered by primary key so that each pair maps to
exactly one DMThread row.
"""

import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from . import entanglements
from .exceptions import NotAllowed, ValidationFailed
from .models import DMMessage, DMThread, Notification

logger = logging.getLogger(__name__)


def ordered_pair(a, b):
    return (a, b) if a.pk < b.pk else (b, a)


def open_thread(actor, other):
    """Existing or new thread with ``other``. Requires an accepted entanglement."""
    if actor.pk == other.pk:
        raise NotAllowed("You cannot message yourself.")
    if not entanglements.are_entangled(actor, other):
        raise NotAllowed("You can only message members you are entangled with.")

    user1, user2 = ordered_pair(actor, other)
    thread, created = DMThread.objects.get_or_create(user1=user1, user2=user2)
    if created:
        logger.info("Thread %s opened between %s and %s", thread.pk, user1.pk, user2.pk)
    return thread


def threads_for(user):
    return DMThread.objects.filter(Q(user1=user) | Q(user2=user)).select_related('user1', 'user2')


def inbox(user):
    """
    Threads of ``user`` with the other participant, last message and unread
    count, most recent activity first.
    """
    threads = list(
        threads_for(user).annotate(
            unread=Count(
                'messages',
                filter=Q(messages__read_at__isnull=True) & ~Q(messages__sender=user),
            )
        )
    )
    items = []
    for thread in threads:
        last = thread.messages.order_by('-created_at').first()
        items.append({
            'thread': thread,
            'other_user': thread.other(user),
            'last_message': last,
            'unread_count': thread.unread,
            'activity_at': thread.last_message_at or thread.created_at,
        })
    items.sort(key=lambda item: item['activity_at'], reverse=True)
    return items


def get_thread_for(user, thread_id):
    thread = DMThread.objects.select_related('user1', 'user2').filter(pk=thread_id).first()
    if thread is None or not thread.has_participant(user):
        raise NotAllowed("You are not part of this conversation.")
    return thread


def send_message(sender, thread, body):
    body = (body or '').strip()
    if not body:
        raise ValidationFailed("Message cannot be empty.")
    if not thread.has_participant(sender):
        raise NotAllowed("You are not part of this conversation.")
    if not entanglements.are_entangled(sender, thread.other(sender)):
        raise NotAllowed("You can only message members you are entangled with.")

    with transaction.atomic():
        message = DMMessage.objects.create(thread=thread, sender=sender, body=body)
        thread.last_message_at = message.created_at
        thread.save(update_fields=['last_message_at'])
        Notification.objects.create(
            user=thread.other(sender),
            actor=sender,
            kind=Notification.KIND_MESSAGE,
            message=f"{sender.display_name} sent you a message.",
        )
    return message


def thread_messages(thread):
    return thread.messages.select_related('sender').order_by('created_at')


def mark_thread_read(user, thread):
    """Mark every message from the other participant as read. Returns the row count."""
    return (
        thread.messages.filter(read_at__isnull=True)
        .exclude(sender=user)
        .update(read_at=timezone.now())
    )


def unread_message_count(user):
    if user is None or not user.is_authenticated:
        return 0
    return (
        DMMessage.objects.filter(read_at__isnull=True)
        .filter(Q(thread__user1=user) | Q(thread__user2=user))
        .exclude(sender=user)
        .count()
    )
