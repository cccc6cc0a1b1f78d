"""
Entanglement (connection request) state machine.

A pair of members shares at most one Connection row. Seen from one member,
the row reads as one of the statuses below. All transitions run inside a
transaction and fan out the matching notification.

    none / declined  --entangle-->  pending  (notify target)
    pending          --accept---->  accepted (notify sender)
    pending          --decline--->  declined (sender may ask again)
    accepted         --remove---->  none
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from .exceptions import InvalidTransition, NotAllowed
from .models import Connection, Notification, User

logger = logging.getLogger(__name__)

NONE = 'none'
PENDING_OUTGOING = 'pending_outgoing'
PENDING_INCOMING = 'pending_incoming'
ACCEPTED = 'accepted'
DECLINED = 'declined'

_UNSET = object()


def _pair_q(a, b):
    return Q(user=a, target_user=b) | Q(user=b, target_user=a)


def connection_between(a, b, for_update=False):
    qs = Connection.objects.filter(_pair_q(a, b))
    if for_update:
        qs = qs.select_for_update()
    return qs.first()


def status_for(viewer, other, row=_UNSET):
    """Status of the viewer's relation to ``other``."""
    if viewer is None or not viewer.is_authenticated or other is None:
        return NONE
    if row is _UNSET:
        row = connection_between(viewer, other)
    return status_from_row(viewer, row)


def status_from_row(viewer, row):
    if row is None:
        return NONE
    if row.status == Connection.STATUS_ACCEPTED:
        return ACCEPTED
    if row.status == Connection.STATUS_DECLINED:
        return DECLINED
    if row.status == Connection.STATUS_PENDING:
        if row.user_id == viewer.pk:
            return PENDING_OUTGOING
        if row.target_user_id == viewer.pk:
            return PENDING_INCOMING
    return NONE


def connections_by_other_id(user):
    """Map of other member id -> Connection row for every row touching ``user``."""
    if user is None or not user.is_authenticated:
        return {}
    rows = Connection.objects.filter(Q(user=user) | Q(target_user=user))
    return {
        (row.target_user_id if row.user_id == user.pk else row.user_id): row
        for row in rows
    }


def statuses_for(viewer, others):
    """Status for each member in ``others``, keyed by id, from one query."""
    rows = connections_by_other_id(viewer)
    return {other.pk: status_from_row(viewer, rows.get(other.pk)) for other in others}


def _accept(row, actor):
    row.status = Connection.STATUS_ACCEPTED
    row.save(update_fields=['status', 'updated_at'])
    Notification.objects.create(
        user=row.user,
        actor=actor,
        kind=Notification.KIND_ENTANGLEMENT_ACCEPTED,
        message=f"{actor.display_name} accepted your entanglement request.",
        connection=row,
    )
    logger.info("Connection %s accepted by user %s", row.pk, actor.pk)
    return row


def entangle(actor, target):
    """
    Send a request to ``target``, or accept the one ``target`` already sent.

    Returns ``(row, status)`` with the status as seen by ``actor`` afterwards.
    Accepted and outgoing-pending pairs are left untouched.
    """
    if actor.pk == target.pk:
        raise NotAllowed("You cannot entangle with yourself.")

    with transaction.atomic():
        row = connection_between(actor, target, for_update=True)
        status = status_from_row(actor, row)

        if status in (ACCEPTED, PENDING_OUTGOING):
            return row, status

        if status == PENDING_INCOMING:
            return _accept(row, actor), ACCEPTED

        # none or declined: (re)open a request from actor to target
        if row is None:
            try:
                with transaction.atomic():
                    row = Connection.objects.create(
                        user=actor,
                        target_user=target,
                        status=Connection.STATUS_PENDING,
                    )
            except IntegrityError:
                # the other member's request landed first
                row = connection_between(actor, target, for_update=True)
                status = status_from_row(actor, row)
                logger.info("Concurrent entanglement between %s and %s resolved as %s", actor.pk, target.pk, status)
                if status == PENDING_INCOMING:
                    return _accept(row, actor), ACCEPTED
                return row, status
        else:
            row.user = actor
            row.target_user = target
            row.status = Connection.STATUS_PENDING
            row.created_at = timezone.now()
            row.save()

        Notification.objects.create(
            user=target,
            actor=actor,
            kind=Notification.KIND_ENTANGLEMENT_REQUEST,
            message=f"{actor.display_name} wants to entangle with you.",
            connection=row,
        )
        logger.info("User %s sent entanglement request to %s", actor.pk, target.pk)
        return row, PENDING_OUTGOING


def decline(actor, other):
    """Decline the pending request ``other`` sent to ``actor``."""
    with transaction.atomic():
        row = connection_between(actor, other, for_update=True)
        if status_from_row(actor, row) != PENDING_INCOMING:
            raise InvalidTransition()
        row.status = Connection.STATUS_DECLINED
        row.save(update_fields=['status', 'updated_at'])
    logger.info("Connection %s declined by user %s", row.pk, actor.pk)
    return row


def respond(actor, connection_id, accept):
    """Accept or decline a pending request addressed to ``actor`` by row id."""
    with transaction.atomic():
        row = (
            Connection.objects.select_for_update()
            .filter(pk=connection_id, target_user=actor, status=Connection.STATUS_PENDING)
            .first()
        )
        if row is None:
            raise InvalidTransition()
        if accept:
            return _accept(row, actor)
        row.status = Connection.STATUS_DECLINED
        row.save(update_fields=['status', 'updated_at'])
    logger.info("Connection %s declined by user %s", row.pk, actor.pk)
    return row


def remove(actor, other):
    """Dissolve an accepted entanglement."""
    with transaction.atomic():
        row = connection_between(actor, other, for_update=True)
        if status_from_row(actor, row) != ACCEPTED:
            raise InvalidTransition("You are not entangled with this member.")
        row.delete()
    logger.info("User %s removed entanglement with %s", actor.pk, other.pk)


def pending_requests(user):
    """Incoming pending requests, newest first, with the sender loaded."""
    return (
        Connection.objects.filter(target_user=user, status=Connection.STATUS_PENDING)
        .select_related('user')
        .order_by('-created_at')
    )


def pending_count(user):
    if user is None or not user.is_authenticated:
        return 0
    return Connection.objects.filter(target_user=user, status=Connection.STATUS_PENDING).count()


def recent_entanglements(user, limit=30):
    """Recently settled (accepted or declined) connections on either side."""
    rows = (
        Connection.objects.filter(Q(user=user) | Q(target_user=user))
        .filter(status__in=[Connection.STATUS_ACCEPTED, Connection.STATUS_DECLINED])
        .select_related('user', 'target_user')
        .order_by('-created_at')[:limit]
    )
    return [
        {
            'connection': row,
            'status': row.status,
            'is_sender': row.user_id == user.pk,
            'other_user': row.other(user),
            'created_at': row.created_at,
        }
        for row in rows
    ]


def entangled_ids(user):
    rows = Connection.objects.filter(
        Q(user=user) | Q(target_user=user),
        status=Connection.STATUS_ACCEPTED,
    ).values_list('user_id', 'target_user_id')
    return {b if a == user.pk else a for a, b in rows}


def entangled_users(user):
    return User.objects.filter(pk__in=entangled_ids(user)).order_by('full_name', 'username')


def entanglement_count(user):
    return Connection.objects.filter(
        Q(user=user) | Q(target_user=user),
        status=Connection.STATUS_ACCEPTED,
    ).count()


def are_entangled(a, b):
    return Connection.objects.filter(_pair_q(a, b), status=Connection.STATUS_ACCEPTED).exists()
