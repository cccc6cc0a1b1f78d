"""
Change feeds polled by the browser in place of push subscriptions.

Clients remember the ``server_time`` of the last answer and send it back as
``since`` on the next poll.
"""

from datetime import datetime, timezone as dt_timezone

from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .exceptions import ValidationFailed
from .models import Job, Notification, Post, Product
from .notifications import badge_counts


def parse_since(raw):
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC."""
    raw = (raw or '').strip()
    if not raw:
        raise ValidationFailed("Missing 'since' timestamp.")
    # "+" in a query string arrives as a space
    raw = raw.replace(' ', '+')
    try:
        value = parse_datetime(raw)
    except ValueError:
        value = None
    if value is None:
        raise ValidationFailed("Invalid 'since' timestamp.")
    if timezone.is_naive(value):
        value = value.replace(tzinfo=dt_timezone.utc)
    return value


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else None


def user_changes(user, since):
    ids = list(
        Notification.objects.filter(user=user, created_at__gt=since)
        .order_by('created_at')
        .values_list('id', flat=True)
    )
    payload = dict(badge_counts(user))
    payload.update(
        notification_ids=ids,
        server_time=_iso(timezone.now()),
    )
    return payload


def _changed(qs, since):
    return list(
        qs.filter(Q(created_at__gt=since) | Q(updated_at__gt=since))
        .order_by('created_at')
        .values_list('id', flat=True)
    )


def org_changes(org, since):
    return {
        'org': org.slug,
        'post_ids': _changed(Post.objects.filter(org=org), since),
        'job_ids': _changed(Job.objects.filter(org=org), since),
        'product_ids': _changed(Product.objects.filter(org=org), since),
        'server_time': _iso(timezone.now()),
    }
