"""
Feed assembly and post interactions.

Posts are listed newest first with their author, organization, like and
comment counts and whether the viewer liked them, all computed in the
query rather than row by row.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Count, Exists, OuterRef, Value
from django.utils import timezone

from .exceptions import NotAllowed, ValidationFailed
from .models import Notification, Post, PostComment, PostLike
from . import orgs

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 30


def feed_queryset(viewer=None, user=None, org=None):
    qs = (
        Post.objects.select_related('user', 'org')
        .annotate(
            like_count=Count('likes', distinct=True),
            comment_count=Count('comments', distinct=True),
        )
        .order_by('-created_at')
    )
    if user is not None:
        qs = qs.filter(user=user)
    if org is not None:
        qs = qs.filter(org=org)
    if viewer is not None and viewer.is_authenticated:
        qs = qs.annotate(
            liked_by_me=Exists(PostLike.objects.filter(post=OuterRef('pk'), user=viewer))
        )
    else:
        qs = qs.annotate(liked_by_me=Value(False))
    return qs


def build_feed(viewer=None, user=None, org=None, limit=DEFAULT_LIMIT):
    return list(feed_queryset(viewer, user=user, org=org)[:limit])


def create_post(author, body, image=None, org=None):
    body = (body or '').strip()
    if not body and not image:
        raise ValidationFailed("Write something before posting.")
    if org is not None and not orgs.can_post_as(author, org):
        raise NotAllowed("Only the organization's owners and admins can post on its behalf.")

    post = Post.objects.create(user=author, body=body, org=org)
    if image:
        post.image = image
        post.save(update_fields=['image'])
    logger.info("User %s created post %s", author.pk, post.pk)
    return post


def delete_post(actor, post):
    if post.user_id != actor.pk:
        raise NotAllowed("You can only delete your own posts.")
    post.delete()


def toggle_like(actor, post):
    """Like or unlike ``post``. Returns ``(liked, like_count)``."""
    with transaction.atomic():
        like, created = PostLike.objects.get_or_create(post=post, user=actor)
        if not created:
            like.delete()
        elif post.user_id != actor.pk:
            Notification.objects.create(
                user=post.user,
                actor=actor,
                kind=Notification.KIND_POST_LIKE,
                message=f"{actor.display_name} liked your post.",
                post=post,
            )
    return created, post.likes.count()


def add_comment(actor, post, body):
    body = (body or '').strip()
    if not body:
        raise ValidationFailed("Comment cannot be empty.")

    with transaction.atomic():
        comment = PostComment.objects.create(post=post, user=actor, body=body)
        if post.user_id != actor.pk:
            Notification.objects.create(
                user=post.user,
                actor=actor,
                kind=Notification.KIND_POST_COMMENT,
                message=f"{actor.display_name} commented on your post.",
                post=post,
            )
    return comment


def list_comments(post):
    return post.comments.select_related('user').order_by('created_at')


def delete_comment(actor, comment):
    if actor.pk not in (comment.user_id, comment.post.user_id):
        raise NotAllowed("You can only delete your own comments.")
    comment.delete()


def _plural(n, unit):
    return f"{n} {unit}{'' if n == 1 else 's'} ago"


def format_relative_time(value, now=None):
    """Human "time ago" string; empty for missing values."""
    if not value:
        return ""
    now = now or timezone.now()
    seconds = int((now - value) / timedelta(seconds=1))

    if seconds < 5:
        return "just now"
    if seconds < 60:
        return f"{seconds} seconds ago"
    minutes = seconds // 60
    if minutes < 60:
        return _plural(minutes, "minute")
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")
    days = hours // 24
    if days < 7:
        return _plural(days, "day")
    weeks = days // 7
    if weeks < 5:
        return _plural(weeks, "week")
    return _plural(days // 30, "month")
