"""
================================================================================
QUANTUM5OCIAL - CONTEXT PROCESSORS
================================================================================

@file        context_processors.py
@description Navbar badge counts available in every template
@version     1.0.0

MODULE PURPOSE
================================================================================
unread_counts() injects the counts behind the navbar badges:

    {{ pending_requests_count }}       incoming entanglement requests
    {{ unread_notifications_count }}   unread notification rows
    {{ nav_notifications_count }}      the two above combined
    {{ unread_messages_count }}        unread direct messages

USAGE IN SETTINGS.PY
================================================================================
TEMPLATES = [
    {
        'OPTIONS': {
            'context_processors': [
                ...
                'social.context_processors.unread_counts',
            ],
        },
    },
]

PERFORMANCE CONSIDERATIONS
================================================================================
Runs on every request: counts only (.count()), early return for anonymous
visitors. A failing count never breaks the page; the badge shows zero.

================================================================================
"""

import logging

from django.db import DatabaseError

from .notifications import badge_counts

logger = logging.getLogger(__name__)


# ============================================================================
# CONTEXT PROCESSOR: UNREAD COUNTS
# ============================================================================

def unread_counts(request):
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return badge_counts(None)

    try:
        return badge_counts(user)
    except DatabaseError:
        logger.exception("Could not load badge counts for user %s", user.pk)
        return badge_counts(None)
