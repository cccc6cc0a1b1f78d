"""
================================================================================
QUANTUM5OCIAL - CUSTOM MIDDLEWARE
================================================================================

@file        middleware.py
@description Per-request timezone activation
@version     1.0.0

MODULE PURPOSE
================================================================================
TimezoneMiddleware
   - Activates the signed-in member's timezone for datetime display
   - Falls back to UTC for anonymous visitors or unknown timezone names

Templates and the relative-time filter therefore render timestamps in the
member's own zone without each view doing anything.

DEPENDENCIES
================================================================================
- pytz: Timezone database
- django.utils.timezone: Timezone activation
- User model with a 'timezone' field

================================================================================
"""

import logging

import pytz
from django.utils import timezone

logger = logging.getLogger(__name__)


# ============================================================================
# TIMEZONE MIDDLEWARE
# ============================================================================

class TimezoneMiddleware:
    """
    Activate user-specific timezone for datetime display.

    Error Handling:
        - pytz.UnknownTimeZoneError: invalid timezone string -> UTC
        - AttributeError: user object without a timezone -> UTC
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)

        if user is not None and user.is_authenticated:
            try:
                timezone.activate(pytz.timezone(user.timezone or 'UTC'))
            except (pytz.UnknownTimeZoneError, AttributeError):
                logger.warning("Unknown timezone for user %s, using UTC", user.pk)
                timezone.activate(pytz.UTC)
        else:
            timezone.activate(pytz.UTC)

        return self.get_response(request)
