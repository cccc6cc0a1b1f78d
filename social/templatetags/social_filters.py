from django import template
from django.urls import NoReverseMatch, reverse
from django.utils.html import escape
from django.utils.safestring import mark_safe
import re

from ..feed import format_relative_time
from ..models import OrgMember

register = template.Library()

URL_PATTERN = r'(?:https?://|www\.)[^\s<]+|\b[a-z0-9.-]+\.[a-z]{2,}(?:/[^\s<]*)?'
MENTION_PATTERN = r'(?<![\w@/])@(?P<username>\w+)'
# one pass so a mention inside a URL stays part of the URL
LINK_RE = re.compile(rf'(?P<url>{URL_PATTERN})|(?P<mention>{MENTION_PATTERN})', re.IGNORECASE)

ROLE_LABELS = dict(OrgMember.ROLE_CHOICES)


@register.filter
def get_item(dictionary, key):
    """
    Safely get item from dictionary.
    Tries the key as given and as a string; returns False when missing.
    """
    if isinstance(dictionary, dict):
        if key in dictionary:
            return dictionary[key]
        return dictionary.get(str(key), False)
    return False


@register.filter
def relative_time(value):
    return format_relative_time(value)


@register.filter
def role_label(role):
    return ROLE_LABELS.get(role, role)


@register.filter
def linkify(value):
    """
    Escape text, then turn URLs and @mentions into links.

    Supports:
    - URLs with or without a scheme (https:// is added when missing)
    - @mentions: @username links to the member's profile
    - Line breaks: converts \\n to <br>
    """
    if not value:
        return ""
    text = escape(value)

    def replace_link(match):
        if match.group('url'):
            url = match.group('url')
            href = url if re.match(r'^https?://', url, re.IGNORECASE) else f'https://{url}'
            return f'<a href="{href}" target="_blank" rel="noopener noreferrer">{url}</a>'
        username = match.group('username')
        try:
            url = reverse('profile', args=[username])
        except NoReverseMatch:
            return match.group(0)
        return f'<a href="{url}">@{username}</a>'

    text = LINK_RE.sub(replace_link, text)
    return mark_safe(text.replace('\n', '<br>'))
