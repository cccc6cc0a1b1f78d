"""
Organization pages, their team and followers.

Permission ladder used across the app:

    manage team / post as org : owner, co_owner, admin
    remove members            : owner, co_owner
    post jobs and products    : owner, co_owner
    edit the page             : owner (or the creator)

The creator of a page always counts as its owner, even when the OrgMember
row is missing.
"""

import logging
import re

from django.db import IntegrityError, transaction
from django.db.models import Q

from .exceptions import NotAllowed, ValidationFailed
from .models import Notification, OrgFollow, OrgMember, Organization, User

logger = logging.getLogger(__name__)

MANAGE_ROLES = (OrgMember.ROLE_OWNER, OrgMember.ROLE_CO_OWNER, OrgMember.ROLE_ADMIN)
REMOVE_ROLES = (OrgMember.ROLE_OWNER, OrgMember.ROLE_CO_OWNER)
LISTING_ROLES = (OrgMember.ROLE_OWNER, OrgMember.ROLE_CO_OWNER)
ASSIGNABLE_ROLES = (OrgMember.ROLE_MEMBER, OrgMember.ROLE_ADMIN, OrgMember.ROLE_CO_OWNER)

EDITABLE_FIELDS = (
    'name', 'tagline', 'description', 'website', 'country', 'city',
    'industry', 'company_type', 'group_type', 'institution', 'department',
    'focus_areas', 'size_label',
)


# ============================================================================
# SLUGS
# ============================================================================

def slugify(value):
    """Lowercase, hyphen-separated ASCII slug."""
    value = (value or '').strip().lower()
    value = re.sub(r'[^a-z0-9]+', '-', value)
    return value.strip('-')[:100]


def unique_slug(base, exclude_pk=None):
    base = base or 'org'
    qs = Organization.objects.all()
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)

    candidate, n = base, 2
    while qs.filter(slug=candidate).exists():
        candidate = f"{base}-{n}"
        n += 1
    return candidate


# ============================================================================
# LOOKUPS & PERMISSIONS
# ============================================================================

def active_orgs():
    return Organization.objects.filter(is_active=True)


def get_active(slug):
    """Active organization by slug, or None."""
    return active_orgs().filter(slug=slug).first()


def member_role(user, org):
    if user is None or not user.is_authenticated or org is None:
        return None
    if org.created_by_id == user.pk:
        return OrgMember.ROLE_OWNER
    return (
        OrgMember.objects.filter(org=org, user=user)
        .values_list('role', flat=True)
        .first()
    )


def can_edit(user, org):
    return member_role(user, org) == OrgMember.ROLE_OWNER


def can_manage_members(user, org):
    return member_role(user, org) in MANAGE_ROLES


def can_remove_members(user, org):
    return member_role(user, org) in REMOVE_ROLES


def can_post_listings(user, org):
    return member_role(user, org) in LISTING_ROLES


def can_post_as(user, org):
    return can_manage_members(user, org)


def orgs_for_listings(user):
    """Active organizations where ``user`` may publish jobs and products."""
    if user is None or not user.is_authenticated:
        return Organization.objects.none()
    return active_orgs().filter(
        Q(created_by=user) | Q(members__user=user, members__role__in=LISTING_ROLES)
    ).distinct()


def orgs_for_posting(user):
    if user is None or not user.is_authenticated:
        return Organization.objects.none()
    return active_orgs().filter(
        Q(created_by=user) | Q(members__user=user, members__role__in=MANAGE_ROLES)
    ).distinct()


# ============================================================================
# CREATE / EDIT
# ============================================================================

def _clean_fields(data):
    cleaned = {field: (data.get(field) or '').strip() for field in EDITABLE_FIELDS}
    if not cleaned['name']:
        raise ValidationFailed("Organization name is required.")
    return cleaned


def create_organization(creator, kind, data, logo=None):
    if kind not in (Organization.KIND_COMPANY, Organization.KIND_RESEARCH_GROUP):
        raise ValidationFailed("Unknown organization type.")

    fields = _clean_fields(data)
    requested = slugify(data.get('slug'))

    with transaction.atomic():
        if requested:
            if Organization.objects.filter(slug=requested).exists():
                raise ValidationFailed("That URL is already taken. Please choose another slug.")
            slug = requested
        else:
            slug = unique_slug(slugify(fields['name']))

        try:
            org = Organization.objects.create(created_by=creator, kind=kind, slug=slug, **fields)
        except IntegrityError:
            raise ValidationFailed("That URL is already taken. Please choose another slug.")

        if logo:
            org.logo = logo
            org.save(update_fields=['logo'])
        OrgMember.objects.create(org=org, user=creator, role=OrgMember.ROLE_OWNER)

    logger.info("User %s created organization %s (%s)", creator.pk, org.slug, kind)
    return org


def update_organization(actor, org, data, logo=None):
    if not can_edit(actor, org):
        raise NotAllowed("Only the organization owner can edit this page.")

    for field, value in _clean_fields(data).items():
        setattr(org, field, value)
    if logo:
        org.logo = logo
    org.save()
    return org


def deactivate(actor, org):
    if not can_edit(actor, org):
        raise NotAllowed("Only the organization owner can edit this page.")
    org.is_active = False
    org.save(update_fields=['is_active'])
    logger.info("Organization %s deactivated by user %s", org.slug, actor.pk)


def search_organizations(query='', kind=''):
    qs = active_orgs()
    if kind in (Organization.KIND_COMPANY, Organization.KIND_RESEARCH_GROUP):
        qs = qs.filter(kind=kind)
    query = (query or '').strip()
    if query:
        qs = qs.filter(
            Q(name__icontains=query)
            | Q(tagline__icontains=query)
            | Q(industry__icontains=query)
            | Q(institution__icontains=query)
            | Q(focus_areas__icontains=query)
            | Q(city__icontains=query)
            | Q(country__icontains=query)
        )
    return qs.order_by('name')


# ============================================================================
# TEAM
# ============================================================================

def team_members(org):
    """
    Team listing as dicts (user, role, is_affiliated, designation), sorted
    owner, co_owner, admin, member and then by name.
    """
    rows = list(OrgMember.objects.filter(org=org).select_related('user'))
    team = [
        {
            'user': row.user,
            'role': row.role,
            'is_affiliated': row.is_affiliated,
            'designation': row.designation or '',
        }
        for row in rows
    ]

    if org.created_by_id and not any(row.user_id == org.created_by_id for row in rows):
        team.append({
            'user': org.created_by,
            'role': OrgMember.ROLE_OWNER,
            'is_affiliated': True,
            'designation': '',
        })
    for member in team:
        if member['user'].pk == org.created_by_id:
            member['role'] = OrgMember.ROLE_OWNER

    team.sort(key=lambda m: (
        OrgMember.ROLE_ORDER.get(m['role'], 99),
        m['user'].display_name.lower(),
    ))
    return team


def _check_role(role):
    if role not in ASSIGNABLE_ROLES:
        raise ValidationFailed("Unknown role.")


def _is_owner_row(org, user_id, membership=None):
    if org.created_by_id == user_id:
        return True
    return membership is not None and membership.role == OrgMember.ROLE_OWNER


def add_member(actor, org, user, role=OrgMember.ROLE_MEMBER, designation=''):
    """Add ``user`` to the team, or update their role if already there."""
    if not can_manage_members(actor, org):
        raise NotAllowed("You do not have permission to manage this team.")
    _check_role(role)

    with transaction.atomic():
        membership = OrgMember.objects.select_for_update().filter(org=org, user=user).first()
        if _is_owner_row(org, user.pk, membership):
            raise NotAllowed("The owner's role cannot be changed.")

        created = membership is None
        if created:
            membership = OrgMember.objects.create(
                org=org, user=user, role=role, designation=(designation or '').strip() or None,
            )
        else:
            membership.role = role
            if designation:
                membership.designation = designation.strip()
            membership.save()

        if created and user.pk != actor.pk:
            Notification.objects.create(
                user=user,
                actor=actor,
                kind=Notification.KIND_ORG_MEMBER_ADDED,
                message=f"{actor.display_name} added you to {org.name}.",
                org=org,
            )

    logger.info("User %s added %s to %s as %s", actor.pk, user.pk, org.slug, role)
    return membership


def _membership_or_error(org, user_id):
    membership = OrgMember.objects.filter(org=org, user_id=user_id).first()
    if membership is None:
        raise ValidationFailed("This member is not part of the team.")
    return membership


def change_role(actor, org, user_id, role):
    if not can_manage_members(actor, org):
        raise NotAllowed("You do not have permission to manage this team.")
    _check_role(role)
    membership = _membership_or_error(org, user_id)
    if _is_owner_row(org, user_id, membership):
        raise NotAllowed("The owner's role cannot be changed.")
    membership.role = role
    membership.save(update_fields=['role'])
    return membership


def update_designation(actor, org, user_id, designation):
    if not can_manage_members(actor, org):
        raise NotAllowed("You do not have permission to manage this team.")
    membership = _membership_or_error(org, user_id)
    membership.designation = (designation or '').strip() or None
    membership.save(update_fields=['designation'])
    return membership


def remove_member(actor, org, user_id):
    if not can_remove_members(actor, org):
        raise NotAllowed("Only the owner or a co-owner can remove members.")
    membership = _membership_or_error(org, user_id)
    if _is_owner_row(org, user_id, membership):
        raise NotAllowed("The owner cannot be removed.")
    membership.delete()
    logger.info("User %s removed %s from %s", actor.pk, user_id, org.slug)


def set_self_affiliation(user, org, is_affiliated):
    membership = OrgMember.objects.filter(org=org, user=user).first()
    if membership is None:
        raise ValidationFailed("You are not a member of this organization.")
    membership.is_affiliated = bool(is_affiliated)
    membership.save(update_fields=['is_affiliated'])
    return membership


def search_candidates(org, query, limit=10):
    """Members matching ``query`` by name or username who are not yet on the team."""
    query = (query or '').strip()
    if not query:
        return User.objects.none()
    taken = set(OrgMember.objects.filter(org=org).values_list('user_id', flat=True))
    if org.created_by_id:
        taken.add(org.created_by_id)
    return (
        User.objects.filter(is_active=True)
        .filter(Q(full_name__icontains=query) | Q(username__icontains=query))
        .exclude(pk__in=taken)
        .order_by('full_name', 'username')[:limit]
    )


# ============================================================================
# FOLLOWERS
# ============================================================================

def is_following(user, org):
    if user is None or not user.is_authenticated:
        return False
    return OrgFollow.objects.filter(org=org, user=user).exists()


def followed_org_ids(user):
    if user is None or not user.is_authenticated:
        return set()
    return set(OrgFollow.objects.filter(user=user).values_list('org_id', flat=True))


def toggle_follow(user, org):
    """Follow or unfollow. Returns ``(following, follower_count)``."""
    with transaction.atomic():
        follow, created = OrgFollow.objects.get_or_create(org=org, user=user)
        if not created:
            follow.delete()
        elif org.created_by_id and org.created_by_id != user.pk:
            Notification.objects.create(
                user_id=org.created_by_id,
                actor=user,
                kind=Notification.KIND_ORG_FOLLOW,
                message=f"{user.display_name} started following {org.name}.",
                org=org,
            )
    return created, follower_count(org)


def follower_count(org):
    return OrgFollow.objects.filter(org=org).count()


def followers(org):
    return User.objects.filter(org_follows__org=org).order_by('-org_follows__created_at')
