import logging
import pytz

from datetime import datetime
from urllib.parse import urlencode

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.contrib.auth.forms import PasswordChangeForm
from django.core.mail import EmailMultiAlternatives
from django.db import DatabaseError, IntegrityError
from django.db.models import Q
from django.http import HttpResponseRedirect, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.template.loader import render_to_string
from django.urls import reverse
from django.utils.crypto import get_random_string
from django.utils.html import strip_tags
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_GET, require_POST

from . import badges, changes, entanglements, feed, listings, messaging, notifications, orgs, qna
from .exceptions import Q5Error
from .models import (
    EDUCATION_CHOICES, Answer, Job, Organization, OrgMember, Post, PostComment,
    Product, Question, User
)


# Logger
logger = logging.getLogger(__name__)

# Signed-out visitors are sent to /auth?redirect=<path>
member_required = login_required(redirect_field_name="redirect")

LOAD_POSTS_ERROR = "Could not load posts."


class SecurityPasswordForm(PasswordChangeForm):
    """Password change from the security settings page."""

    error_messages = {
        **PasswordChangeForm.error_messages,
        'password_incorrect': "Current password is incorrect.",
        'password_mismatch': "New passwords do not match.",
    }


def _fail(exc):
    return JsonResponse({"error": exc.message}, status=exc.status)


def _safe_redirect_target(request, default='dashboard'):
    target = request.POST.get('redirect') or request.GET.get('redirect') or ''
    if target and url_has_allowed_host_and_scheme(
        target,
        allowed_hosts={request.get_host()},
        require_https=request.is_secure(),
    ):
        return target
    return reverse(default)


def _load_feed(request, **filters):
    """Feed items, or an empty list plus the generic error on backend failure."""
    limit = getattr(settings, 'Q5_FEED_PAGE_SIZE', feed.DEFAULT_LIMIT)
    try:
        return feed.build_feed(request.user, limit=limit, **filters), None
    except DatabaseError:
        logger.exception("Feed query failed (%s)", filters)
        return [], LOAD_POSTS_ERROR


def _avatar_url(user):
    return user.avatar.url if user and user.avatar else ''


def _post_json(post):
    author = post.user
    return {
        "id": post.id,
        "body": post.body,
        "image_url": post.image.url if post.image else '',
        "author": {
            "username": author.username if author else '',
            "display_name": author.display_name if author else "Quantum member",
            "initials": author.initials if author else "Q5",
            "avatar_url": _avatar_url(author),
        },
        "org": {"slug": post.org.slug, "name": post.org.name} if post.org_id else None,
        "like_count": post.like_count,
        "comment_count": post.comment_count,
        "liked_by_me": bool(post.liked_by_me),
        "created_at": post.created_at.isoformat(),
        "relative_time": feed.format_relative_time(post.created_at),
    }


def _comment_json(comment):
    return {
        "id": comment.id,
        "body": comment.body,
        "post_id": comment.post_id,
        "author": {
            "username": comment.user.username,
            "display_name": comment.user.display_name,
            "initials": comment.user.initials,
        },
        "created_at": comment.created_at.isoformat(),
        "relative_time": feed.format_relative_time(comment.created_at),
    }


# ============================================================================
# AUTHENTICATION
# ============================================================================

def index(request):
    posts, load_error = _load_feed(request)
    highlighted = request.GET.get('post', '')
    return render(request, "social/index.html", {
        'posts': posts,
        'load_error': load_error,
        'highlighted_post': int(highlighted) if highlighted.isdigit() else None,
        'posting_orgs': orgs.orgs_for_posting(request.user),
    })


def _auth_context(request, mode='signin', **extra):
    context = {
        'mode': mode,
        'verify': request.GET.get('verify') == '1',
        'verify_email': request.GET.get('email', ''),
        'redirect_to': request.POST.get('redirect') or request.GET.get('redirect', ''),
    }
    context.update(extra)
    return context


def auth_view(request):
    if request.user.is_authenticated and request.method != "POST":
        return HttpResponseRedirect(_safe_redirect_target(request))

    if request.method == "POST":
        identifier = request.POST.get("identifier", "").strip()
        password = request.POST.get("password", "")

        # Try to find user by username or email
        user = User.objects.filter(username__iexact=identifier).first()
        if user is None and identifier:
            users = User.objects.filter(email__iexact=identifier)
            if users.count() > 1:
                messages.error(request, "Multiple accounts found with this email. Please use username instead.")
                return render(request, "social/auth.html", _auth_context(request))
            user = users.first()

        if user is None:
            messages.error(request, "No account found with that username or email.")
        elif not user.is_active:
            messages.error(request, "Account is inactive. Please check your email to activate.")
        else:
            authenticated = authenticate(request, username=user.username, password=password)
            if authenticated is not None:
                login(request, authenticated)
                logger.info("User %s signed in", authenticated.pk)
                return HttpResponseRedirect(_safe_redirect_target(request))
            messages.error(request, "Invalid password.")

        return render(request, "social/auth.html", _auth_context(request))

    mode = 'signup' if request.GET.get('mode') == 'signup' else 'signin'
    return render(request, "social/auth.html", _auth_context(request, mode=mode))


def logout_view(request):
    logout(request)
    return HttpResponseRedirect(reverse("index"))


def _validate_username(username):
    if not username:
        return "Username is required."
    if len(username) < 3:
        return "Username must be at least 3 characters."
    if len(username) > 30:
        return "Username cannot exceed 30 characters."
    if not username.replace('_', '').isalnum() or not username.isascii():
        return "Username can only contain letters, numbers, and underscores."
    return None


def _validate_registration(username, email, password, confirmation):
    errors = []

    username_error = _validate_username(username)
    if username_error:
        errors.append(username_error)

    if not email:
        errors.append("Email is required.")
    elif '@' not in email or '.' not in email.split('@')[-1]:
        errors.append("Please enter a valid email address.")

    if not password:
        errors.append("Password is required.")
    elif len(password) < 8:
        errors.append("Password must be at least 8 characters.")

    if password != confirmation:
        errors.append("Passwords do not match.")

    return errors


def _send_activation_email(request, user):
    activation_link = request.build_absolute_uri(
        reverse('activate', kwargs={'token': user.activation_token})
    )
    context = {
        'display_name': user.display_name,
        'activation_link': activation_link,
        'email': user.email,
        'support_email': settings.DEFAULT_FROM_EMAIL,
        'current_year': datetime.now().year,
        'site_name': 'Quantum5ocial',
    }
    html_message = render_to_string('social/emails/activation_email.html', context)
    plain_message = render_to_string('social/emails/activation_email.txt', context) or strip_tags(html_message)

    email_msg = EmailMultiAlternatives(
        subject='Confirm your Quantum5ocial account',
        body=plain_message,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[user.email],
        reply_to=[settings.DEFAULT_FROM_EMAIL],
    )
    email_msg.attach_alternative(html_message, "text/html")
    email_msg.send(fail_silently=False)


def register(request):
    if request.method != "POST":
        return HttpResponseRedirect(f"{reverse('auth')}?mode=signup")

    username = request.POST.get("username", "").strip()
    email = request.POST.get("email", "").strip().lower()
    password = request.POST.get("password", "")
    confirmation = request.POST.get("confirmation", "")
    full_name = request.POST.get("full_name", "").strip()

    def fail(*errors):
        for error in errors:
            messages.error(request, error)
        return render(request, "social/auth.html", _auth_context(request, mode='signup', form=request.POST))

    errors = _validate_registration(username, email, password, confirmation)
    if errors:
        return fail(*errors)

    if User.objects.filter(username__iexact=username).exists():
        return fail("Username already taken.")
    if User.objects.filter(email__iexact=email).exists():
        return fail("Email already registered.")

    try:
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            full_name=full_name,
        )
    except IntegrityError:
        logger.warning("IntegrityError during registration for %s", email)
        return fail("Username or email already taken.")

    user.is_active = False
    user.activation_token = get_random_string(32)
    user.save(update_fields=['is_active', 'activation_token'])

    try:
        _send_activation_email(request, user)
    except Exception:
        logger.exception("Activation email failed for %s", email)
        user.delete()
        return fail("Failed to send activation email. Please try again later.")

    logger.info("Registration success for %s. Activation email sent.", email)
    return HttpResponseRedirect(f"{reverse('auth')}?{urlencode({'verify': 1, 'email': email})}")


def activate(request, token):
    user = User.objects.filter(activation_token=token, is_active=False).first()
    if user is None:
        messages.error(request, "Invalid or expired activation link.")
        return render(request, "social/auth.html", _auth_context(request), status=400)

    user.is_active = True
    user.activation_token = ''
    user.save(update_fields=['is_active', 'activation_token'])
    login(request, user, backend='django.contrib.auth.backends.ModelBackend')
    messages.success(request, "Your email is confirmed. Welcome to Quantum5ocial!")
    return redirect('dashboard')


# ============================================================================
# DASHBOARD & PROFILES
# ============================================================================

@member_required
def dashboard(request):
    user = request.user
    my_orgs = Organization.objects.filter(created_by=user, is_active=True).order_by('created_at')
    return render(request, "social/dashboard.html", {
        'saved_jobs_count': user.saved_jobs.count(),
        'saved_products_count': user.saved_products.count(),
        'entanglements_count': entanglements.entanglement_count(user),
        'my_orgs_count': my_orgs.count(),
        'first_org': my_orgs.first(),
        'pending_requests': entanglements.pending_requests(user)[:5],
        'recent_posts': feed.build_feed(user, user=user, limit=5),
    })


@member_required
def my_profile(request):
    return redirect('profile', username=request.user.username)


def profile(request, username):
    profile_user = get_object_or_404(User, username=username, is_active=True)
    posts, load_error = _load_feed(request, user=profile_user)
    is_self = request.user.is_authenticated and request.user.pk == profile_user.pk

    return render(request, "social/profile.html", {
        'profile_user': profile_user,
        'is_self': is_self,
        'posts': posts,
        'load_error': load_error,
        'entanglement_status': entanglements.status_for(request.user, profile_user),
        'entanglements_count': entanglements.entanglement_count(profile_user),
        'memberships': profile_user.org_memberships.select_related('org').filter(org__is_active=True),
        'education_choices': EDUCATION_CHOICES,
    })


PROFILE_FIELDS = (
    'full_name', 'role', 'short_bio', 'describes_you', 'affiliation',
    'current_org', 'country', 'city',
)


@member_required
def edit_profile(request):
    user = request.user
    context = {
        'timezone_choices': pytz.common_timezones,
        'education_choices': EDUCATION_CHOICES,
    }

    if request.method == "POST":
        new_username = request.POST.get('username', '').strip()
        if new_username and new_username != user.username:
            username_error = _validate_username(new_username)
            if username_error:
                messages.error(request, username_error)
                return render(request, "social/edit_profile.html", context)
            if User.objects.filter(username__iexact=new_username).exclude(pk=user.pk).exists():
                messages.error(request, "Username already taken.")
                return render(request, "social/edit_profile.html", context)
            user.username = new_username

        for field in PROFILE_FIELDS:
            setattr(user, field, request.POST.get(field, '').strip())

        education = request.POST.get('highest_education', '')
        user.highest_education = education if education in dict(EDUCATION_CHOICES) else ''

        tz = request.POST.get('timezone', 'UTC')
        user.timezone = tz if tz in pytz.all_timezones_set else 'UTC'

        if request.FILES.get('avatar'):
            user.avatar = request.FILES['avatar']

        user.save()
        messages.success(request, "Profile updated.")
        return redirect('profile', username=user.username)

    return render(request, "social/edit_profile.html", context)


@member_required
@require_POST
def upload_avatar(request):
    upload = request.FILES.get('avatar')
    if not upload:
        return JsonResponse({"error": "Choose an image to upload."}, status=400)
    if not (upload.content_type or '').startswith('image/'):
        return JsonResponse({"error": "Avatar must be an image."}, status=400)

    request.user.avatar = upload
    request.user.save(update_fields=['avatar'])
    return JsonResponse({"avatar_url": _avatar_url(request.user)})


@member_required
@require_POST
def claim_badge(request):
    result = badges.compute_q5_badge(badges.parse_answers(request.POST))
    badges.apply_badge(request.user, result)
    logger.info("User %s claimed badge level %s", request.user.pk, result.level)
    return JsonResponse({
        "level": result.level,
        "label": result.label,
        "review_status": result.review_status,
        "rationale": result.rationale,
    })


# ============================================================================
# COMMUNITY & ENTANGLEMENTS
# ============================================================================

@member_required
def community(request):
    query = request.GET.get('q', '').strip()

    members = User.objects.filter(is_active=True).exclude(pk=request.user.pk)
    if query:
        members = members.filter(
            Q(full_name__icontains=query)
            | Q(username__icontains=query)
            | Q(role__icontains=query)
            | Q(affiliation__icontains=query)
            | Q(city__icontains=query)
            | Q(country__icontains=query)
        )
    members = list(members.order_by('full_name', 'username'))

    org_list = orgs.search_organizations(query)
    return render(request, "social/community.html", {
        'query': query,
        'members': members,
        'statuses': entanglements.statuses_for(request.user, members),
        'organizations': org_list,
        'followed_org_ids': orgs.followed_org_ids(request.user),
    })


@member_required
@require_POST
def entangle(request, user_id):
    target = get_object_or_404(User, pk=user_id, is_active=True)
    try:
        _, status = entanglements.entangle(request.user, target)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"status": status})


@member_required
@require_POST
def decline_entanglement(request, user_id):
    other = get_object_or_404(User, pk=user_id)
    try:
        entanglements.decline(request.user, other)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"status": entanglements.DECLINED})


@member_required
@require_POST
def respond_request(request, connection_id):
    accept = request.POST.get('accept') in ('1', 'true', 'yes')
    try:
        row = entanglements.respond(request.user, connection_id, accept)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"status": row.status, "connection_id": row.pk})


@member_required
@require_POST
def disentangle(request, user_id):
    other = get_object_or_404(User, pk=user_id)
    try:
        entanglements.remove(request.user, other)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"status": entanglements.NONE})


@member_required
def entangled_states(request):
    return render(request, "social/entangled.html", {
        'entangled': entanglements.entangled_users(request.user),
        'pending_requests': entanglements.pending_requests(request.user),
    })


# ============================================================================
# FEED
# ============================================================================

@member_required
@require_POST
def new_post(request):
    org = None
    org_slug = request.POST.get('org', '').strip()
    if org_slug:
        org = orgs.get_active(org_slug)
        if org is None:
            return JsonResponse({"error": "Organization not found or no longer active."}, status=404)

    image = request.FILES.get('image')
    if image and not settings.USE_CLOUDINARY:
        return JsonResponse({"error": "Image uploads are not configured."}, status=400)

    try:
        post = feed.create_post(request.user, request.POST.get('body', ''), image=image, org=org)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"message": "Posted!", "post_id": post.id}, status=201)


@require_GET
def feed_api(request):
    filters = {}
    if request.GET.get('user'):
        filters['user'] = get_object_or_404(User, username=request.GET['user'])
    if request.GET.get('org'):
        filters['org'] = get_object_or_404(Organization, slug=request.GET['org'], is_active=True)

    posts, load_error = _load_feed(request, **filters)
    if load_error:
        return JsonResponse({"error": load_error}, status=503)
    return JsonResponse({"posts": [_post_json(post) for post in posts]})


@member_required
@require_POST
def delete_post(request, post_id):
    post = get_object_or_404(Post, pk=post_id)
    try:
        feed.delete_post(request.user, post)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"success": True})


@member_required
@require_POST
def toggle_like(request, post_id):
    post = get_object_or_404(Post, pk=post_id)
    liked, count = feed.toggle_like(request.user, post)
    return JsonResponse({"liked": liked, "like_count": count})


def post_comments(request, post_id):
    post = get_object_or_404(Post, pk=post_id)

    if request.method == "POST":
        if not request.user.is_authenticated:
            return JsonResponse({"error": "Sign in to comment."}, status=401)
        try:
            comment = feed.add_comment(request.user, post, request.POST.get('body', ''))
        except Q5Error as exc:
            return _fail(exc)
        return JsonResponse({"comment": _comment_json(comment)}, status=201)

    return JsonResponse({"comments": [_comment_json(c) for c in feed.list_comments(post)]})


@member_required
@require_POST
def delete_comment(request, comment_id):
    comment = get_object_or_404(PostComment.objects.select_related('post'), pk=comment_id)
    try:
        feed.delete_comment(request.user, comment)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"success": True})


# ============================================================================
# ORGANIZATIONS
# ============================================================================

def org_list(request):
    query = request.GET.get('q', '').strip()
    kind = request.GET.get('kind', '')
    return render(request, "social/orgs/list.html", {
        'organizations': orgs.search_organizations(query, kind),
        'query': query,
        'kind': kind,
        'followed_org_ids': orgs.followed_org_ids(request.user),
    })


def _org_form(request, kind, org=None):
    if request.method == "POST":
        try:
            if org is None:
                org = orgs.create_organization(request.user, kind, request.POST, logo=request.FILES.get('logo'))
                messages.success(request, f"{org.name} is live.")
            else:
                orgs.update_organization(request.user, org, request.POST, logo=request.FILES.get('logo'))
                messages.success(request, "Organization updated.")
        except Q5Error as exc:
            messages.error(request, exc.message)
            return render(request, "social/orgs/form.html", {'kind': kind, 'org': org, 'form': request.POST})
        return redirect('org_detail', slug=org.slug)

    return render(request, "social/orgs/form.html", {'kind': kind, 'org': org})


@member_required
def create_company(request):
    return _org_form(request, Organization.KIND_COMPANY)


@member_required
def create_research_group(request):
    return _org_form(request, Organization.KIND_RESEARCH_GROUP)


def _org_or_404(request, slug):
    org = orgs.get_active(slug)
    if org is None:
        return None, render(request, "social/orgs/not_found.html", {
            'message': "Organization not found or no longer active.",
        }, status=404)
    return org, None


@member_required
def edit_org(request, slug):
    org, missing = _org_or_404(request, slug)
    if missing:
        return missing
    if not orgs.can_edit(request.user, org):
        messages.error(request, "Only the organization owner can edit this page.")
        return redirect('org_detail', slug=org.slug)
    return _org_form(request, org.kind, org=org)


@member_required
@require_POST
def deactivate_org(request, slug):
    org, missing = _org_or_404(request, slug)
    if missing:
        return missing
    try:
        orgs.deactivate(request.user, org)
    except Q5Error as exc:
        messages.error(request, exc.message)
        return redirect('org_detail', slug=org.slug)
    messages.success(request, f"{org.name} has been deactivated.")
    return redirect('my_organizations')


ORG_TABS = ('posts', 'jobs', 'products', 'team')


def org_detail(request, slug):
    org, missing = _org_or_404(request, slug)
    if missing:
        return missing

    tab = request.GET.get('tab', 'posts')
    if tab not in ORG_TABS:
        tab = 'posts'

    context = {
        'org': org,
        'tab': tab,
        'is_following': orgs.is_following(request.user, org),
        'follower_count': orgs.follower_count(org),
        'viewer_role': orgs.member_role(request.user, org),
        'can_edit': orgs.can_edit(request.user, org),
        'can_manage': orgs.can_manage_members(request.user, org),
        'can_remove': orgs.can_remove_members(request.user, org),
        'can_post_listings': orgs.can_post_listings(request.user, org),
        'can_post_as': orgs.can_post_as(request.user, org),
        'role_choices': [c for c in OrgMember.ROLE_CHOICES if c[0] in orgs.ASSIGNABLE_ROLES],
    }

    if tab == 'posts':
        context['posts'], context['load_error'] = _load_feed(request, org=org)
    elif tab == 'jobs':
        context['jobs'] = listings.search_jobs(org=org)
        context['saved_job_ids'] = listings.saved_job_ids(request.user)
    elif tab == 'products':
        context['products'] = listings.search_products(org=org)
        context['saved_product_ids'] = listings.saved_product_ids(request.user)
    else:
        context['team'] = orgs.team_members(org)

    return render(request, "social/orgs/detail.html", context)


@member_required
@require_POST
def toggle_org_follow(request, slug):
    org = orgs.get_active(slug)
    if org is None:
        return JsonResponse({"error": "Organization not found or no longer active."}, status=404)
    following, count = orgs.toggle_follow(request.user, org)
    return JsonResponse({"following": following, "follower_count": count})


def org_followers(request, slug):
    org, missing = _org_or_404(request, slug)
    if missing:
        return missing
    return render(request, "social/orgs/followers.html", {
        'org': org,
        'followers': orgs.followers(org),
    })


def _team_org(slug):
    org = orgs.get_active(slug)
    if org is None:
        return None, JsonResponse({"error": "Organization not found or no longer active."}, status=404)
    return org, None


@member_required
@require_POST
def add_team_member(request, slug):
    org, missing = _team_org(slug)
    if missing:
        return missing
    user_id = request.POST.get('user_id', '')
    if not user_id.isdigit():
        return JsonResponse({"error": "Choose a member to add."}, status=400)
    user = get_object_or_404(User, pk=user_id)
    try:
        membership = orgs.add_member(
            request.user, org, user,
            role=request.POST.get('role', OrgMember.ROLE_MEMBER),
            designation=request.POST.get('designation', ''),
        )
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"user_id": user.pk, "role": membership.role}, status=201)


@member_required
@require_POST
def change_member_role(request, slug, user_id):
    org, missing = _team_org(slug)
    if missing:
        return missing
    try:
        membership = orgs.change_role(request.user, org, user_id, request.POST.get('role', ''))
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"user_id": user_id, "role": membership.role})


@member_required
@require_POST
def update_member_designation(request, slug, user_id):
    org, missing = _team_org(slug)
    if missing:
        return missing
    try:
        membership = orgs.update_designation(request.user, org, user_id, request.POST.get('designation', ''))
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"user_id": user_id, "designation": membership.designation or ''})


@member_required
@require_POST
def remove_team_member(request, slug, user_id):
    org, missing = _team_org(slug)
    if missing:
        return missing
    try:
        orgs.remove_member(request.user, org, user_id)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"success": True})


@member_required
@require_POST
def set_affiliation(request, slug):
    org, missing = _team_org(slug)
    if missing:
        return missing
    try:
        membership = orgs.set_self_affiliation(
            request.user, org, request.POST.get('is_affiliated') in ('1', 'true', 'on')
        )
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"is_affiliated": membership.is_affiliated})


@member_required
@require_GET
def team_search(request, slug):
    org, missing = _team_org(slug)
    if missing:
        return missing
    if not orgs.can_manage_members(request.user, org):
        return JsonResponse({"error": "You do not have permission to manage this team."}, status=403)
    results = orgs.search_candidates(org, request.GET.get('q', ''))
    return JsonResponse({"results": [
        {
            "id": u.pk,
            "username": u.username,
            "display_name": u.display_name,
            "subtitle": u.subtitle,
            "avatar_url": _avatar_url(u),
        }
        for u in results
    ]})


@member_required
def my_organizations(request):
    created = Organization.objects.filter(created_by=request.user).order_by('-created_at')
    member_of = (
        Organization.objects.filter(members__user=request.user, is_active=True)
        .exclude(created_by=request.user)
        .distinct()
    )
    return render(request, "social/orgs/mine.html", {
        'created': created,
        'member_of': member_of,
        'following': Organization.objects.filter(follows__user=request.user, is_active=True),
    })


# ============================================================================
# JOBS
# ============================================================================

def jobs(request):
    query = request.GET.get('q', '')
    employment = request.GET.get('employment', listings.ALL)
    remote = request.GET.get('remote', listings.ALL)
    org = orgs.get_active(request.GET['org']) if request.GET.get('org') else None

    return render(request, "social/jobs/list.html", {
        'jobs': listings.search_jobs(query, employment, remote, org=org),
        'query': query,
        'employment': employment,
        'remote': remote,
        'employment_types': [listings.ALL] + Job.EMPLOYMENT_TYPES,
        'remote_types': [listings.ALL] + Job.REMOTE_TYPES,
        'saved_job_ids': listings.saved_job_ids(request.user),
    })


def job_detail(request, job_id):
    job = get_object_or_404(Job.objects.select_related('org', 'owner'), pk=job_id)
    return render(request, "social/jobs/detail.html", {
        'job': job,
        'is_saved': job.pk in listings.saved_job_ids(request.user),
        'is_owner': request.user.is_authenticated and job.owner_id == request.user.pk,
    })


def _job_form_context(request, job=None, form=None):
    return {
        'job': job,
        'form': form,
        'orgs': orgs.orgs_for_listings(request.user),
        'employment_types': Job.EMPLOYMENT_TYPES,
        'remote_types': Job.REMOTE_TYPES,
        'preselected_org': request.GET.get('org', ''),
    }


@member_required
def new_job(request):
    if request.method == "POST":
        try:
            job = listings.create_job(request.user, request.POST)
        except Q5Error as exc:
            messages.error(request, exc.message)
            return render(request, "social/jobs/form.html", _job_form_context(request, form=request.POST))
        messages.success(request, "Job published.")
        return redirect('job_detail', job_id=job.pk)
    return render(request, "social/jobs/form.html", _job_form_context(request))


@member_required
def edit_job(request, job_id):
    job = get_object_or_404(Job, pk=job_id)
    if job.owner_id != request.user.pk:
        messages.error(request, "You can only edit your own jobs.")
        return redirect('job_detail', job_id=job.pk)

    if request.method == "POST":
        try:
            listings.update_job(request.user, job, request.POST)
        except Q5Error as exc:
            messages.error(request, exc.message)
            return render(request, "social/jobs/form.html", _job_form_context(request, job=job, form=request.POST))
        messages.success(request, "Job updated.")
        return redirect('job_detail', job_id=job.pk)
    return render(request, "social/jobs/form.html", _job_form_context(request, job=job))


@member_required
@require_POST
def delete_job(request, job_id):
    job = get_object_or_404(Job, pk=job_id)
    try:
        listings.delete_job(request.user, job)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"success": True})


@member_required
@require_POST
def toggle_save_job(request, job_id):
    job = get_object_or_404(Job, pk=job_id)
    return JsonResponse({"saved": listings.toggle_saved_job(request.user, job)})


@member_required
def saved_jobs(request):
    return render(request, "social/jobs/saved.html", {
        'jobs': listings.saved_jobs(request.user),
        'saved_job_ids': listings.saved_job_ids(request.user),
    })


# ============================================================================
# PRODUCTS
# ============================================================================

def products(request):
    query = request.GET.get('q', '')
    category = request.GET.get('category', listings.ALL)
    return render(request, "social/products/list.html", {
        'products': listings.search_products(query, category),
        'query': query,
        'category': category,
        'categories': [listings.ALL] + Product.CATEGORIES,
        'saved_product_ids': listings.saved_product_ids(request.user),
    })


def product_detail(request, product_id):
    product = get_object_or_404(Product.objects.select_related('org', 'owner'), pk=product_id)
    return render(request, "social/products/detail.html", {
        'product': product,
        'is_saved': product.pk in listings.saved_product_ids(request.user),
        'is_owner': request.user.is_authenticated and product.owner_id == request.user.pk,
    })


def _product_form_context(request, product=None, form=None):
    return {
        'product': product,
        'form': form,
        'orgs': orgs.orgs_for_listings(request.user),
        'categories': Product.CATEGORIES,
        'preselected_org': request.GET.get('org', ''),
    }


@member_required
def new_product(request):
    if request.method == "POST":
        try:
            product = listings.create_product(request.user, request.POST, request.FILES)
        except Q5Error as exc:
            messages.error(request, exc.message)
            return render(request, "social/products/form.html", _product_form_context(request, form=request.POST))
        messages.success(request, "Product listed.")
        return redirect('product_detail', product_id=product.pk)
    return render(request, "social/products/form.html", _product_form_context(request))


@member_required
def edit_product(request, product_id):
    product = get_object_or_404(Product, pk=product_id)
    if product.owner_id != request.user.pk:
        messages.error(request, "You can only edit your own products.")
        return redirect('product_detail', product_id=product.pk)

    if request.method == "POST":
        try:
            listings.update_product(request.user, product, request.POST, request.FILES)
        except Q5Error as exc:
            messages.error(request, exc.message)
            return render(request, "social/products/form.html",
                          _product_form_context(request, product=product, form=request.POST))
        messages.success(request, "Product updated.")
        return redirect('product_detail', product_id=product.pk)
    return render(request, "social/products/form.html", _product_form_context(request, product=product))


@member_required
@require_POST
def delete_product(request, product_id):
    product = get_object_or_404(Product, pk=product_id)
    try:
        listings.delete_product(request.user, product)
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse({"success": True})


@member_required
@require_POST
def toggle_save_product(request, product_id):
    product = get_object_or_404(Product, pk=product_id)
    return JsonResponse({"saved": listings.toggle_saved_product(request.user, product)})


@member_required
def saved_products(request):
    return render(request, "social/products/saved.html", {
        'products': listings.saved_products(request.user),
        'saved_product_ids': listings.saved_product_ids(request.user),
    })


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@member_required
def notifications_view(request):
    limit = getattr(settings, 'Q5_RECENT_ENTANGLEMENTS_LIMIT', 30)
    return render(request, "social/notifications.html", {
        'pending_requests': entanglements.pending_requests(request.user),
        'recent_entanglements': entanglements.recent_entanglements(request.user, limit=limit),
        'notifications': notifications.latest(request.user),
    })


@member_required
@require_POST
def mark_all_notifications_read(request):
    notifications.mark_all_read(request.user)
    return JsonResponse({'success': True, 'message': 'All notifications marked as read.'})


@member_required
@require_POST
def mark_notification_read(request, notification_id):
    if not notifications.mark_read(request.user, notification_id):
        return JsonResponse({'success': False, 'error': 'Notification not found.'}, status=404)
    return JsonResponse({'success': True})


@member_required
@require_POST
def delete_notification(request, notification_id):
    if not notifications.delete(request.user, notification_id):
        return JsonResponse({'success': False, 'error': 'Notification not found.'}, status=404)
    return JsonResponse({'success': True, 'message': 'Notification deleted.'})


@member_required
@require_POST
def clear_all_notifications(request):
    notifications.clear_all(request.user)
    return JsonResponse({'success': True, 'message': 'All notifications cleared.'})


# ============================================================================
# DIRECT MESSAGES
# ============================================================================

@member_required
def messages_inbox(request):
    return render(request, "social/messages/inbox.html", {
        'threads': messaging.inbox(request.user),
        'entangled': entanglements.entangled_users(request.user),
    })


@member_required
def start_thread(request, username):
    other = get_object_or_404(User, username=username)
    try:
        thread = messaging.open_thread(request.user, other)
    except Q5Error as exc:
        messages.error(request, exc.message)
        return redirect('messages_inbox')
    return redirect('thread', thread_id=thread.pk)


@member_required
def thread(request, thread_id):
    try:
        dm_thread = messaging.get_thread_for(request.user, thread_id)
    except Q5Error as exc:
        messages.error(request, exc.message)
        return redirect('messages_inbox')

    if request.method == "POST":
        try:
            messaging.send_message(request.user, dm_thread, request.POST.get('body', ''))
        except Q5Error as exc:
            messages.error(request, exc.message)
        return redirect('thread', thread_id=dm_thread.pk)

    messaging.mark_thread_read(request.user, dm_thread)
    return render(request, "social/messages/thread.html", {
        'thread': dm_thread,
        'other_user': dm_thread.other(request.user),
        'dm_messages': messaging.thread_messages(dm_thread),
    })


# ============================================================================
# Q&A
# ============================================================================

def qna_list(request):
    if request.method == "POST":
        if not request.user.is_authenticated:
            return redirect(f"{reverse('auth')}?{urlencode({'redirect': reverse('qna')})}")
        try:
            question = qna.ask(
                request.user,
                request.POST.get('title', ''),
                request.POST.get('body', ''),
                request.POST.get('tags', ''),
            )
        except Q5Error as exc:
            messages.error(request, exc.message)
            return redirect('qna')
        return redirect('question_detail', question_id=question.pk)

    query = request.GET.get('q', '')
    return render(request, "social/qna/list.html", {
        'questions': qna.questions(request.user, query=query),
        'query': query,
    })


def question_detail(request, question_id):
    question = get_object_or_404(Question.objects.select_related('user'), pk=question_id)

    if request.method == "POST":
        if not request.user.is_authenticated:
            path = reverse('question_detail', args=[question.pk])
            return redirect(f"{reverse('auth')}?{urlencode({'redirect': path})}")
        try:
            qna.answer(request.user, question, request.POST.get('body', ''))
        except Q5Error as exc:
            messages.error(request, exc.message)
        return redirect('question_detail', question_id=question.pk)

    return render(request, "social/qna/detail.html", {
        'question': question,
        'answers': qna.answers_for(question, request.user),
        'vote_count': question.votes.count(),
    })


@member_required
@require_POST
def vote_question(request, question_id):
    question = get_object_or_404(Question, pk=question_id)
    voted, count = qna.toggle_question_vote(request.user, question)
    return JsonResponse({"voted": voted, "vote_count": count})


@member_required
@require_POST
def vote_answer(request, answer_id):
    answer = get_object_or_404(Answer, pk=answer_id)
    voted, count = qna.toggle_answer_vote(request.user, answer)
    return JsonResponse({"voted": voted, "vote_count": count})


# ============================================================================
# ECOSYSTEM
# ============================================================================

@member_required
def ecosystem(request):
    user = request.user
    return render(request, "social/ecosystem.html", {
        'section': 'overview',
        'entanglements_count': entanglements.entanglement_count(user),
        'following_count': user.org_follows.count(),
        'posts_count': user.posts.count(),
        'questions_count': user.questions.count(),
        'answers_count': user.answers.values('question').distinct().count(),
        'saved_jobs_count': user.saved_jobs.count(),
        'saved_products_count': user.saved_products.count(),
    })


@member_required
def ecosystem_my_posts(request):
    posts, load_error = _load_feed(request, user=request.user)
    return render(request, "social/ecosystem.html", {
        'section': 'my_posts', 'posts': posts, 'load_error': load_error,
    })


@member_required
def ecosystem_following(request):
    return render(request, "social/ecosystem.html", {
        'section': 'following',
        'organizations': Organization.objects.filter(follows__user=request.user, is_active=True),
        'followed_org_ids': orgs.followed_org_ids(request.user),
    })


@member_required
def ecosystem_questions_asked(request):
    return render(request, "social/ecosystem.html", {
        'section': 'questions_asked',
        'questions': qna.questions(request.user, user=request.user),
    })


@member_required
def ecosystem_questions_answered(request):
    return render(request, "social/ecosystem.html", {
        'section': 'questions_answered',
        'questions': qna.questions(request.user, answered_by=request.user),
    })


# ============================================================================
# SEARCH
# ============================================================================

SEARCH_LIMIT = 10


def search(request):
    query = request.GET.get('q', '').strip()
    results = {'members': [], 'organizations': [], 'jobs': [], 'products': []}

    if query:
        results['members'] = User.objects.filter(is_active=True).filter(
            Q(full_name__icontains=query)
            | Q(username__icontains=query)
            | Q(role__icontains=query)
            | Q(affiliation__icontains=query)
        ).order_by('full_name', 'username')[:SEARCH_LIMIT]
        results['organizations'] = orgs.search_organizations(query)[:SEARCH_LIMIT]
        results['jobs'] = listings.search_jobs(query)[:SEARCH_LIMIT]
        results['products'] = listings.search_products(query)[:SEARCH_LIMIT]

    return render(request, "social/search.html", dict(
        results,
        query=query,
        followed_org_ids=orgs.followed_org_ids(request.user),
        saved_job_ids=listings.saved_job_ids(request.user),
        saved_product_ids=listings.saved_product_ids(request.user),
    ))


# ============================================================================
# CHANGE FEEDS
# ============================================================================

@member_required
@require_GET
def user_changes(request):
    try:
        since = changes.parse_since(request.GET.get('since'))
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse(changes.user_changes(request.user, since))


@require_GET
def org_changes(request, slug):
    org = orgs.get_active(slug)
    if org is None:
        return JsonResponse({"error": "Organization not found or no longer active."}, status=404)
    try:
        since = changes.parse_since(request.GET.get('since'))
    except Q5Error as exc:
        return _fail(exc)
    return JsonResponse(changes.org_changes(org, since))
