"""
================================================================================
QUANTUM5OCIAL - URL CONFIGURATION
================================================================================

@file        urls.py
@description URL routing for the Quantum5ocial app
@version     1.0.0

URL STRUCTURE OVERVIEW
================================================================================
1. Core Pages & Authentication (/, auth, register, activate, logout)
2. Dashboard & Profiles (profile, edit, avatar, Q5 badge)
3. Community & Entanglements (directory, entangle, decline, respond)
4. Feed (posts, likes, comments)
5. Organizations (pages, follow, team management)
6. Jobs
7. Products
8. Notifications
9. Direct Messages
10. Q&A and Ecosystem
11. Search & Change Feeds (polling endpoints under /api/)
12. Password Reset & Change (Django auth views)
13. Development Media Serving (DEBUG mode only)

NAMING CONVENTIONS
================================================================================
- Resource actions: <resource>_<action> (e.g., 'delete_post', 'edit_job')
- Toggles: prefixed with 'toggle_' (e.g., 'toggle_like', 'toggle_org_follow')
- Polling endpoints live under /api/ and answer JSON

SECURITY CONSIDERATIONS
================================================================================
- Pages behind sign-in redirect to /auth?redirect=<path>
- CSRF protection on every POST
- Team and listing permissions are checked in the service layer

TESTING
================================================================================
    from django.urls import reverse
    reverse('org_detail', kwargs={'slug': 'qubit-labs'})   # '/orgs/qubit-labs'

================================================================================
"""

from django.urls import path
from django.conf import settings
from django.conf.urls.static import static
from django.contrib.auth import views as auth_views
from . import views


# ============================================================================
# URL PATTERNS DEFINITION
# ============================================================================

urlpatterns = [

    # ========================================================================
    # SECTION 1: CORE PAGES & AUTHENTICATION
    # ========================================================================

    path("", views.index, name="index"),  # Home feed
    path("auth", views.auth_view, name="auth"),  # Sign in / sign up / check-inbox
    path("register", views.register, name="register"),
    path("activate/<str:token>/", views.activate, name="activate"),  # Email verification link
    path("logout", views.logout_view, name="logout"),

    # ========================================================================
    # SECTION 2: DASHBOARD & PROFILES
    # ========================================================================

    path("dashboard", views.dashboard, name="dashboard"),
    path("profile", views.my_profile, name="my_profile"),
    path("profile/edit", views.edit_profile, name="edit_profile"),
    path("profile/avatar", views.upload_avatar, name="upload_avatar"),
    path("profile/badge", views.claim_badge, name="claim_badge"),
    path("u/<str:username>", views.profile, name="profile"),

    # ========================================================================
    # SECTION 3: COMMUNITY & ENTANGLEMENTS
    # ========================================================================

    path("community", views.community, name="community"),
    path("entangle/<int:user_id>", views.entangle, name="entangle"),
    path("entangle/<int:user_id>/decline", views.decline_entanglement, name="decline_entanglement"),
    path("entangle/<int:user_id>/remove", views.disentangle, name="disentangle"),
    path("connections/<int:connection_id>/respond", views.respond_request, name="respond_request"),
    path("dashboard/entangled-states", views.entangled_states, name="entangled_states"),

    # ========================================================================
    # SECTION 4: FEED
    # ========================================================================

    path("posts/new", views.new_post, name="new_post"),
    path("posts/<int:post_id>/delete", views.delete_post, name="delete_post"),
    path("posts/<int:post_id>/like", views.toggle_like, name="toggle_like"),
    path("posts/<int:post_id>/comments", views.post_comments, name="post_comments"),
    path("comments/<int:comment_id>/delete", views.delete_comment, name="delete_comment"),

    # ========================================================================
    # SECTION 5: ORGANIZATIONS
    # ========================================================================

    path("orgs", views.org_list, name="org_list"),
    path("orgs/create/company", views.create_company, name="create_company"),
    path("orgs/create/research-group", views.create_research_group, name="create_research_group"),
    path("dashboard/my-organizations", views.my_organizations, name="my_organizations"),
    path("orgs/<slug:slug>", views.org_detail, name="org_detail"),
    path("orgs/<slug:slug>/edit", views.edit_org, name="edit_org"),
    path("orgs/<slug:slug>/deactivate", views.deactivate_org, name="deactivate_org"),
    path("orgs/<slug:slug>/follow", views.toggle_org_follow, name="toggle_org_follow"),
    path("orgs/<slug:slug>/followers", views.org_followers, name="org_followers"),
    path("orgs/<slug:slug>/team/add", views.add_team_member, name="add_team_member"),
    path("orgs/<slug:slug>/team/search", views.team_search, name="team_search"),
    path("orgs/<slug:slug>/team/affiliation", views.set_affiliation, name="set_affiliation"),
    path("orgs/<slug:slug>/team/<int:user_id>/role", views.change_member_role, name="change_member_role"),
    path(
        "orgs/<slug:slug>/team/<int:user_id>/designation",
        views.update_member_designation,
        name="update_member_designation"
    ),
    path("orgs/<slug:slug>/team/<int:user_id>/remove", views.remove_team_member, name="remove_team_member"),

    # ========================================================================
    # SECTION 6: JOBS
    # ========================================================================

    path("jobs", views.jobs, name="jobs"),
    path("jobs/new", views.new_job, name="new_job"),
    path("jobs/<int:job_id>", views.job_detail, name="job_detail"),
    path("jobs/<int:job_id>/edit", views.edit_job, name="edit_job"),
    path("jobs/<int:job_id>/delete", views.delete_job, name="delete_job"),
    path("jobs/<int:job_id>/save", views.toggle_save_job, name="toggle_save_job"),
    path("dashboard/saved-jobs", views.saved_jobs, name="saved_jobs"),

    # ========================================================================
    # SECTION 7: PRODUCTS
    # ========================================================================

    path("products", views.products, name="products"),
    path("products/new", views.new_product, name="new_product"),
    path("products/<int:product_id>", views.product_detail, name="product_detail"),
    path("products/<int:product_id>/edit", views.edit_product, name="edit_product"),
    path("products/<int:product_id>/delete", views.delete_product, name="delete_product"),
    path("products/<int:product_id>/save", views.toggle_save_product, name="toggle_save_product"),
    path("dashboard/saved-products", views.saved_products, name="saved_products"),

    # ========================================================================
    # SECTION 8: NOTIFICATIONS
    # ========================================================================

    path("notifications", views.notifications_view, name="notifications"),
    path("notifications/read-all", views.mark_all_notifications_read, name="mark_all_notifications_read"),
    path("notifications/clear", views.clear_all_notifications, name="clear_all_notifications"),
    path("notifications/<int:notification_id>/read", views.mark_notification_read, name="mark_notification_read"),
    path("notifications/<int:notification_id>/delete", views.delete_notification, name="delete_notification"),

    # ========================================================================
    # SECTION 9: DIRECT MESSAGES
    # ========================================================================

    path("messages", views.messages_inbox, name="messages_inbox"),
    path("messages/with/<str:username>", views.start_thread, name="start_thread"),
    path("messages/<int:thread_id>", views.thread, name="thread"),

    # ========================================================================
    # SECTION 10: Q&A AND ECOSYSTEM
    # ========================================================================

    path("qna", views.qna_list, name="qna"),
    path("qna/<int:question_id>", views.question_detail, name="question_detail"),
    path("qna/<int:question_id>/vote", views.vote_question, name="vote_question"),
    path("answers/<int:answer_id>/vote", views.vote_answer, name="vote_answer"),

    path("ecosystem", views.ecosystem, name="ecosystem"),
    path("ecosystem/my-posts", views.ecosystem_my_posts, name="ecosystem_my_posts"),
    path("ecosystem/following", views.ecosystem_following, name="ecosystem_following"),
    path("ecosystem/questions-asked", views.ecosystem_questions_asked, name="ecosystem_questions_asked"),
    path("ecosystem/questions-answered", views.ecosystem_questions_answered, name="ecosystem_questions_answered"),

    # ========================================================================
    # SECTION 11: SEARCH & CHANGE FEEDS
    # ========================================================================

    path("search", views.search, name="search"),
    path("api/feed/", views.feed_api, name="feed_api"),
    path("api/changes/", views.user_changes, name="user_changes"),
    path("api/orgs/<slug:slug>/changes/", views.org_changes, name="org_changes"),

    # ========================================================================
    # SECTION 12: PASSWORD RESET & CHANGE
    # ========================================================================

    path(
        "password-reset/",
        auth_views.PasswordResetView.as_view(
            template_name="social/password_reset.html",
            email_template_name="social/emails/password_reset_email.txt",
            subject_template_name="social/emails/password_reset_subject.txt",
        ),
        name="password_reset"
    ),
    path(
        "password-reset/done/",
        auth_views.PasswordResetDoneView.as_view(
            template_name="social/password_reset_done.html"
        ),
        name="password_reset_done"
    ),
    path(
        "password-reset/confirm/<uidb64>/<token>/",
        auth_views.PasswordResetConfirmView.as_view(
            template_name="social/password_reset_confirm.html"
        ),
        name="password_reset_confirm"
    ),
    path(
        "password-reset/complete/",
        auth_views.PasswordResetCompleteView.as_view(
            template_name="social/password_reset_complete.html"
        ),
        name="password_reset_complete"
    ),

    # Change password while signed in
    path(
        "settings/security",
        views.member_required(auth_views.PasswordChangeView.as_view(
            template_name="social/password_change.html",
            form_class=views.SecurityPasswordForm,
        )),
        name="password_change"
    ),
    path(
        "settings/security/done",
        views.member_required(auth_views.PasswordChangeDoneView.as_view(
            template_name="social/password_change_done.html"
        )),
        name="password_change_done"
    ),
]


# ============================================================================
# SECTION 13: DEVELOPMENT MEDIA SERVING
# ============================================================================

if settings.DEBUG and not settings.USE_CLOUDINARY:
    urlpatterns += static(
        settings.MEDIA_URL,
        document_root=settings.MEDIA_ROOT
    )
