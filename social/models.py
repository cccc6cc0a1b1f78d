"""
================================================================================
QUANTUM5OCIAL - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models defining the complete database schema
@version     1.0.0

MODULE PURPOSE
================================================================================
This module defines all database models for the Quantum5ocial platform:
- User model (extended from AbstractUser) carrying the public profile
- Entanglements (connection requests between members)
- Organizations (companies and research groups), their team and followers
- Feed content (posts, likes, comments)
- Marketplace listings (jobs, products) and the saved lists
- Notifications
- Direct messages
- Questions & answers

DATABASE STRUCTURE
================================================================================
1. User & Profile
   - User (AbstractUser extension, profile fields + Q5 badge)

2. Entanglements
   - Connection (pending / accepted / declined request between two users)

3. Organizations
   - Organization (company or research group)
   - OrgMember (team membership with role)
   - OrgFollow (follower relation)

4. Feed
   - Post, PostLike, PostComment

5. Listings
   - Job, SavedJob
   - Product, SavedProduct

6. Notifications
   - Notification

7. Direct messages
   - DMThread, DMMessage

8. Q&A
   - Question, Answer, QuestionVote, AnswerVote

MODEL RELATIONSHIPS
================================================================================
User (1) ──────> (N) Post
User (1) ──────> (N) Notification
User (N) <─────> (N) User (Connection)
User (N) <─────> (N) Organization (OrgMember, OrgFollow)

Organization (1) ──> (N) Post / Job / Product
Post (1) ──────> (N) PostLike / PostComment
DMThread (1) ──> (N) DMMessage
Question (1) ──> (N) Answer

INVARIANTS
================================================================================
- One Connection row per unordered pair of users and no self-connections
  (database constraints on Least/Greatest of the pair)
- One OrgMember / OrgFollow / SavedJob / SavedProduct / vote row per pair
- DMThread stores the pair ordered by primary key (user1.id < user2.id)

================================================================================
"""

import pytz
from cloudinary.models import CloudinaryField
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models.functions import Greatest, Least
from django.utils import timezone as dj_timezone

# ============================================================================
# CONSTANTS & CHOICES
# ============================================================================

TIMEZONE_CHOICES = [(tz, tz) for tz in pytz.all_timezones]

EDUCATION_CHOICES = [
    ('Bachelor', 'Bachelor'),
    ('Master', 'Master'),
    ('PhD', 'PhD'),
    ('Postdoc / Other-not-applicable', 'Postdoc / Other-not-applicable'),
]

FALLBACK_NAME = "Quantum member"


# ============================================================================
# SECTION 1: USER & PROFILE
# ============================================================================

class User(AbstractUser):
    """
    Member account and public profile.

    Extends Django's AbstractUser with the profile shown on profile pages,
    community cards and feed headers, plus the self-assessed Q5 badge.

    Attributes:
        full_name (CharField): Display name
        avatar (ImageField): Profile picture
        role (CharField): Free-text role, e.g. "PhD student"
        short_bio (TextField): Short biography
        highest_education (CharField): Highest degree
        describes_you (CharField): How the member describes their track
        affiliation (CharField): University, lab or company
        current_org (CharField): Current organization (free text)
        country, city (CharField): Location
        timezone (CharField): Preferred display timezone
        activation_token (CharField): Email verification token
        q5_badge_* : Result of the last badge claim

    Properties:
        display_name: full_name, then username, then "Quantum member"
        initials: up to two initials, "Q5" when nothing is known
        location: "city, country" with blanks skipped
        subtitle: "role · affiliation · location" with blanks skipped
    """

    full_name = models.CharField(max_length=150, blank=True, help_text="Display name")
    avatar = models.ImageField(upload_to='avatars/', null=True, blank=True, help_text="Profile picture")
    role = models.CharField(max_length=120, blank=True, help_text="Role, e.g. 'PhD student'")
    short_bio = models.TextField(max_length=500, blank=True, help_text="Short biography")
    highest_education = models.CharField(
        max_length=60,
        choices=EDUCATION_CHOICES,
        blank=True,
        help_text="Highest completed education"
    )
    describes_you = models.CharField(max_length=120, blank=True, help_text="Which track describes you best")
    affiliation = models.CharField(max_length=200, blank=True, help_text="University, lab or company")
    current_org = models.CharField(max_length=200, blank=True, help_text="Current organization")
    country = models.CharField(max_length=100, blank=True)
    city = models.CharField(max_length=100, blank=True)

    timezone = models.CharField(
        max_length=100,
        choices=TIMEZONE_CHOICES,
        default='UTC',
        help_text="Preferred timezone for display"
    )

    activation_token = models.CharField(
        max_length=32,
        blank=True,
        null=True,
        help_text="Token for email verification"
    )

    # --- Q5 badge ---
    q5_badge_level = models.PositiveSmallIntegerField(null=True, blank=True)
    q5_badge_label = models.CharField(max_length=40, blank=True)
    q5_badge_review_status = models.CharField(
        max_length=10,
        choices=[('auto', 'Auto'), ('pending', 'Pending'), ('verified', 'Verified')],
        blank=True,
    )
    q5_badge_claimed_at = models.DateTimeField(null=True, blank=True)

    @property
    def display_name(self):
        return (self.full_name or '').strip() or self.username or FALLBACK_NAME

    @property
    def initials(self):
        words = [w for w in (self.full_name or '').split(' ') if w]
        return ''.join(w[0].upper() for w in words[:2]) or "Q5"

    @property
    def location(self):
        return ", ".join(part for part in (self.city, self.country) if part)

    @property
    def subtitle(self):
        return " · ".join(part for part in (self.role, self.affiliation, self.location) if part)

    @property
    def has_badge(self):
        return self.q5_badge_level is not None


# ============================================================================
# SECTION 2: ENTANGLEMENTS
# ============================================================================

class Connection(models.Model):
    """
    Entanglement request between two members.

    The row is directional while pending: ``user`` sent the request and
    ``target_user`` may accept or decline it. Accepted rows are read as a
    mutual entanglement. Transitions live in social.entanglements.

    Meta:
        constraints: one row per unordered pair, never a self-connection
        ordering: newest first
    """

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_DECLINED = 'declined'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_DECLINED, 'Declined'),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_connections',
        help_text="Member who sent the request"
    )
    target_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='received_connections',
        help_text="Member who received the request"
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(default=dj_timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                Least('user', 'target_user'),
                Greatest('user', 'target_user'),
                name='unique_connection_pair',
            ),
            models.CheckConstraint(
                condition=~models.Q(user=models.F('target_user')),
                name='no_self_connection',
            ),
        ]

    def __str__(self):
        return f"{self.user} -> {self.target_user} ({self.status})"

    def other(self, user):
        """Return the participant that is not ``user``."""
        return self.target_user if self.user_id == user.pk else self.user


# ============================================================================
# SECTION 3: ORGANIZATIONS
# ============================================================================

class Organization(models.Model):
    """
    Company or research-group page.

    Companies describe themselves with industry / company_type, research
    groups with institution / department. The slug is the public URL.

    Properties:
        kind_label: "Company" or "Research group"
        meta_line: short descriptor line shown under the name
        first_letter: initial for the logo placeholder
    """

    KIND_COMPANY = 'company'
    KIND_RESEARCH_GROUP = 'research_group'
    KIND_CHOICES = [
        (KIND_COMPANY, 'Company'),
        (KIND_RESEARCH_GROUP, 'Research group'),
    ]

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_organizations',
        help_text="Member who created the page (always the owner)"
    )
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=120, unique=True, help_text="Public URL segment")
    tagline = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    website = models.URLField(max_length=300, blank=True)
    logo = models.ImageField(upload_to='org_logos/', null=True, blank=True)
    country = models.CharField(max_length=100, blank=True)
    city = models.CharField(max_length=100, blank=True)

    # --- Company fields ---
    industry = models.CharField(max_length=120, blank=True)
    company_type = models.CharField(max_length=120, blank=True)

    # --- Research group fields ---
    group_type = models.CharField(max_length=120, blank=True)
    institution = models.CharField(max_length=200, blank=True)
    department = models.CharField(max_length=200, blank=True)

    focus_areas = models.CharField(max_length=300, blank=True)
    size_label = models.CharField(max_length=60, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_company(self):
        return self.kind == self.KIND_COMPANY

    @property
    def kind_label(self):
        return "Company" if self.is_company else "Research group"

    @property
    def meta_line(self):
        if self.is_company:
            bits = [self.industry, self.company_type]
        else:
            bits = [self.institution, self.department]
        bits.append(self.size_label)

        if self.city and self.country:
            bits.append(f"{self.city}, {self.country}")
        elif self.country:
            bits.append(self.country)

        return " · ".join(bit for bit in bits if bit)

    @property
    def first_letter(self):
        return (self.name or "Q")[0].upper()


class OrgMember(models.Model):
    """
    Team membership of a user in an organization.

    Roles rank owner > co_owner > admin > member. ``is_affiliated`` marks
    members who officially belong to the organization (as opposed to
    collaborators); ``designation`` is a free-text title.
    """

    ROLE_OWNER = 'owner'
    ROLE_CO_OWNER = 'co_owner'
    ROLE_ADMIN = 'admin'
    ROLE_MEMBER = 'member'
    ROLE_CHOICES = [
        (ROLE_OWNER, 'Owner'),
        (ROLE_CO_OWNER, 'Co-owner'),
        (ROLE_ADMIN, 'Admin'),
        (ROLE_MEMBER, 'Member'),
    ]
    ROLE_ORDER = {ROLE_OWNER: 0, ROLE_CO_OWNER: 1, ROLE_ADMIN: 2, ROLE_MEMBER: 3}

    org = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='org_memberships')
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    is_affiliated = models.BooleanField(default=True)
    designation = models.CharField(max_length=120, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('org', 'user')

    def __str__(self):
        return f"{self.user} in {self.org} ({self.role})"


class OrgFollow(models.Model):
    """Member following an organization."""

    org = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='follows')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='org_follows')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('org', 'user')


# ============================================================================
# SECTION 4: FEED
# ============================================================================

class Post(models.Model):
    """
    Feed post written by a member, optionally on behalf of an organization.

    Meta:
        ordering: Newest first
    """

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='posts')
    org = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='posts',
        help_text="Organization the post is published under"
    )
    body = models.TextField(blank=True)
    image = CloudinaryField(
        'image',
        folder='post_media',
        blank=True,
        null=True,
        help_text="Optional image attachment"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user} - {self.body[:50]}"


class PostLike(models.Model):
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='likes')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='post_likes')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('post', 'user')


class PostComment(models.Model):
    """Comment on a post. Listed oldest first under the post."""

    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='post_comments')
    body = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']


# ============================================================================
# SECTION 5: LISTINGS (Jobs & Products)
# ============================================================================

class Job(models.Model):
    """
    Job opening published under an organization.

    Attributes:
        owner (ForeignKey): Member who posted and may edit the job
        org (ForeignKey): Publishing organization
        employment_type (CharField): Full-time, Internship, PhD, ...
        remote_type (CharField): On-site, Hybrid, Remote
        salary_display (CharField): Free-text salary line
        apply_url (URLField): External application link
    """

    EMPLOYMENT_TYPES = ['Full-time', 'Part-time', 'Internship', 'PhD', 'Postdoc', 'Contract', 'Other']
    REMOTE_TYPES = ['On-site', 'Hybrid', 'Remote']

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='jobs')
    org = models.ForeignKey(
        Organization,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='jobs'
    )
    title = models.CharField(max_length=200)
    company_name = models.CharField(max_length=200)
    location = models.CharField(max_length=200, blank=True)
    employment_type = models.CharField(max_length=40, blank=True)
    remote_type = models.CharField(max_length=40, blank=True)
    short_description = models.CharField(max_length=300, blank=True)
    description = models.TextField(blank=True)
    keywords = models.CharField(max_length=300, blank=True)
    salary_display = models.CharField(max_length=120, blank=True)
    apply_url = models.URLField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} @ {self.company_name}"


class SavedJob(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='saved_jobs')
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='saves')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('user', 'job')
        ordering = ['-created_at']


class Product(models.Model):
    """
    Marketplace product (hardware, software, services).

    ``price_value`` is only meaningful for ``price_type == 'fixed'``;
    ``stock_quantity`` only when ``in_stock`` is set.
    """

    PRICE_FIXED = 'fixed'
    PRICE_CONTACT = 'contact'
    PRICE_CHOICES = [
        (PRICE_FIXED, 'Fixed price'),
        (PRICE_CONTACT, 'Contact for price'),
    ]
    CATEGORIES = ['Hardware', 'Software', 'Cryogenics', 'Photonics', 'Electronics', 'Services', 'Other']

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='products')
    org = models.ForeignKey(
        Organization,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products'
    )
    name = models.CharField(max_length=200)
    company_name = models.CharField(max_length=200, blank=True)
    category = models.CharField(max_length=60, blank=True)
    short_description = models.CharField(max_length=300, blank=True)
    specifications = models.TextField(blank=True)
    product_url = models.URLField(max_length=500, blank=True)
    keywords = models.CharField(max_length=300, blank=True)
    price_type = models.CharField(max_length=10, choices=PRICE_CHOICES, default=PRICE_CONTACT)
    price_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    in_stock = models.BooleanField(default=False)
    stock_quantity = models.PositiveIntegerField(null=True, blank=True)
    image1 = models.ImageField(upload_to='product_images/', null=True, blank=True)
    image2 = models.ImageField(upload_to='product_images/', null=True, blank=True)
    image3 = models.ImageField(upload_to='product_images/', null=True, blank=True)
    datasheet = models.FileField(upload_to='product_datasheets/', null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    @property
    def images(self):
        return [img for img in (self.image1, self.image2, self.image3) if img]


class SavedProduct(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='saved_products')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='saves')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('user', 'product')
        ordering = ['-created_at']


# ============================================================================
# SECTION 6: NOTIFICATIONS
# ============================================================================

class Notification(models.Model):
    """
    Activity notification delivered to ``user``.

    Example:
        Notification.objects.create(
            user=post.user,
            actor=liker,
            kind=Notification.KIND_POST_LIKE,
            message="liked your post",
            post=post,
        )
    """

    KIND_ENTANGLEMENT_REQUEST = 'entanglement_request'
    KIND_ENTANGLEMENT_ACCEPTED = 'entanglement_accepted'
    KIND_POST_LIKE = 'post_like'
    KIND_POST_COMMENT = 'post_comment'
    KIND_ORG_FOLLOW = 'org_follow'
    KIND_ORG_MEMBER_ADDED = 'org_member_added'
    KIND_MESSAGE = 'message'
    KIND_CHOICES = [
        (KIND_ENTANGLEMENT_REQUEST, 'Entanglement request'),
        (KIND_ENTANGLEMENT_ACCEPTED, 'Entanglement accepted'),
        (KIND_POST_LIKE, 'Post like'),
        (KIND_POST_COMMENT, 'Post comment'),
        (KIND_ORG_FOLLOW, 'Organization follow'),
        (KIND_ORG_MEMBER_ADDED, 'Added to organization'),
        (KIND_MESSAGE, 'Message'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    actor = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="Member who performed the action"
    )
    kind = models.CharField(max_length=30, choices=KIND_CHOICES)
    message = models.CharField(max_length=255)
    post = models.ForeignKey(Post, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    connection = models.ForeignKey(Connection, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    org = models.ForeignKey(Organization, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user}: {self.message}"


# ============================================================================
# SECTION 7: DIRECT MESSAGES
# ============================================================================

class DMThread(models.Model):
    """Two-person conversation. ``user1.id < user2.id`` always holds."""

    user1 = models.ForeignKey(User, on_delete=models.CASCADE, related_name='+')
    user2 = models.ForeignKey(User, on_delete=models.CASCADE, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    last_message_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = ('user1', 'user2')

    def __str__(self):
        return f"DM #{self.pk}"

    def has_participant(self, user):
        return user.pk in (self.user1_id, self.user2_id)

    def other(self, user):
        return self.user2 if self.user1_id == user.pk else self.user1


class DMMessage(models.Model):
    thread = models.ForeignKey(DMThread, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name='dm_messages')
    body = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['created_at']


# ============================================================================
# SECTION 8: QUESTIONS & ANSWERS
# ============================================================================

class Question(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='questions')
    title = models.CharField(max_length=250)
    body = models.TextField(blank=True)
    tags = models.CharField(max_length=250, blank=True, help_text="Comma-separated tags")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    @property
    def tag_list(self):
        return [t.strip() for t in self.tags.split(',') if t.strip()]


class Answer(models.Model):
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='answers')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='answers')
    body = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']


class QuestionVote(models.Model):
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='votes')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='+')

    class Meta:
        unique_together = ('question', 'user')


class AnswerVote(models.Model):
    answer = models.ForeignKey(Answer, on_delete=models.CASCADE, related_name='votes')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='+')

    class Meta:
        unique_together = ('answer', 'user')
