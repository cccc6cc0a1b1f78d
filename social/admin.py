from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import Group
from django.utils.html import format_html
from django.urls import reverse
from .models import (
    User, Connection, Organization, OrgMember, OrgFollow, Post, PostComment,
    Job, Product, Notification, DMThread, DMMessage, Question, Answer
)
from . import badges

# ==================== ADMIN CLASSES ====================

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'full_name', 'q5_badge_label', 'q5_badge_review_status', 'is_active', 'date_joined')
    list_filter = BaseUserAdmin.list_filter + ('q5_badge_review_status',)
    search_fields = ('username', 'email', 'full_name', 'affiliation')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Profile', {'fields': (
            'full_name', 'avatar', 'role', 'short_bio', 'highest_education', 'describes_you',
            'affiliation', 'current_org', 'country', 'city', 'timezone',
        )}),
        ('Q5 badge', {'fields': (
            'q5_badge_level', 'q5_badge_label', 'q5_badge_review_status', 'q5_badge_claimed_at',
        )}),
    )
    actions = ['activate_users', 'deactivate_users', 'verify_badges']

    def activate_users(self, request, queryset):
        queryset.update(is_active=True)
        self.message_user(request, f"{queryset.count()} users activated")
    activate_users.short_description = "Activate selected users"

    def deactivate_users(self, request, queryset):
        queryset.update(is_active=False)
        self.message_user(request, f"{queryset.count()} users deactivated")
    deactivate_users.short_description = "Deactivate selected users"

    def verify_badges(self, request, queryset):
        updated = badges.verify_pending(queryset)
        self.message_user(request, f"{updated} badges verified")
    verify_badges.short_description = "Verify pending Q5 badges"

@admin.register(Connection)
class ConnectionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'target_user', 'status', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('user__username', 'target_user__username')

class OrgMemberInline(admin.TabularInline):
    model = OrgMember
    extra = 0
    raw_id_fields = ('user',)

@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'kind', 'creator_link', 'is_active', 'follower_count')
    list_filter = ('kind', 'is_active')
    search_fields = ('name', 'slug', 'institution', 'industry')
    inlines = [OrgMemberInline]

    def creator_link(self, obj):
        if not obj.created_by_id:
            return "-"
        url = reverse("admin:social_user_change", args=[obj.created_by_id])
        return format_html('<a href="{}">{}</a>', url, obj.created_by.username)
    creator_link.short_description = 'Created by'

    def follower_count(self, obj):
        return obj.follows.count()
    follower_count.short_description = 'Followers'

@admin.register(OrgFollow)
class OrgFollowAdmin(admin.ModelAdmin):
    list_display = ('id', 'org', 'user', 'created_at')
    search_fields = ('org__name', 'user__username')

@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ('id', 'user_link', 'org', 'created_at', 'body_short')
    search_fields = ('body', 'user__username')

    def user_link(self, obj):
        url = reverse("admin:social_user_change", args=[obj.user.id])
        return format_html('<a href="{}">{}</a>', url, obj.user.username)
    user_link.short_description = 'User'
    user_link.admin_order_field = 'user__username'

    def body_short(self, obj):
        if obj.body:
            return obj.body[:80] + '...' if len(obj.body) > 80 else obj.body
        return "(image)"
    body_short.short_description = 'Body'

@admin.register(PostComment)
class PostCommentAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'post', 'created_at')
    search_fields = ('body', 'user__username', 'post__id')

@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('title', 'company_name', 'org', 'employment_type', 'remote_type', 'is_active', 'created_at')
    list_filter = ('is_active', 'employment_type', 'remote_type')
    search_fields = ('title', 'company_name', 'keywords')

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'company_name', 'org', 'category', 'price_type', 'in_stock')
    list_filter = ('category', 'price_type', 'in_stock')
    search_fields = ('name', 'company_name', 'keywords')

@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'actor', 'kind', 'created_at', 'is_read')
    list_filter = ('kind', 'is_read', 'created_at')
    search_fields = ('user__username', 'actor__username', 'message')

@admin.register(DMThread)
class DMThreadAdmin(admin.ModelAdmin):
    list_display = ('id', 'user1', 'user2', 'created_at', 'last_message_at')
    search_fields = ('user1__username', 'user2__username')

@admin.register(DMMessage)
class DMMessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'thread', 'sender', 'created_at', 'read_at')
    search_fields = ('body', 'sender__username')

@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'user', 'created_at')
    search_fields = ('title', 'body', 'tags')

@admin.register(Answer)
class AnswerAdmin(admin.ModelAdmin):
    list_display = ('id', 'question', 'user', 'created_at')
    search_fields = ('body', 'user__username')

# Unregister Django's default Group
admin.site.unregister(Group)

# Basic admin site configuration
admin.site.site_header = "Quantum5ocial Admin"
admin.site.site_title = "Quantum5ocial Admin Portal"
admin.site.index_title = "Welcome"
