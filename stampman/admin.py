"""Stampman admin.

Stamp counts are read-only here: card mutations go through StampLedger
(admin actions below) so the free item flag and the activity log stay
consistent.
"""

from django.contrib import admin, messages
from django.utils.html import format_html

from stampman.exceptions import StampmanError
from stampman.models import ActivityEntry, Customer
from stampman.services.ledger import StampLedger


# ===========================================
# Inline Classes (must be defined before CustomerAdmin)
# ===========================================


class RecentActivityInline(admin.TabularInline):
    model = ActivityEntry
    extra = 0
    fields = ["reason", "stamps_after", "created_by", "created_at"]
    readonly_fields = ["reason", "stamps_after", "created_by", "created_at"]
    ordering = ["-created_at", "-id"]
    verbose_name_plural = "Activity"

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# Customer Admin
# ===========================================


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "phone_masked",
        "stamps_progress",
        "free_item_badge",
        "created_at",
    ]
    list_filter = ["free_item_available"]
    search_fields = ["name", "phone_last4", "phone_full"]
    readonly_fields = [
        "phone_last4",
        "stamps",
        "free_item_available",
        "created_at",
        "updated_at",
    ]
    inlines = [RecentActivityInline]
    actions = ["add_stamp", "redeem_free_item"]

    fieldsets = [
        ("Identification", {"fields": ["name", "phone_full", "phone_last4"]}),
        ("Stamp card", {"fields": ["stamps", "free_item_available"]}),
        ("Timestamps", {"fields": ["created_at", "updated_at"], "classes": ["collapse"]}),
    ]

    def phone_masked(self, obj):
        return obj.phone_masked

    phone_masked.short_description = "Phone"

    def stamps_progress(self, obj):
        return format_html(
            "{} ({} free item(s), {}/{} toward next)",
            obj.stamps,
            obj.free_items_earned,
            obj.stamps_toward_next,
            obj.threshold,
        )

    stamps_progress.short_description = "Stamps"

    def free_item_badge(self, obj):
        if obj.free_item_available:
            return format_html('<span style="color: {};">{}</span>', "green", "FREE")
        return format_html('<span style="color: {};">{}</span>', "gray", "-")

    free_item_badge.short_description = "Free item"

    # Cards are created by LookupService.register and never deleted
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_readonly_fields(self, request, obj=None):
        readonly = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            readonly = ["name", "phone_full"] + readonly
        return readonly

    @admin.action(description="Add one stamp")
    def add_stamp(self, request, queryset):
        self._run_ledger(request, queryset, StampLedger.add_stamp, "Stamp added")

    @admin.action(description="Redeem free item")
    def redeem_free_item(self, request, queryset):
        self._run_ledger(request, queryset, StampLedger.redeem_free_item, "Free item redeemed")

    def _run_ledger(self, request, queryset, operation, verb):
        max_length = ActivityEntry._meta.get_field("created_by").max_length
        created_by = f"admin:{request.user.get_username()}"[:max_length]
        done = 0
        for customer in queryset:
            try:
                result = operation(customer.pk, created_by=created_by)
            except StampmanError as exc:
                self.message_user(request, f"{customer}: {exc.message}", messages.WARNING)
                continue
            done += 1
            for warning in result.warnings:
                self.message_user(request, f"{customer}: {warning}", messages.WARNING)
        if done:
            self.message_user(request, f"{verb} for {done} customer(s).", messages.SUCCESS)


# ===========================================
# ActivityEntry Admin
# ===========================================


@admin.register(ActivityEntry)
class ActivityEntryAdmin(admin.ModelAdmin):
    list_display = [
        "created_at",
        "customer_name",
        "reason",
        "stamps_after",
        "created_by",
    ]
    list_filter = ["reason"]
    search_fields = ["customer__name", "customer__phone_last4", "created_by"]
    readonly_fields = ["customer", "reason", "stamps_after", "created_by", "created_at"]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def customer_name(self, obj):
        return obj.customer.name

    customer_name.short_description = "Customer"
