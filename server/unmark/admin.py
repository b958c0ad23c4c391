from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from unmark.models import CreditRecord, User, WatermarkTask
from unmark.services.queue import enqueue_watermark_task
from unmark.services.settlement import refund_failed_task
from unmark.services.worker import WatermarkJob


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin for custom User model."""

    list_display = [
        "username",
        "email",
        "credits",
        "bonus_credits",
        "created_at",
    ]
    list_filter = ["is_staff", "created_at"]
    search_fields = ["username", "email", "first_name", "last_name"]
    readonly_fields = ["created_at", "updated_at"]

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Credits", {"fields": ("credits", "bonus_credits")}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    ordering = ["-created_at"]


@admin.register(WatermarkTask)
class WatermarkTaskAdmin(admin.ModelAdmin):
    """Admin for WatermarkTask model. Status fields are read-only: they only change through the pipeline."""

    list_display = ["id", "user", "status", "attempts_made", "refunded_at", "created_at", "updated_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "user__email", "remote_task_id"]
    readonly_fields = [
        "id",
        "status",
        "remote_task_id",
        "result_url",
        "error_msg",
        "attempts_made",
        "refunded_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"

    fieldsets = (
        (None, {"fields": ("id", "user", "status", "attempts_made")}),
        ("Images", {"fields": ("original_url", "result_url")}),
        ("Remote", {"fields": ("remote_task_id", "error_msg")}),
        ("Settlement", {"fields": ("refunded_at",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    actions = ["enqueue_pending", "resend_pending", "fail_and_refund"]

    @admin.action(description="Enqueue selected pending tasks")
    def enqueue_pending(self, request, queryset):
        """Send pending tasks to the durable queue (already-enqueued tasks are skipped)."""
        count = 0
        for task in queryset.filter(status=WatermarkTask.STATUS_PENDING):
            if enqueue_watermark_task(WatermarkJob.from_task(task)):
                count += 1
        self.message_user(request, f"{count} tasks enqueued")

    @admin.action(description="Re-send selected pending tasks whose queue message was lost")
    def resend_pending(self, request, queryset):
        count = 0
        for task in queryset.filter(status=WatermarkTask.STATUS_PENDING):
            enqueue_watermark_task(WatermarkJob.from_task(task), force=True)
            count += 1
        self.message_user(request, f"{count} tasks re-sent")

    @admin.action(description="Mark selected tasks failed and refund")
    def fail_and_refund(self, request, queryset):
        """Settle unfinished tasks through the idempotent refund path."""
        count = 0
        for task in queryset.exclude(status=WatermarkTask.STATUS_COMPLETED):
            if refund_failed_task(task.id, task.user_id, "Cancelled by administrator"):
                count += 1
        self.message_user(request, f"{count} tasks refunded")


@admin.register(CreditRecord)
class CreditRecordAdmin(admin.ModelAdmin):
    """Admin for CreditRecord model."""

    list_display = ["id", "user", "amount", "type", "description", "created_at"]
    list_filter = ["type", "created_at"]
    search_fields = ["user__email", "description"]
    readonly_fields = ["user", "amount", "type", "description", "watermark_task", "created_at"]
    date_hierarchy = "created_at"

    fieldsets = (
        (None, {"fields": ("user", "amount", "type", "description")}),
        ("Task", {"fields": ("watermark_task",)}),
        ("Timestamp", {"fields": ("created_at",)}),
    )
