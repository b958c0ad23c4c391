"""Watermark removal task model.

A `WatermarkTask` row tracks one user-submitted image through the pipeline
(pending -> processing -> completed/failed). The row is the only shared
mutable state between workers: status and refund transitions go through the
conditional updates in `unmark.services`, never through `save()`.
"""

import uuid

from django.conf import settings
from django.db import models


class WatermarkTask(models.Model):
    """Watermark removal job tracking"""

    STATUS_PENDING = 'PENDING'
    STATUS_PROCESSING = 'PROCESSING'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_FAILED = 'FAILED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PROCESSING, 'Processing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]

    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='watermark_tasks'
    )
    original_url = models.URLField(
        max_length=1024,
        help_text="Source image URL, must be reachable by the vendor"
    )
    remote_task_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Task ID returned by the watermark removal API"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING
    )
    result_url = models.URLField(
        max_length=1024,
        null=True,
        blank=True,
        help_text="Processed image URL, set on completion"
    )
    error_msg = models.TextField(
        null=True,
        blank=True,
        help_text="Last error, updated on every failed attempt"
    )
    attempts_made = models.PositiveIntegerField(default=0)
    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set once when the task is refunded"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'watermark_tasks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'updated_at'], name='watermark_t_status_2f8c1e_idx'),
            models.Index(fields=['status', 'created_at'], name='watermark_t_status_9a41b7_idx'),
            models.Index(fields=['user', '-created_at'], name='watermark_t_user_id_5d03aa_idx'),
        ]

    def __str__(self):
        """Return a human-readable representation of the task."""
        return f"WatermarkTask {self.id} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in (self.STATUS_COMPLETED, self.STATUS_FAILED)

    @property
    def is_refunded(self):
        return self.refunded_at is not None
