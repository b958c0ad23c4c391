"""Atomic ownership transitions for watermark tasks.

Each function is a single conditional UPDATE and returns the number of rows it
touched. A zero count is a normal outcome: another worker got there first or
the task is already finalized.
"""

import logging

from django.db.models import F
from django.utils import timezone

from unmark.models import WatermarkTask

logger = logging.getLogger(__name__)


def claim_task(task_id, expected_attempts: int) -> int:
    """
    Take ownership of a task for one attempt.

    Matches PENDING and PROCESSING rows so a crashed or retried attempt can
    resume. `expected_attempts` is the counter value the caller read before
    claiming; only one of several simultaneous claimants can match it.
    """
    return WatermarkTask.objects.filter(
        id=task_id,
        status__in=WatermarkTask.ACTIVE_STATUSES,
        attempts_made=expected_attempts,
    ).update(
        status=WatermarkTask.STATUS_PROCESSING,
        attempts_made=F('attempts_made') + 1,
        updated_at=timezone.now(),
    )


def save_remote_task_id(task_id, remote_task_id: str) -> int:
    """Persist the vendor task id. An existing id is never overwritten."""
    updated = WatermarkTask.objects.filter(
        id=task_id,
        remote_task_id__isnull=True,
    ).update(
        remote_task_id=remote_task_id,
        updated_at=timezone.now(),
    )
    if not updated:
        logger.warning(f"Remote task id already set for task {task_id}, keeping existing value")
    return updated


def mark_completed(task_id, result_url: str) -> int:
    return WatermarkTask.objects.filter(
        id=task_id,
        status=WatermarkTask.STATUS_PROCESSING,
        refunded_at__isnull=True,
    ).update(
        status=WatermarkTask.STATUS_COMPLETED,
        result_url=result_url,
        error_msg=None,
        updated_at=timezone.now(),
    )


def record_attempt_error(task_id, message: str) -> int:
    """Store the last error of a non-final attempt. Status stays PROCESSING."""
    return WatermarkTask.objects.filter(
        id=task_id,
        status=WatermarkTask.STATUS_PROCESSING,
    ).update(
        error_msg=message,
        updated_at=timezone.now(),
    )


def touch_task(task_id) -> int:
    """Heartbeat: keep a live PROCESSING task from looking stuck."""
    return WatermarkTask.objects.filter(
        id=task_id,
        status=WatermarkTask.STATUS_PROCESSING,
    ).update(updated_at=timezone.now())
