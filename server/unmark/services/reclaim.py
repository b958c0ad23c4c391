import logging
from datetime import timedelta
from typing import List

from django.conf import settings
from django.utils import timezone

from unmark.const import STUCK_TASK_MESSAGE
from unmark.models import WatermarkTask

logger = logging.getLogger(__name__)


def reclaim_stuck_task_ids(now=None, timeout_minutes=None) -> List[str]:
    """
    Return PROCESSING tasks whose worker went silent back to PENDING.

    A task is stuck when its `updated_at` is older than the staleness window
    (5 minutes by default). Each row is reset with the staleness condition
    re-applied, so a task that heartbeats in between is left alone.

    Returns:
        The ids of the tasks that were reset.
    """
    now = now or timezone.now()
    if timeout_minutes is None:
        timeout_minutes = settings.WATERMARK_STUCK_TIMEOUT_MINUTES
    cutoff = now - timedelta(minutes=timeout_minutes)

    stale = WatermarkTask.objects.filter(
        status=WatermarkTask.STATUS_PROCESSING,
        updated_at__lt=cutoff,
    )
    reclaimed = []
    for task_id in stale.values_list('id', flat=True):
        updated = stale.filter(id=task_id).update(
            status=WatermarkTask.STATUS_PENDING,
            error_msg=STUCK_TASK_MESSAGE,
            updated_at=now,
        )
        if updated:
            reclaimed.append(str(task_id))

    if reclaimed:
        logger.warning(f"Reclaimed {len(reclaimed)} stuck watermark tasks")
    return reclaimed


def reclaim_stuck_tasks(now=None, timeout_minutes=None) -> int:
    return len(reclaim_stuck_task_ids(now=now, timeout_minutes=timeout_minutes))
