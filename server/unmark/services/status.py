from datetime import timedelta

from django.conf import settings
from django.db.models import Min
from django.utils import timezone

from unmark.models import WatermarkTask


def queue_status_for_user(user) -> dict:
    """Queue-wide counts plus how many pending tasks are ahead of the user's oldest one."""
    pending_count = WatermarkTask.objects.filter(status=WatermarkTask.STATUS_PENDING).count()
    processing_count = WatermarkTask.objects.filter(status=WatermarkTask.STATUS_PROCESSING).count()

    earliest = (
        WatermarkTask.objects.filter(user=user, status__in=WatermarkTask.ACTIVE_STATUSES)
        .order_by('created_at')
        .only('id', 'status', 'created_at')
        .first()
    )

    queue_position = 0
    if earliest is not None and earliest.status == WatermarkTask.STATUS_PENDING:
        queue_position = WatermarkTask.objects.filter(
            status=WatermarkTask.STATUS_PENDING,
            created_at__lt=earliest.created_at,
        ).count()

    return {
        "pending_count": pending_count,
        "processing_count": processing_count,
        "queue_position": queue_position,
        "total_waiting": pending_count + processing_count,
    }


def pipeline_backlog(now=None) -> dict:
    """
    Pipeline-wide backlog for monitoring.

    `stalled_count` counts PROCESSING tasks whose heartbeat is older than the
    stuck window, i.e. what the next sweep would reclaim.
    """
    now = now or timezone.now()
    cutoff = now - timedelta(minutes=settings.WATERMARK_STUCK_TIMEOUT_MINUTES)

    pending = WatermarkTask.objects.filter(status=WatermarkTask.STATUS_PENDING)
    processing = WatermarkTask.objects.filter(status=WatermarkTask.STATUS_PROCESSING)
    oldest_pending = pending.aggregate(oldest=Min('created_at'))['oldest']

    return {
        "pending_count": pending.count(),
        "processing_count": processing.count(),
        "stalled_count": processing.filter(updated_at__lt=cutoff).count(),
        "oldest_pending_seconds": int((now - oldest_pending).total_seconds()) if oldest_pending else 0,
    }
