"""Enqueue watermark jobs on the durable Celery queue.

Enqueueing is idempotent per task: the Celery task id is derived from the
watermark task id and a cache marker blocks a second enqueue of the same task.
"""

import logging
from typing import Iterable, List

from django.conf import settings
from django.core.cache import cache

from unmark.services.worker import WatermarkJob
from unmark.tasks.watermark import process_watermark_task

logger = logging.getLogger(__name__)


def _marker_key(task_id) -> str:
    return f"watermark:enqueued:{task_id}"


def queue_job_id(task_id) -> str:
    return f"watermark-{task_id}"


def enqueue_watermark_task(job: WatermarkJob, force: bool = False) -> bool:
    """
    Add one job to the queue.

    `force` re-sends a job whose earlier message is gone (a reclaimed task).
    It refreshes the marker and lets Celery pick a fresh task id.

    Returns:
        True if the job was sent, False if it was already enqueued.
    """
    marker_ttl = settings.WATERMARK_ENQUEUE_MARKER_TTL
    if force:
        cache.set(_marker_key(job.task_id), "1", marker_ttl)
    elif not cache.add(_marker_key(job.task_id), "1", marker_ttl):
        logger.info(f"Task {job.task_id} already enqueued, skipping")
        return False

    try:
        process_watermark_task.apply_async(
            kwargs=job.as_payload(),
            task_id=None if force else queue_job_id(job.task_id),
        )
    except Exception:
        cache.delete(_marker_key(job.task_id))
        raise

    logger.info(f"Task {job.task_id} added to watermark queue")
    return True


def enqueue_watermark_tasks(jobs: Iterable[WatermarkJob]) -> List[str]:
    """Enqueue several jobs, returning the ids that were actually sent."""
    sent = [str(job.task_id) for job in jobs if enqueue_watermark_task(job)]
    logger.info(f"Enqueued {len(sent)} watermark tasks")
    return sent
