from celery import shared_task
import logging

from unmark.services.reclaim import reclaim_stuck_task_ids

logger = logging.getLogger(__name__)


@shared_task(name="unmark.tasks.reclaim_stuck_watermark_tasks")
def reclaim_stuck_watermark_tasks():
    """
    Periodic sweep returning stuck PROCESSING tasks to PENDING

    Nothing is enqueued here. A stale row still has its Celery message (a
    pending retry, or a redelivery after `reject_on_worker_lost`), and that
    message claims PENDING rows like any other. Rows whose message was lost
    are re-sent from the admin.
    """
    reclaimed = reclaim_stuck_task_ids()
    logger.info(f"Stuck task sweep reclaimed {len(reclaimed)} tasks")
    return len(reclaimed)
