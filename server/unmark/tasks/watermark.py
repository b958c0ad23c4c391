from celery import shared_task
from celery.signals import worker_init
from django.conf import settings
import logging

from unmark.checks import validate_watermark_settings
from unmark.models import WatermarkTask
from unmark.services.polling import RemoteJobPoller, backoff_delay
from unmark.services.worker import WatermarkJob, WatermarkJobRunner
from unmark.utils import get_watermark_client
from unmark.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@worker_init.connect
def _validate_settings_on_worker_start(**kwargs):
    # Celery logs and drops ordinary exceptions raised by signal receivers.
    try:
        validate_watermark_settings()
    except ConfigurationError as exc:
        logger.critical(f"Refusing to start watermark worker: {exc}")
        raise SystemExit(str(exc)) from exc


def queue_retry_countdown(retries):
    """Exponential queue-level delay before the next delivery, in seconds."""
    return settings.WATERMARK_QUEUE_RETRY_DELAY * (2 ** retries)


def is_final_queue_attempt(attempt):
    """`attempt` is the persisted attempt number, so redeliveries cannot reset it."""
    return attempt >= settings.WATERMARK_QUEUE_ATTEMPTS


def _poll_delay(attempt):
    return backoff_delay(
        attempt,
        base=settings.WATERMARK_POLL_BASE_DELAY,
        cap=settings.WATERMARK_POLL_MAX_DELAY,
    )


def _is_settled(task_id):
    return WatermarkTask.objects.filter(id=task_id, status=WatermarkTask.STATUS_FAILED).exists()


@shared_task(
    bind=True,
    name="unmark.tasks.process_watermark_task",
    acks_late=True,  # redeliver if the worker dies mid-task
    reject_on_worker_lost=True,
)
def process_watermark_task(self, task_id, original_url, user_id):
    """
    Remove the watermark from one image

    Steps:
    1. Claim the task row (no-op if another worker owns it or it is final)
    2. Create the remote job, or reuse the persisted remote task id
    3. Poll with exponential backoff until a terminal state
    4. Mark completed, or on the last attempt refund and mark failed
    """
    max_attempts = settings.WATERMARK_QUEUE_ATTEMPTS
    retries = self.request.retries or 0

    def report_progress(progress):
        if self.request.id and not self.request.called_directly:
            self.update_state(state="PROGRESS", meta={"progress": progress})

    client = get_watermark_client()
    poller = RemoteJobPoller(
        client,
        max_attempts=settings.WATERMARK_MAX_POLL_ATTEMPTS,
        delay_fn=_poll_delay,
        on_progress=report_progress,
    )
    runner = WatermarkJobRunner(client, poller, is_final_queue_attempt)
    job = WatermarkJob(task_id=task_id, original_url=original_url, user_id=user_id)

    logger.info(f"Task {task_id} delivery {retries + 1}")
    try:
        result = runner.run(job)
    except Exception as exc:
        if _is_settled(task_id):
            raise
        # Past max_retries Celery re-raises `exc`; the row is left for the sweep.
        raise self.retry(
            exc=exc,
            countdown=queue_retry_countdown(retries),
            max_retries=max_attempts - 1,
        )

    return result.as_dict()
