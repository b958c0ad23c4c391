"""Per-job execution: claim, create or resume the remote job, poll, finalize.

The runner knows nothing about the queue that delivered the job. The queue
supplies `is_final_attempt`, which decides whether a failure is settled with a
refund or handed back for another try.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from unmark.const import UNKNOWN_ERROR_MESSAGE
from unmark.models import WatermarkTask
from unmark.services.claims import (
    claim_task,
    mark_completed,
    record_attempt_error,
    save_remote_task_id,
    touch_task,
)
from unmark.services.settlement import refund_failed_task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatermarkJob:
    """Queue payload for one watermark task"""

    task_id: str
    original_url: str
    user_id: str

    def as_payload(self) -> dict:
        return {
            "task_id": str(self.task_id),
            "original_url": self.original_url,
            "user_id": str(self.user_id),
        }

    @classmethod
    def from_task(cls, task: WatermarkTask) -> "WatermarkJob":
        return cls(task_id=str(task.id), original_url=task.original_url, user_id=str(task.user_id))


@dataclass(frozen=True)
class JobResult:
    success: bool
    result_url: Optional[str] = None
    skipped: bool = False

    def as_dict(self) -> dict:
        return {"success": self.success, "result_url": self.result_url, "skipped": self.skipped}


class WatermarkJobRunner:
    """Execute one delivery of a watermark job"""

    def __init__(self, client, poller, is_final_attempt: Callable[[int], bool]):
        self.client = client
        self.poller = poller
        self.is_final_attempt = is_final_attempt

    def run(self, job: WatermarkJob, claimed_attempt: Optional[int] = None) -> JobResult:
        """
        Run one attempt of `job`.

        A dispatcher that already claimed the row passes the attempt number it
        claimed as `claimed_attempt`; otherwise the runner claims it here.
        """
        task_id = job.task_id

        if claimed_attempt is None:
            attempt = self.claim(task_id)
            if attempt is None:
                return JobResult(success=True, skipped=True)
        else:
            attempt = claimed_attempt

        logger.info(f"Processing task {task_id}, attempt {attempt}")

        try:
            remote_task_id = self._ensure_remote_job(job)
            result_url = self.poller.poll(
                remote_task_id,
                label=str(task_id),
                heartbeat=lambda: touch_task(task_id),
            )
        except Exception as exc:
            self._handle_failure(job, attempt, exc)
            raise

        if not mark_completed(task_id, result_url):
            logger.warning(f"Task {task_id} finished remotely but was finalized elsewhere")
            return JobResult(success=True, skipped=True)

        logger.info(f"Task {task_id} completed")
        return JobResult(success=True, result_url=result_url)

    def claim(self, task_id) -> Optional[int]:
        """Claim the next attempt of `task_id`, returning its number or None."""
        observed = (
            WatermarkTask.objects.filter(id=task_id)
            .values_list('attempts_made', flat=True)
            .first()
        )
        if observed is None:
            logger.warning(f"Watermark task {task_id} not found, skipping")
            return None

        if not claim_task(task_id, observed):
            logger.info(f"Task {task_id} already claimed or finalized, skipping")
            return None

        return observed + 1

    def _ensure_remote_job(self, job: WatermarkJob) -> str:
        remote_task_id = (
            WatermarkTask.objects.filter(id=job.task_id)
            .values_list('remote_task_id', flat=True)
            .first()
        )
        if remote_task_id:
            logger.info(f"Reusing remote task {remote_task_id} for task {job.task_id}")
            return remote_task_id

        logger.info(f"Creating remote task for task {job.task_id}")
        remote_task_id = self.client.create_remote_job(job.original_url)

        # Persist before polling so a crash from here on resumes this remote job.
        save_remote_task_id(job.task_id, remote_task_id)
        logger.info(f"Saved remote task id {remote_task_id} for task {job.task_id}")
        return remote_task_id

    def _handle_failure(self, job: WatermarkJob, attempt: int, exc: Exception) -> None:
        message = str(exc) or UNKNOWN_ERROR_MESSAGE
        logger.error(f"Task {job.task_id} failed on attempt {attempt}: {message}")

        if self.is_final_attempt(attempt):
            logger.info(f"Task {job.task_id} failed permanently, settling refund")
            refund_failed_task(job.task_id, job.user_id, message)
        else:
            record_attempt_error(job.task_id, message)
