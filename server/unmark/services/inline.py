"""In-process dispatcher for deployments without a Celery worker.

Concurrency is bounded by counting PROCESSING rows and only starting enough
PENDING tasks to top up to the cap. Each started task is claimed by the cycle
itself, so a later cycle never hands the same row to a second thread. Stuck
tasks are reclaimed before every cycle, and failed attempts stay PROCESSING
until that sweep returns them to PENDING.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from django.conf import settings
from django.db import close_old_connections

from unmark.models import WatermarkTask
from unmark.services.claims import claim_task
from unmark.services.polling import RemoteJobPoller, fixed_delay
from unmark.services.reclaim import reclaim_stuck_tasks
from unmark.services.worker import WatermarkJob, WatermarkJobRunner
from unmark.utils import get_watermark_client

logger = logging.getLogger(__name__)


class InlineDispatcher:
    """Top up in-flight watermark tasks to a fixed cap"""

    def __init__(self, client=None, concurrency: Optional[int] = None, executor=None):
        self.client = client or get_watermark_client()
        self.concurrency = concurrency or settings.WATERMARK_INLINE_CONCURRENCY
        self.executor = executor or ThreadPoolExecutor(
            max_workers=self.concurrency,
            thread_name_prefix="watermark",
        )
        self._cycle_lock = threading.Lock()

    def build_runner(self) -> WatermarkJobRunner:
        poller = RemoteJobPoller(
            self.client,
            max_attempts=settings.WATERMARK_INLINE_MAX_POLLS,
            delay_fn=fixed_delay(settings.WATERMARK_INLINE_POLL_INTERVAL),
        )
        max_attempts = settings.WATERMARK_INLINE_MAX_ATTEMPTS
        return WatermarkJobRunner(
            self.client,
            poller,
            is_final_attempt=lambda attempt: attempt >= max_attempts,
        )

    def run_cycle(self) -> List[str]:
        """
        Reclaim stuck tasks and dispatch pending ones up to the cap.

        Returns the ids of the tasks started in this cycle. A cycle that finds
        another cycle running returns immediately.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Dispatch cycle already running, skipping")
            return []

        try:
            reclaim_stuck_tasks()

            processing = WatermarkTask.objects.filter(
                status=WatermarkTask.STATUS_PROCESSING,
            ).count()
            slots = self.concurrency - processing
            if slots <= 0:
                logger.info(f"{processing} tasks in flight, no free slots")
                return []

            pending = list(
                WatermarkTask.objects.filter(status=WatermarkTask.STATUS_PENDING)
                .order_by('created_at')[:slots]
            )
            started = []
            for task in pending:
                # Claimed under the cycle lock so the next cycle sees it as PROCESSING.
                if not claim_task(task.id, task.attempts_made):
                    continue
                attempt = task.attempts_made + 1
                self.executor.submit(self._run_job, WatermarkJob.from_task(task), attempt)
                started.append(str(task.id))

            if started:
                logger.info(f"Dispatched {len(started)} watermark tasks ({processing} already running)")
            return started
        finally:
            self._cycle_lock.release()

    def trigger(self) -> threading.Thread:
        """Run one cycle in the background and return immediately."""
        thread = threading.Thread(target=self._run_cycle_safely, name="watermark-dispatch", daemon=True)
        thread.start()
        return thread

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    def _run_cycle_safely(self):
        try:
            self.run_cycle()
        except Exception:
            logger.exception("Watermark dispatch cycle failed")
        finally:
            close_old_connections()

    def _run_job(self, job: WatermarkJob, attempt: int):
        try:
            return self.build_runner().run(job, claimed_attempt=attempt)
        except Exception as exc:
            # Already persisted on the task by the runner; the sweep retries it.
            logger.info(f"Inline attempt for task {job.task_id} ended with error: {exc}")
            return None
        finally:
            close_old_connections()
