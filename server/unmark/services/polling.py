"""Poll loop for remote watermark jobs.

The durable worker waits `min(base * 2**n, cap)` seconds (with jitter) before
poll `n`; the inline dispatcher uses a fixed interval and more polls.
"""

import logging
import random
import time
from typing import Callable, Optional

from unmark.const import POLL_TIMEOUT_MESSAGE
from unmark.utils.exceptions import PermanentVendorError, PollTimeoutError, TransientVendorError

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY = 2.0
DEFAULT_MAX_DELAY = 16.0
DEFAULT_JITTER = 0.2


def raw_backoff_delay(attempt: int, base: float = DEFAULT_BASE_DELAY, cap: float = DEFAULT_MAX_DELAY) -> float:
    return min(base * (2 ** attempt), cap)


def backoff_delay(
    attempt: int,
    base: float = DEFAULT_BASE_DELAY,
    cap: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
) -> float:
    """Exponential delay for poll `attempt` (0-indexed), +/- `jitter` of itself."""
    delay = raw_backoff_delay(attempt, base, cap)
    return delay + delay * jitter * (random.random() - 0.5) * 2


def fixed_delay(interval: float) -> Callable[[int], float]:
    return lambda attempt: interval


class RemoteJobPoller:
    """Drive `poll_remote_job` until the remote job reaches a terminal state"""

    def __init__(
        self,
        client,
        max_attempts: int,
        delay_fn: Optional[Callable[[int], float]] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ):
        self.client = client
        self.max_attempts = max_attempts
        self.delay_fn = delay_fn or backoff_delay
        self.on_progress = on_progress

    def poll(self, remote_task_id: str, label: str = "", heartbeat: Optional[Callable[[], None]] = None) -> str:
        """
        Poll until success and return the result file url.

        `heartbeat` is called once per iteration, after the delay.

        Raises:
            PermanentVendorError: the remote job failed (negative state)
            PollTimeoutError: no terminal state after `max_attempts` polls
        """
        label = label or remote_task_id

        for attempt in range(self.max_attempts):
            time.sleep(self.delay_fn(attempt))

            if heartbeat:
                heartbeat()

            if self.on_progress:
                self.on_progress(round(attempt / self.max_attempts * 90))

            try:
                status = self.client.poll_remote_job(remote_task_id)
            except TransientVendorError as exc:
                logger.warning(f"Poll #{attempt + 1} for task {label} failed transiently: {exc}")
                continue

            if status.is_success:
                if not status.file_url:
                    raise PermanentVendorError("处理完成但未返回结果文件", state=status.state)
                return status.file_url

            if status.is_failure:
                raise PermanentVendorError(status.failure_reason, state=status.state)

            logger.info(
                f"Task {label} poll #{attempt + 1} state={status.state} progress={status.progress}"
            )

        raise PollTimeoutError(POLL_TIMEOUT_MESSAGE)
