"""Watermark pipeline services.

Every write to `WatermarkTask.status` or `refunded_at` goes through the
conditional updates defined in `claims` and `settlement`.
"""

from .claims import claim_task, mark_completed, record_attempt_error, save_remote_task_id, touch_task
from .polling import RemoteJobPoller, backoff_delay, fixed_delay, raw_backoff_delay
from .reclaim import reclaim_stuck_task_ids, reclaim_stuck_tasks
from .settlement import refund_failed_task
from .worker import JobResult, WatermarkJob, WatermarkJobRunner

__all__ = [
    "claim_task",
    "mark_completed",
    "record_attempt_error",
    "save_remote_task_id",
    "touch_task",
    "RemoteJobPoller",
    "backoff_delay",
    "fixed_delay",
    "raw_backoff_delay",
    "reclaim_stuck_task_ids",
    "reclaim_stuck_tasks",
    "refund_failed_task",
    "JobResult",
    "WatermarkJob",
    "WatermarkJobRunner",
]
