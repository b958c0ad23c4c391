from .watermark import process_watermark_task
from .maintenance import reclaim_stuck_watermark_tasks

__all__ = [
    "process_watermark_task",
    "reclaim_stuck_watermark_tasks",
]
