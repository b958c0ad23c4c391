from unmark.views.health import health_check
from unmark.views.watermark import queue_status, task_history, task_status

__all__ = [
    "health_check",
    "queue_status",
    "task_history",
    "task_status",
]
