import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from unmark.const import REFUND_DESCRIPTION, WATERMARK_REFUND_AMOUNT
from unmark.models import CreditRecord, User, WatermarkTask

logger = logging.getLogger(__name__)


def refund_failed_task(task_id, user_id, reason: str) -> bool:
    """
    Mark a task FAILED and refund its owner, at most once.

    The conditional update on `refunded_at` is the settlement lock: a second
    call (redelivered final failure, concurrent worker) matches no row and the
    transaction ends without touching the balance.

    Returns:
        True if this call issued the refund, False if it was already settled.
    """
    with transaction.atomic():
        claimed = WatermarkTask.objects.filter(
            id=task_id,
            refunded_at__isnull=True,
        ).exclude(
            status=WatermarkTask.STATUS_COMPLETED,
        ).update(
            status=WatermarkTask.STATUS_FAILED,
            error_msg=reason,
            refunded_at=timezone.now(),
            updated_at=timezone.now(),
        )

        if not claimed:
            logger.info(f"Task {task_id} already settled, skipping refund")
            return False

        User.objects.filter(id=user_id).update(
            credits=F('credits') + WATERMARK_REFUND_AMOUNT,
        )
        CreditRecord.objects.create(
            user_id=user_id,
            amount=WATERMARK_REFUND_AMOUNT,
            type=CreditRecord.TYPE_REFUND,
            description=REFUND_DESCRIPTION,
            watermark_task_id=task_id,
        )

    logger.info(f"Refunded {WATERMARK_REFUND_AMOUNT} credits to user {user_id} for task {task_id}")
    return True
