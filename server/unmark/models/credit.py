from django.db import models
from django.conf import settings


class CreditRecord(models.Model):
    """Ledger entry for credit consumption and refunds"""

    TYPE_CONSUME = 'CONSUME'
    TYPE_REFUND = 'REFUND'
    TYPE_PURCHASE = 'PURCHASE'

    RECORD_TYPES = [
        (TYPE_CONSUME, 'Consume'),
        (TYPE_REFUND, 'Refund'),
        (TYPE_PURCHASE, 'Purchase'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='credit_records'
    )
    amount = models.IntegerField(
        help_text="Positive for purchase/refund, negative for consumption"
    )
    type = models.CharField(
        max_length=20,
        choices=RECORD_TYPES
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        default=''
    )
    watermark_task = models.ForeignKey(
        'WatermarkTask',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='credit_records',
        help_text="Watermark task this entry settles, if any"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'credit_records'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='credit_reco_user_id_7e2b90_idx'),
        ]

    def __str__(self):
        return f"{self.type} {self.amount} credits (user {self.user_id})"
