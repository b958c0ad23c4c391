"""Custom user model used by the `unmark` Django app.

Only the credit balances matter to the watermark pipeline: failed tasks are
refunded into ``credits``.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Account owning watermark tasks and their credit balances"""

    credits = models.IntegerField(
        default=0,
        help_text="Spendable (paid) credits. Refunds are credited here."
    )
    bonus_credits = models.IntegerField(
        default=0,
        help_text="Promotional credits, spent before paid credits."
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"

    def __str__(self):
        """Return a human-readable identifier for the user."""
        return self.email or self.username

    @property
    def total_credits(self):
        return self.credits + self.bonus_credits
