"""Database models exposed by the `unmark` Django app.

This package aggregates model classes to provide a convenient import surface
for other parts of the backend.
"""

from .credit import CreditRecord
from .user import User
from .watermark import WatermarkTask

__all__ = [
    "CreditRecord",
    "User",
    "WatermarkTask",
]
