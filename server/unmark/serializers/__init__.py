"""Serializer package for the `unmark` Django app.

This package re-exports the public DRF serializer classes used by views.
"""

from .watermark import QueueStatusSerializer, WatermarkTaskSerializer

__all__ = [
    "QueueStatusSerializer",
    "WatermarkTaskSerializer",
]
