from .watermark_client import RemoteJobStatus, WatermarkAPIClient, get_watermark_client
from .exceptions import (
    exception_handler,
    format_error,
    WatermarkError,
    ConfigurationError,
    VendorError,
    TransientVendorError,
    PollTimeoutError,
    PermanentVendorError,
)

__all__ = [
    "RemoteJobStatus",
    "WatermarkAPIClient",
    "get_watermark_client",
    "exception_handler",
    "format_error",
    "WatermarkError",
    "ConfigurationError",
    "VendorError",
    "TransientVendorError",
    "PollTimeoutError",
    "PermanentVendorError",
]
