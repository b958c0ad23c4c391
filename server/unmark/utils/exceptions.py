from rest_framework.views import exception_handler as drf_exception_handler


def exception_handler(exc, context):
    """
    Custom exception handler for DRF that returns consistent error format.
    """
    response = drf_exception_handler(exc, context)

    if response:
        response.data = format_error(
            code=getattr(exc, "default_code", "error"),
            message=str(exc),
            details=(
                response.data
                if isinstance(response.data, dict)
                else {"detail": response.data}
            ),
        )

    return response


def format_error(code: str, message: str, details=None):
    return {
        "error": {
            "code": str(code).upper(),
            "message": message,
            "details": details if details is not None else {},
        }
    }


class WatermarkError(Exception):
    """Base class for watermark pipeline errors"""


class ConfigurationError(WatermarkError):
    """Raised at startup when required settings are missing"""
    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Missing required settings: {', '.join(self.missing)}")


class VendorError(WatermarkError):
    """Raised when the watermark removal API returns an error envelope"""


class TransientVendorError(VendorError):
    """Timeouts, connection errors and unreadable responses"""


class PollTimeoutError(TransientVendorError):
    """Raised when the remote task is not ready after the last poll"""


class PermanentVendorError(VendorError):
    """Raised for negative remote states and malformed create responses"""
    def __init__(self, message, state=None):
        self.state = state
        super().__init__(message)
