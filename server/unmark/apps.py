import sys

from django.apps import AppConfig
from django.core.checks import Error, Tags, Warning, register


class UnmarkConfig(AppConfig):
    name = "unmark"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        from unmark.checks import missing_watermark_settings

        @register(Tags.compatibility)
        def _check_watermark_settings(app_configs, **kwargs):
            """
            Report missing vendor credentials before a worker starts failing every task.
            """
            missing = missing_watermark_settings()
            if not missing:
                return []

            issue_cls = Warning
            issue_id = "unmark.W001"
            if any(cmd in sys.argv for cmd in {"process_watermark_queue", "celery"}):
                issue_cls = Error
                issue_id = "unmark.E001"
            return [
                issue_cls(
                    f"Watermark removal is not configured: {', '.join(missing)} missing.",
                    hint="Set WATERMARK_API_KEY in the environment or .env file.",
                    id=issue_id,
                )
            ]
