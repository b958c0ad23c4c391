from django.contrib import admin
from django.urls import path

from unmark.views import health_check, queue_status, task_history, task_status

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health/", health_check, name="health-check"),
    path("api/watermark/queue-status/", queue_status, name="watermark-queue-status"),
    path("api/watermark/history/", task_history, name="watermark-task-history"),
    path("api/watermark/tasks/<uuid:task_id>/", task_status, name="watermark-task-status"),
]
