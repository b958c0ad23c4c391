from datetime import timedelta
from unittest.mock import Mock, patch

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from unmark.models import User, WatermarkTask


class HealthCheckViewTest(TestCase):
    @override_settings(CELERY_BROKER_URL="redis://localhost:6379/0", WATERMARK_API_KEY="test-key")
    @patch("unmark.views.health.cache")
    @patch("unmark.views.health.connection.ensure_connection")
    @patch("unmark.views.health.current_app")
    def test_health_check_healthy(self, mock_current_app, _mock_db, mock_cache):
        mock_cache.set.return_value = True
        mock_cache.get.return_value = "ok"
        inspector = Mock()
        inspector.stats.return_value = {"worker": {}}
        mock_current_app.control.inspect.return_value = inspector

        client = APIClient()
        response = client.get("/api/health/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "healthy")
        self.assertEqual(response.data["watermark"]["stalled_count"], 0)

    @override_settings(CELERY_BROKER_URL="", WATERMARK_API_KEY="")
    @patch("unmark.views.health.cache")
    @patch("unmark.views.health.connection.ensure_connection")
    def test_health_check_degraded(self, _mock_db, mock_cache):
        mock_cache.set.return_value = True
        mock_cache.get.return_value = "ok"

        client = APIClient()
        response = client.get("/api/health/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["status"], "degraded")
        self.assertEqual(response.data["checks"]["celery"], "not configured")
        self.assertIn("WATERMARK_API_KEY", response.data["checks"]["watermark_api"])

    @override_settings(CELERY_BROKER_URL="", WATERMARK_API_KEY="test-key")
    @patch("unmark.views.health.cache")
    @patch("unmark.views.health.connection.ensure_connection")
    def test_stalled_processing_task_degrades_health(self, _mock_db, mock_cache):
        mock_cache.get.return_value = "ok"
        user = User.objects.create(username="health@example.com")
        task = WatermarkTask.objects.create(user=user, original_url="https://example.com/a.jpg")
        WatermarkTask.objects.filter(id=task.id).update(
            status=WatermarkTask.STATUS_PROCESSING,
            updated_at=timezone.now() - timedelta(minutes=6),
        )
        WatermarkTask.objects.create(user=user, original_url="https://example.com/b.jpg")

        response = APIClient().get("/api/health/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["checks"]["watermark_queue"], "stalled: 1 tasks without heartbeat")
        self.assertEqual(response.data["watermark"]["processing_count"], 1)
        self.assertEqual(response.data["watermark"]["pending_count"], 1)


class QueueStatusViewTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create(username="status@example.com")
        self.other = User.objects.create(username="other@example.com")
        self.client.force_authenticate(user=self.user)

    def _task(self, user, status, minutes_ago):
        task = WatermarkTask.objects.create(user=user, original_url="https://example.com/a.jpg", status=status)
        WatermarkTask.objects.filter(id=task.id).update(created_at=timezone.now() - timedelta(minutes=minutes_ago))
        return task

    def test_queue_position_counts_earlier_pending_tasks(self):
        self._task(self.other, WatermarkTask.STATUS_PENDING, 10)
        self._task(self.other, WatermarkTask.STATUS_PENDING, 8)
        self._task(self.other, WatermarkTask.STATUS_PROCESSING, 9)
        self._task(self.user, WatermarkTask.STATUS_PENDING, 5)
        self._task(self.user, WatermarkTask.STATUS_PENDING, 1)
        self._task(self.other, WatermarkTask.STATUS_COMPLETED, 20)

        response = self.client.get("/api/watermark/queue-status/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["pending_count"], 4)
        self.assertEqual(response.data["processing_count"], 1)
        self.assertEqual(response.data["queue_position"], 2)
        self.assertEqual(response.data["total_waiting"], 5)

    def test_processing_user_has_no_queue_position(self):
        self._task(self.other, WatermarkTask.STATUS_PENDING, 10)
        self._task(self.user, WatermarkTask.STATUS_PROCESSING, 5)

        response = self.client.get("/api/watermark/queue-status/")

        self.assertEqual(response.data["queue_position"], 0)

    def test_requires_authentication(self):
        response = APIClient().get("/api/watermark/queue-status/")

        self.assertIn(response.status_code, (401, 403))


class TaskStatusViewTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create(username="task@example.com")
        self.client.force_authenticate(user=self.user)

    def test_completed_task(self):
        task = WatermarkTask.objects.create(
            user=self.user,
            original_url="https://example.com/a.jpg",
            status=WatermarkTask.STATUS_COMPLETED,
            result_url="https://x/result.png",
        )

        response = self.client.get(f"/api/watermark/tasks/{task.id}/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "COMPLETED")
        self.assertEqual(response.data["result_url"], "https://x/result.png")
        self.assertFalse(response.data["is_refunded"])

    def test_failed_task_shows_error(self):
        task = WatermarkTask.objects.create(
            user=self.user,
            original_url="https://example.com/a.jpg",
            status=WatermarkTask.STATUS_FAILED,
            error_msg="文件超出大小限制（最大50MB）",
            refunded_at=timezone.now(),
        )

        response = self.client.get(f"/api/watermark/tasks/{task.id}/")

        self.assertEqual(response.data["error_msg"], "文件超出大小限制（最大50MB）")
        self.assertTrue(response.data["is_refunded"])
        self.assertIsNone(response.data["result_url"])

    def test_other_users_task_is_not_found(self):
        other = User.objects.create(username="someone@example.com")
        task = WatermarkTask.objects.create(user=other, original_url="https://example.com/a.jpg")

        response = self.client.get(f"/api/watermark/tasks/{task.id}/")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"]["code"], "NOT_FOUND")


class TaskHistoryViewTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create(username="history@example.com")
        self.client.force_authenticate(user=self.user)

    def _task(self, user, minutes_ago, **fields):
        task = WatermarkTask.objects.create(user=user, original_url="https://example.com/a.jpg", **fields)
        WatermarkTask.objects.filter(id=task.id).update(created_at=timezone.now() - timedelta(minutes=minutes_ago))
        return task

    def test_lists_own_tasks_newest_first(self):
        older = self._task(self.user, 10, status=WatermarkTask.STATUS_FAILED, error_msg="处理失败")
        newer = self._task(self.user, 1)
        self._task(User.objects.create(username="other@example.com"), 5)

        response = self.client.get("/api/watermark/history/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([t["id"] for t in response.data["tasks"]], [str(newer.id), str(older.id)])
        self.assertEqual(response.data["tasks"][1]["error_msg"], "处理失败")

    def test_history_is_capped_at_fifty(self):
        for minutes_ago in range(52):
            self._task(self.user, minutes_ago)

        response = self.client.get("/api/watermark/history/")

        self.assertEqual(len(response.data["tasks"]), 50)

    def test_requires_authentication(self):
        response = APIClient().get("/api/watermark/history/")

        self.assertIn(response.status_code, (401, 403))
