import uuid
from unittest.mock import ANY, Mock, patch

from django.test import TestCase

from unmark.models import CreditRecord, User, WatermarkTask
from unmark.services.claims import claim_task as real_claim_task
from unmark.services.worker import JobResult, WatermarkJob, WatermarkJobRunner
from unmark.utils.exceptions import PermanentVendorError, TransientVendorError


class WatermarkJobRunnerTest(TestCase):
    def setUp(self):
        self.user = User.objects.create(username="worker@example.com", credits=0)
        self.task = WatermarkTask.objects.create(user=self.user, original_url="https://example.com/a.jpg")
        self.job = WatermarkJob.from_task(self.task)
        self.client = Mock()
        self.client.create_remote_job.return_value = "remote_123"
        self.poller = Mock()
        self.poller.poll.return_value = "https://x/result.png"

    def _runner(self, final=False):
        return WatermarkJobRunner(self.client, self.poller, is_final_attempt=lambda attempt: final)

    def test_success_creates_remote_job_and_completes(self):
        result = self._runner().run(self.job)

        self.assertEqual(result, JobResult(success=True, result_url="https://x/result.png"))
        self.client.create_remote_job.assert_called_once_with("https://example.com/a.jpg")
        self.poller.poll.assert_called_once_with("remote_123", label=str(self.task.id), heartbeat=ANY)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, WatermarkTask.STATUS_COMPLETED)
        self.assertEqual(self.task.remote_task_id, "remote_123")
        self.assertEqual(self.task.attempts_made, 1)

    def test_existing_remote_task_id_is_reused(self):
        WatermarkTask.objects.filter(id=self.task.id).update(remote_task_id="remote_existing")

        self._runner().run(self.job)

        self.client.create_remote_job.assert_not_called()
        self.poller.poll.assert_called_once_with("remote_existing", label=str(self.task.id), heartbeat=ANY)

    def test_remote_task_id_is_saved_before_polling(self):
        def check_saved(remote_task_id, label, heartbeat=None):
            self.assertEqual(
                WatermarkTask.objects.get(id=self.task.id).remote_task_id,
                remote_task_id,
            )
            return "https://x/result.png"

        self.poller.poll.side_effect = check_saved

        self._runner().run(self.job)

    def test_heartbeat_refreshes_the_claimed_row(self):
        def beat(remote_task_id, label, heartbeat=None):
            WatermarkTask.objects.filter(id=self.task.id).update(updated_at=self.task.created_at)
            heartbeat()
            self.assertGreater(WatermarkTask.objects.get(id=self.task.id).updated_at, self.task.created_at)
            return "https://x/result.png"

        self.poller.poll.side_effect = beat

        self._runner().run(self.job)

    def test_pre_claimed_attempt_skips_the_claim(self):
        self.assertEqual(real_claim_task(self.task.id, 0), 1)

        result = self._runner().run(self.job, claimed_attempt=1)

        self.assertEqual(result.result_url, "https://x/result.png")
        self.task.refresh_from_db()
        self.assertEqual(self.task.attempts_made, 1)
        self.assertEqual(self.task.status, WatermarkTask.STATUS_COMPLETED)

    def test_missing_task_is_noop(self):
        job = WatermarkJob(task_id=str(uuid.uuid4()), original_url="https://example.com/a.jpg", user_id=str(self.user.id))

        result = self._runner().run(job)

        self.assertTrue(result.success)
        self.assertTrue(result.skipped)
        self.client.create_remote_job.assert_not_called()

    def test_finalized_task_is_noop(self):
        WatermarkTask.objects.filter(id=self.task.id).update(status=WatermarkTask.STATUS_COMPLETED)

        result = self._runner().run(self.job)

        self.assertTrue(result.skipped)
        self.poller.poll.assert_not_called()

    def test_losing_a_claim_race_is_noop(self):
        def competing_claim(task_id, expected_attempts):
            # Another worker claims with the same observed counter first.
            real_claim_task(task_id, expected_attempts)
            return real_claim_task(task_id, expected_attempts)

        with patch("unmark.services.worker.claim_task", side_effect=competing_claim):
            result = self._runner().run(self.job)

        self.assertTrue(result.skipped)
        self.poller.poll.assert_not_called()
        self.client.create_remote_job.assert_not_called()

    def test_non_final_failure_records_error_without_refund(self):
        self.poller.poll.side_effect = PermanentVendorError("上传失败", state=-2)

        with self.assertRaises(PermanentVendorError):
            self._runner(final=False).run(self.job)

        self.task.refresh_from_db()
        self.user.refresh_from_db()
        self.assertEqual(self.task.status, WatermarkTask.STATUS_PROCESSING)
        self.assertEqual(self.task.error_msg, "上传失败")
        self.assertIsNone(self.task.refunded_at)
        self.assertEqual(self.user.credits, 0)

    def test_final_failure_refunds(self):
        self.poller.poll.side_effect = PermanentVendorError("处理失败", state=-1)

        with self.assertRaises(PermanentVendorError):
            self._runner(final=True).run(self.job)

        self.task.refresh_from_db()
        self.user.refresh_from_db()
        self.assertEqual(self.task.status, WatermarkTask.STATUS_FAILED)
        self.assertIsNotNone(self.task.refunded_at)
        self.assertIsNone(self.task.result_url)
        self.assertEqual(self.user.credits, 50)
        self.assertEqual(CreditRecord.objects.filter(user=self.user, type="REFUND").count(), 1)

    def test_create_failure_does_not_persist_remote_id(self):
        self.client.create_remote_job.side_effect = TransientVendorError("timed out")

        with self.assertRaises(TransientVendorError):
            self._runner().run(self.job)

        self.task.refresh_from_db()
        self.assertIsNone(self.task.remote_task_id)
        self.assertEqual(self.task.error_msg, "timed out")

    def test_final_predicate_receives_attempt_number(self):
        WatermarkTask.objects.filter(id=self.task.id).update(attempts_made=2)
        self.poller.poll.side_effect = TransientVendorError("timed out")
        seen = []

        runner = WatermarkJobRunner(self.client, self.poller, is_final_attempt=lambda n: seen.append(n) or False)
        with self.assertRaises(TransientVendorError):
            runner.run(self.job)

        self.assertEqual(seen, [3])


class WatermarkJobTest(TestCase):
    def test_payload_round_trip_fields(self):
        user = User.objects.create(username="payload@example.com")
        task = WatermarkTask.objects.create(user=user, original_url="https://example.com/a.jpg")

        payload = WatermarkJob.from_task(task).as_payload()

        self.assertEqual(
            payload,
            {"task_id": str(task.id), "original_url": "https://example.com/a.jpg", "user_id": str(user.id)},
        )
