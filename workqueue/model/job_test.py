"""
Tests for the Job model.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List
import unittest

from .job import Job, JobStatus, generate_job_id, new_job
from .options import JobOptions
from ..helper.error import InvalidJobError, InvalidTransitionError

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestNewJob(unittest.TestCase):
    """Test cases for new_job."""

    def test_new_job(self):
        test_cases: List[Dict[str, Any]] = [
            {
                "name": "Valid job with payload",
                "job_data": {"type": "welcome", "data": {"to": "a@example.com"}},
                "want_err": False,
            },
            {
                "name": "Valid job without payload",
                "job_data": {"type": "cleanup"},
                "want_err": False,
            },
            {"name": "Missing type", "job_data": {"data": {}}, "want_err": True},
            {"name": "Empty type", "job_data": {"type": ""}, "want_err": True},
            {
                "name": "Payload is not a mapping",
                "job_data": {"type": "x", "data": [1, 2]},
                "want_err": True,
            },
            {"name": "Job data is not a mapping", "job_data": "x", "want_err": True},
        ]

        for test_case in test_cases:
            with self.subTest(name=test_case["name"]):
                if test_case["want_err"]:
                    with self.assertRaises(InvalidJobError):
                        new_job("email", test_case["job_data"], now=NOW)
                else:
                    job = new_job("email", test_case["job_data"], now=NOW)
                    self.assertEqual(job.queue_name, "email")
                    self.assertEqual(job.status, JobStatus.PENDING)
                    self.assertEqual(job.created_at, NOW)
                    self.assertEqual(
                        job.payload, test_case["job_data"].get("data") or {}
                    )

    def test_defaults_and_options(self):
        job = new_job("email", {"type": "x"}, default_max_attempts=4, now=NOW)
        self.assertEqual(job.priority, 0)
        self.assertEqual(job.delay_ms, 0)
        self.assertEqual(job.max_attempts, 4)
        self.assertEqual(job.attempts, 0)

        job = new_job(
            "email",
            {"type": "x"},
            JobOptions(priority=7, delay_ms=250, max_retries=2),
            now=NOW,
        )
        self.assertEqual(job.priority, 7)
        self.assertEqual(job.delay_ms, 250)
        self.assertEqual(job.max_attempts, 2)

    def test_payload_is_copied(self):
        data = {"to": "a@example.com"}
        job = new_job("email", {"type": "x", "data": data}, now=NOW)
        data["to"] = "changed"
        self.assertEqual(job.payload["to"], "a@example.com")

    def test_job_id_format(self):
        job_id = generate_job_id(NOW)
        self.assertRegex(job_id, r"^job_\d+_[0-9a-z]{9}$")
        self.assertEqual(job_id.split("_")[1], str(int(NOW.timestamp() * 1000)))

    def test_job_ids_are_unique(self):
        ids = {generate_job_id(NOW) for _ in range(200)}
        self.assertEqual(len(ids), 200)


class TestJob(unittest.TestCase):
    """Test cases for job transitions, eligibility and serialization."""

    def setUp(self):
        self.job = new_job("reports", {"type": "weekly", "data": {"n": 1}}, now=NOW)

    def test_valid_transitions(self):
        self.job.transition(JobStatus.PROCESSING)
        self.job.transition(JobStatus.RETRYING)
        self.job.transition(JobStatus.PENDING)
        self.job.transition(JobStatus.PROCESSING)
        self.job.transition(JobStatus.COMPLETED)
        self.assertEqual(self.job.status, JobStatus.COMPLETED)

    def test_invalid_transitions(self):
        with self.assertRaises(InvalidTransitionError):
            self.job.transition(JobStatus.COMPLETED)

        self.job.transition(JobStatus.PROCESSING)
        self.job.transition(JobStatus.FAILED)
        for status in JobStatus:
            with self.subTest(status=status):
                with self.assertRaises(InvalidTransitionError):
                    self.job.transition(status)

    def test_transition_accepts_status_value(self):
        self.job.transition("processing")
        self.assertEqual(self.job.status, JobStatus.PROCESSING)

    def test_is_eligible_without_delay(self):
        self.assertTrue(self.job.is_eligible(NOW))

    def test_is_eligible_with_delay(self):
        self.job.delay_ms = 5000
        self.assertFalse(self.job.is_eligible(NOW + timedelta(milliseconds=4999)))
        self.assertTrue(self.job.is_eligible(NOW + timedelta(milliseconds=5000)))
        self.assertEqual(self.job.eligible_at(), NOW + timedelta(seconds=5))

    def test_delay_is_measured_from_retry(self):
        self.job.delay_ms = 1000
        self.job.retried_at = NOW + timedelta(seconds=10)
        self.assertFalse(self.job.is_eligible(NOW + timedelta(seconds=10.5)))
        self.assertTrue(self.job.is_eligible(NOW + timedelta(seconds=11)))

    def test_dict_round_trip(self):
        self.job.attempts = 2
        self.job.retried_at = NOW + timedelta(seconds=1)
        self.job.last_error = "boom"

        data = self.job.to_dict()
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["created_at"], NOW.isoformat())
        self.assertIsNone(data["completed_at"])

        restored = Job.from_dict(data)
        self.assertEqual(restored, self.job)

    def test_from_dict_naive_datetime_is_utc(self):
        data = self.job.to_dict()
        data["created_at"] = "2024-05-01T12:00:00"
        restored = Job.from_dict(data)
        self.assertEqual(restored.created_at, NOW)

    def test_from_dict_zulu_suffix(self):
        data = self.job.to_dict()
        data["created_at"] = "2024-05-01T12:00:00.000Z"
        self.assertEqual(Job.from_dict(data).created_at, NOW)
        self.assertTrue(re.match(r"^job_", data["id"]))


if __name__ == "__main__":
    unittest.main()
