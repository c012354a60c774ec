"""
Tests for the JobOptions model.
"""

from typing import Any, Dict, List
import unittest

from .options import JobOptions, new_job_options
from ..helper.error import InvalidJobError


class TestJobOptions(unittest.TestCase):
    """Test cases for JobOptions."""

    def test_defaults(self):
        options = JobOptions()
        self.assertEqual(options.priority, 0)
        self.assertEqual(options.delay_ms, 0)
        self.assertIsNone(options.max_retries)

    def test_validation(self):
        test_cases: List[Dict[str, Any]] = [
            {"name": "Valid options", "kwargs": {"priority": 5, "delay_ms": 100, "max_retries": 2}, "want_err": False},
            {"name": "Negative priority", "kwargs": {"priority": -1}, "want_err": False},
            {"name": "Float priority", "kwargs": {"priority": 1.5}, "want_err": True},
            {"name": "Bool priority", "kwargs": {"priority": True}, "want_err": True},
            {"name": "Negative delay", "kwargs": {"delay_ms": -1}, "want_err": True},
            {"name": "Zero max retries", "kwargs": {"max_retries": 0}, "want_err": True},
            {"name": "String max retries", "kwargs": {"max_retries": "3"}, "want_err": True},
        ]

        for test_case in test_cases:
            with self.subTest(name=test_case["name"]):
                if test_case["want_err"]:
                    with self.assertRaises(InvalidJobError):
                        JobOptions(**test_case["kwargs"])
                else:
                    JobOptions(**test_case["kwargs"])

    def test_from_dict_aliases(self):
        options = JobOptions.from_dict({"priority": 3, "delay": 5000, "maxRetries": 5})
        self.assertEqual(options, JobOptions(priority=3, delay_ms=5000, max_retries=5))

    def test_from_dict_ignores_none_values(self):
        options = JobOptions.from_dict({"priority": None, "max_retries": None})
        self.assertEqual(options, JobOptions())

    def test_from_dict_unknown_key(self):
        with self.assertRaises(InvalidJobError) as cm:
            JobOptions.from_dict({"priority": 1, "timeout": 10})
        self.assertIn("timeout", str(cm.exception))

    def test_new_job_options(self):
        self.assertEqual(new_job_options(None), JobOptions())
        options = JobOptions(priority=2)
        self.assertIs(new_job_options(options), options)
        self.assertEqual(new_job_options({"delay_ms": 10}).delay_ms, 10)

        with self.assertRaises(InvalidJobError):
            new_job_options([("priority", 1)])  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
