"""
Tests for the Worker model.
"""

import functools
from typing import Any, Dict, List
import unittest

from .worker import new_worker
from ..helper.error import InvalidWorkerError


def send_email(payload):
    return payload


async def send_email_async(payload):
    return payload


def send_with_template(template, payload):
    return template, payload


def no_arguments():
    return None


class TestWorker(unittest.TestCase):
    """Test cases for new_worker."""

    def test_new_worker(self):
        test_cases: List[Dict[str, Any]] = [
            {"name": "Sync function", "function": send_email, "want_err": False, "is_async": False},
            {"name": "Async function", "function": send_email_async, "want_err": False, "is_async": True},
            {"name": "Lambda", "function": lambda payload: None, "want_err": False, "is_async": False},
            {
                "name": "Partial of two argument function",
                "function": functools.partial(send_with_template, "welcome"),
                "want_err": False,
                "is_async": False,
            },
            {"name": "Builtin without signature", "function": print, "want_err": False, "is_async": False},
            {"name": "Not callable", "function": "send_email", "want_err": True},
            {"name": "None", "function": None, "want_err": True},
            {"name": "Takes no argument", "function": no_arguments, "want_err": True},
        ]

        for test_case in test_cases:
            with self.subTest(name=test_case["name"]):
                if test_case["want_err"]:
                    with self.assertRaises(InvalidWorkerError):
                        new_worker("email", test_case["function"])
                else:
                    worker = new_worker("email", test_case["function"])
                    self.assertEqual(worker.queue_name, "email")
                    self.assertEqual(worker.is_async, test_case["is_async"])

    def test_worker_name_and_dict(self):
        worker = new_worker("email", send_email)
        self.assertEqual(worker.name, "send_email")

        data = worker.to_dict()
        self.assertEqual(data["queue_name"], "email")
        self.assertEqual(data["name"], "send_email")
        self.assertFalse(data["is_async"])
        self.assertNotIn("function", data)

    def test_invalid_worker_is_type_error(self):
        with self.assertRaises(TypeError):
            new_worker("email", 42)


if __name__ == "__main__":
    unittest.main()
