"""
Test cases for the DDL helper.
"""

import unittest
from unittest.mock import MagicMock, Mock, patch

from psycopg import errors

from .sql import run_ddl


def mock_connection():
    """Connection mock whose cursor works as a context manager."""
    conn = Mock()
    cursor = MagicMock()
    conn.cursor.return_value = cursor
    cursor.__enter__.return_value = cursor
    cursor.__exit__.return_value = None
    return conn, cursor


class TestRunDDL(unittest.TestCase):
    """Test cases for run_ddl function."""

    def test_run_ddl_success(self):
        conn, cursor = mock_connection()

        run_ddl(conn, "CREATE TABLE test (id INT);")

        conn.rollback.assert_called_once()
        cursor.execute.assert_called_once_with(b"CREATE TABLE test (id INT);")
        conn.commit.assert_called_once()

    @patch("workqueue.helper.sql.time.sleep")
    def test_run_ddl_retry_on_deadlock(self, mock_sleep: MagicMock):
        conn, cursor = mock_connection()
        cursor.execute.side_effect = [errors.DeadlockDetected("deadlock"), None]

        run_ddl(conn, "CREATE TABLE test (id INT);", max_retries=3)

        self.assertEqual(cursor.execute.call_count, 2)
        mock_sleep.assert_called_once_with(0.5)
        conn.commit.assert_called_once()

    @patch("workqueue.helper.sql.time.sleep")
    def test_run_ddl_max_retries_exceeded(self, mock_sleep: MagicMock):
        conn, cursor = mock_connection()
        cursor.execute.side_effect = errors.DeadlockDetected("deadlock")

        with self.assertRaises(errors.DeadlockDetected):
            run_ddl(conn, "CREATE TABLE test (id INT);", max_retries=2)

        self.assertEqual(cursor.execute.call_count, 2)
        self.assertEqual(mock_sleep.call_count, 1)

    def test_run_ddl_other_exception(self):
        conn, cursor = mock_connection()
        cursor.execute.side_effect = ValueError("some error")

        with self.assertRaises(ValueError):
            run_ddl(conn, "CREATE TABLE test (id INT);")

        self.assertEqual(cursor.execute.call_count, 1)
        conn.commit.assert_not_called()


if __name__ == "__main__":
    unittest.main()
