"""
Database test utilities: a PostgreSQL testcontainer per test class.
"""

import os
import threading
import unittest
from typing import Any

import psutil
from testcontainers.postgres import PostgresContainer

from .database import Database, DatabaseConfiguration
from .logging import get_logger


logger = get_logger(__name__)


class DatabaseTestMixin:
    """
    Mixin for test classes that need a PostgreSQL database.
    The container is started lazily per class; without a reachable Docker
    daemon the tests of the class are skipped.
    """

    @classmethod
    def setup_class(cls):
        """Start the PostgreSQL container for the entire test class."""
        if getattr(cls, "_container_initialized", False):
            return

        container = PostgresContainer(
            "postgres:16-alpine",
            dbname="test_db",
            username="test_user",
            password="test_password",
        )
        try:
            container.start()
        except Exception as e:
            raise unittest.SkipTest(f"PostgreSQL container not available: {e}")

        cls.container = container
        cls.db_config = DatabaseConfiguration(
            host=container.get_container_host_ip(),
            port=int(container.get_exposed_port(5432)),
            database="test_db",
            username="test_user",
            password="test_password",
            schema="public",
            sslmode="disable",
            with_table_drop=True,
        )
        cls._set_database_env_vars()
        cls._container_initialized = True

    @classmethod
    def teardown_class(cls):
        """Stop the PostgreSQL container after all tests of the class."""
        container = getattr(cls, "container", None)
        if container is not None:
            try:
                container.stop()
            except Exception as e:
                logger.warning("Could not stop PostgreSQL container", error=e)
            cls.container = None
        cls._container_initialized = False

    def setup_method(self, method: Any = None):
        """Open a fresh database connection for each test method."""
        self.db = Database("test_db", self.db_config)
        self._initial_thread_count = threading.active_count()

    def teardown_method(self, method: Any = None):
        """Close the connection and log resource usage of the test process."""
        db = getattr(self, "db", None)
        if db is not None and db.instance is not None:
            db.instance.rollback()
            db.close()

        process = psutil.Process(os.getpid())
        logger.debug(
            "Test resources",
            memory_mb=f"{process.memory_info().rss / 1024 / 1024:.1f}",
            threads=threading.active_count(),
            thread_increase=threading.active_count()
            - getattr(self, "_initial_thread_count", 1),
        )

    @classmethod
    def _set_database_env_vars(cls):
        """Point the WORKQUEUE_DB_* environment variables at the container."""
        os.environ["WORKQUEUE_DB_HOST"] = cls.db_config.host
        os.environ["WORKQUEUE_DB_PORT"] = str(cls.db_config.port)
        os.environ["WORKQUEUE_DB_DATABASE"] = "test_db"
        os.environ["WORKQUEUE_DB_USERNAME"] = "test_user"
        os.environ["WORKQUEUE_DB_PASSWORD"] = "test_password"
        os.environ["WORKQUEUE_DB_SCHEMA"] = "public"
        os.environ["WORKQUEUE_DB_SSLMODE"] = "disable"
        os.environ["WORKQUEUE_DB_WITH_TABLE_DROP"] = "true"
