"""
PostgreSQL connection helpers used by the database job store.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional

import psycopg
from psycopg import Connection, ConnectionInfo, sql

from .error import WorkQueueError
from .logging import WorkQueueLogger, get_logger
from .sql import run_ddl


@dataclass
class DatabaseConfiguration:
    """
    Connection settings of the PostgreSQL job store.
    """

    host: str
    port: int
    database: str
    username: str
    password: str
    schema: str = "public"
    sslmode: str = "require"
    with_table_drop: bool = False

    @classmethod
    def from_env(cls) -> "DatabaseConfiguration":
        """Create configuration from WORKQUEUE_DB_* environment variables."""
        host = os.getenv("WORKQUEUE_DB_HOST", "localhost")
        port_value = os.getenv("WORKQUEUE_DB_PORT", "5432")
        database = os.getenv("WORKQUEUE_DB_DATABASE", "workqueue")
        username = os.getenv("WORKQUEUE_DB_USERNAME", "postgres")
        password = os.getenv("WORKQUEUE_DB_PASSWORD", "")
        schema = os.getenv("WORKQUEUE_DB_SCHEMA", "public")
        sslmode = os.getenv("WORKQUEUE_DB_SSLMODE", "require")
        with_table_drop = (
            os.getenv("WORKQUEUE_DB_WITH_TABLE_DROP", "false").lower() == "true"
        )

        try:
            port = int(port_value)
        except ValueError:
            raise ValueError(f"WORKQUEUE_DB_PORT must be an integer, got '{port_value}'")

        if not all([host.strip(), database.strip(), username.strip(), schema.strip()]):
            raise ValueError(
                "Required environment variables missing: "
                "WORKQUEUE_DB_HOST, WORKQUEUE_DB_DATABASE, "
                "WORKQUEUE_DB_USERNAME, WORKQUEUE_DB_SCHEMA must not be empty"
            )

        return cls(
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            schema=schema,
            sslmode=sslmode,
            with_table_drop=with_table_drop,
        )

    def connection_string(self) -> str:
        """Get connection string for psycopg3."""
        return (
            f"host={self.host} "
            f"port={self.port} "
            f"dbname={self.database} "
            f"user={self.username} "
            f"password={self.password} "
            f"sslmode={self.sslmode} "
            f"application_name=workqueue "
            f"options='-c search_path={self.schema}'"
        )


class Database:
    """
    Database service wrapper around one psycopg connection.
    """

    def __init__(
        self,
        name: str,
        config: Optional[DatabaseConfiguration] = None,
        logger: Optional[WorkQueueLogger] = None,
        auto_connect: bool = True,
    ):
        """Initialize database service."""
        self.name = name
        self.config = config
        self.logger = logger or get_logger(__name__)
        self.instance: Optional[Connection] = None

        if config and auto_connect:
            self.connect_to_database()

    def connect_to_database(self) -> None:
        """
        Connect to the database using the configuration.

        :raises WorkQueueError: If there is no configuration or the connection fails.
        """
        if not self.config:
            raise WorkQueueError(
                "Database configuration is required for connection",
                ValueError("No config provided"),
            )

        try:
            self.instance = psycopg.connect(
                self.config.connection_string(), autocommit=False
            )
            self.instance.execute("SELECT 1")
            self.instance.commit()
            self.logger.info("Connected to database", database=self.config.database)
        except Exception as e:
            raise WorkQueueError("Failed to connect to database", e)

    def _require_connection(self) -> Connection:
        if not self.instance:
            raise WorkQueueError(
                "Database connection not established",
                RuntimeError(f"database {self.name} is not connected"),
            )
        return self.instance

    def check_table_existence(self, table_name: str) -> bool:
        """
        Check if a table exists in the current schema.
        """
        conn = self._require_connection()

        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT EXISTS (
                        SELECT 1
                        FROM information_schema.tables
                        WHERE table_schema = current_schema()
                        AND table_name = %s
                    );
                """,
                    (table_name,),
                )

                result = cur.fetchone()
                conn.commit()
                return result[0] if result else False

        except Exception as e:
            conn.rollback()
            raise WorkQueueError(f"Failed to check table existence for {table_name}", e)

    def create_table_if_not_exists(self, table_name: str, create_sql: str) -> bool:
        """
        Create a table if it doesn't exist.
        Returns True if table was created, False if it already existed.
        """
        conn = self._require_connection()

        if self.check_table_existence(table_name):
            return False

        try:
            run_ddl(conn, create_sql)
            self.logger.info("Created table", table=table_name)
            return True

        except Exception as e:
            raise WorkQueueError(f"Failed to create table {table_name}", e)

    def drop_table_if_exists(self, table_name: str) -> bool:
        """
        Drop a table if it exists.
        Returns True if table was dropped, False if it didn't exist.
        """
        conn = self._require_connection()

        if not self.check_table_existence(table_name):
            return False

        try:
            drop_sql = sql.SQL("DROP TABLE IF EXISTS {} CASCADE").format(
                sql.Identifier(table_name)
            )
            run_ddl(conn, drop_sql.as_string(conn))
            self.logger.info("Dropped table", table=table_name)
            return True

        except Exception as e:
            raise WorkQueueError(f"Failed to drop table {table_name}", e)

    def health(self) -> Dict[str, str]:
        """
        Check the health of the database connection.
        """
        stats: Dict[str, str] = {}

        if not self.instance:
            stats["status"] = "down"
            stats["error"] = "No database connection"
            return stats

        try:
            with self.instance.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
            self.instance.commit()

            stats["status"] = "up"
            stats["message"] = "It's healthy"

            info: ConnectionInfo = self.instance.info
            stats["server_version"] = str(info.server_version)
            stats["backend_pid"] = str(info.backend_pid)

        except Exception as e:
            stats["status"] = "down"
            stats["error"] = f"Database health check failed: {str(e)}"
            self.logger.error("Database health check failed", e)

        return stats

    def close(self) -> None:
        """Close the database connection."""
        if self.instance:
            self.instance.close()
            self.instance = None
            self.logger.info("Database connection closed", database=self.name)


def new_database(
    name: str,
    config: DatabaseConfiguration,
    logger: Optional[WorkQueueLogger] = None,
    auto_connect: bool = True,
) -> Database:
    """
    Create a new Database instance.
    """
    return Database(name, config, logger, auto_connect)


def new_database_from_env(
    name: str = "workqueue",
    logger: Optional[WorkQueueLogger] = None,
    auto_connect: bool = True,
) -> Database:
    """
    Create a new Database instance from WORKQUEUE_DB_* environment variables.
    """
    config = DatabaseConfiguration.from_env()
    return Database(name, config, logger, auto_connect)
