"""
PostgreSQL job store: one row per queue holding its pending jobs, history and stats.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from .job_store import JobStore, Snapshot
from ..helper.database import Database
from ..helper.error import WorkQueueError
from ..helper.logging import get_logger

logger = get_logger(__name__)

TABLE_NAME = "workqueue_snapshot"

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    queue_name TEXT PRIMARY KEY,
    jobs JSONB NOT NULL DEFAULT '[]'::jsonb,
    stats JSONB NOT NULL DEFAULT '{{}}'::jsonb,
    history JSONB NOT NULL DEFAULT '[]'::jsonb,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

UPSERT_SQL = f"""
INSERT INTO {TABLE_NAME} (queue_name, jobs, stats, history, updated_at)
VALUES (%s, %s, %s, %s, %s)
ON CONFLICT (queue_name) DO UPDATE SET
    jobs = EXCLUDED.jobs,
    stats = EXCLUDED.stats,
    history = EXCLUDED.history,
    updated_at = EXCLUDED.updated_at;
"""

SELECT_SQL = f"""
SELECT queue_name, jobs, stats, history, updated_at
FROM {TABLE_NAME}
ORDER BY queue_name;
"""


class PostgresJobStore(JobStore):
    """
    Job store backed by PostgreSQL.
    A save upserts every queue of the snapshot in one transaction.
    """

    def __init__(self, db_connection: Database, with_table_drop: bool = False):
        """
        Initialize the store and create its table.

        :param db_connection: Connected Database.
        :param with_table_drop: Drop an existing table first.
        :raises ValueError: If the database is not connected.
        """
        self.db: Database = db_connection
        if self.db.instance is None:
            raise ValueError("Database connection is not established")

        if with_table_drop:
            self.drop_table()

        self.create_table()

    def check_table_existence(self) -> bool:
        return self.db.check_table_existence(TABLE_NAME)

    def create_table(self) -> None:
        self.db.create_table_if_not_exists(TABLE_NAME, CREATE_TABLE_SQL)

    def drop_table(self) -> None:
        self.db.drop_table_if_exists(TABLE_NAME)

    def save(self, snapshot: Snapshot) -> bool:
        conn = self.db.instance
        if conn is None:
            logger.error("Failed to save queue snapshot, database is not connected")
            return False

        updated_at = datetime.now(timezone.utc)
        try:
            with conn.cursor() as cur:
                for queue_name, queue in snapshot.get("queues", {}).items():
                    cur.execute(
                        UPSERT_SQL,
                        (
                            queue_name,
                            Jsonb(queue.get("jobs", [])),
                            Jsonb(queue.get("stats", {})),
                            Jsonb(queue.get("history", [])),
                            updated_at,
                        ),
                    )
            conn.commit()
            return True
        except Exception as e:
            conn.rollback()
            logger.error(
                "Failed to save queue snapshot",
                WorkQueueError(f"upserting into {TABLE_NAME}", e),
            )
            return False

    def load(self) -> Optional[Snapshot]:
        conn = self.db.instance
        if conn is None:
            logger.error("Failed to load queue snapshot, database is not connected")
            return None

        try:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(SELECT_SQL)
                rows = cur.fetchall()
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(
                "Failed to load queue snapshot",
                WorkQueueError(f"selecting from {TABLE_NAME}", e),
            )
            return None

        if not rows:
            return None

        queues: Dict[str, Any] = {}
        for row in rows:
            queues[row["queue_name"]] = {
                "jobs": row["jobs"] or [],
                "stats": row["stats"] or {},
                "history": row["history"] or [],
            }
        timestamp = max(row["updated_at"] for row in rows)
        return {"timestamp": timestamp.isoformat(), "queues": queues}

    def health(self) -> Dict[str, str]:
        return {"backend": type(self).__name__, **self.db.health()}

    def close(self) -> None:
        self.db.close()
