"""
DDL execution helper for the PostgreSQL job store.
"""

import threading
import time

from psycopg import Connection, errors

from .logging import get_logger

logger = get_logger(__name__)

# Process wide lock for DDL, concurrent DDL on the same tables deadlocks
_DDL_LOCK = threading.RLock()


def run_ddl(conn: Connection, sql_statement: str, max_retries: int = 3) -> None:
    """
    Executes DDL under a process lock, retrying on deadlocks or serialization errors.

    :param conn: The Psycopg 3 connection object.
    :param sql_statement: The DDL to execute (e.g., CREATE TABLE).
    :param max_retries: Attempts before the last error is raised.
    """

    with _DDL_LOCK:
        for attempt in range(max_retries):
            try:
                conn.rollback()
                with conn.cursor() as cur:
                    cur.execute(sql_statement.encode("utf-8"))
                conn.commit()
                return
            except (errors.DeadlockDetected, errors.SerializationFailure) as e:
                conn.rollback()
                if attempt < max_retries - 1:
                    logger.warning(
                        "DDL lock conflict, retrying",
                        attempt=f"{attempt + 1}/{max_retries}",
                    )
                    time.sleep(0.5)
                else:
                    logger.error(f"DDL failed after {max_retries} attempts", e)
                    raise
            except Exception:
                conn.rollback()
                raise
