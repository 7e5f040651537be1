from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector

from ..core.exceptions import PersistenceError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor); commit on success, rollback on error.

    Driver errors surface as PersistenceError so services never see mysql types.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise PersistenceError(f"Database unavailable: {e}") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        raise PersistenceError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
