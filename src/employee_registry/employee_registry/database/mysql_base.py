from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import StoreUnavailableError
from .connection import DatabaseConnection


def _open(conn_factory: DatabaseConnection):
    try:
        return conn_factory.connect()
    except mysql.connector.Error as e:
        raise StoreUnavailableError(f"Database unavailable: {e}") from e


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor); commit on success, roll back on any error.

    Connector errors leave as StoreUnavailableError.
    """
    conn = _open(conn_factory)
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        raise StoreUnavailableError(f"Database error: {e}") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def named_lock(conn_factory: DatabaseConnection, name: str, *, timeout: float) -> Iterator[None]:
    """Hold a MySQL advisory lock (GET_LOCK) for the duration of the block.

    The lock lives on its own connection so the statements run inside the
    block can use short-lived connections of their own.
    """
    conn = _open(conn_factory)
    try:
        cur = conn.cursor()
        try:
            cur.execute("SELECT GET_LOCK(%s, %s)", (name, math.ceil(timeout)))
            (acquired,) = cur.fetchone()
        except mysql.connector.Error as e:
            raise StoreUnavailableError(f"Could not take lock {name}: {e}") from e
        if acquired != 1:
            raise StoreUnavailableError(f"Timed out waiting for lock {name}")
        try:
            yield
        finally:
            try:
                cur.execute("SELECT RELEASE_LOCK(%s)", (name,))
                cur.fetchone()
            finally:
                cur.close()
    finally:
        # Closing the session releases the lock too if RELEASE_LOCK failed.
        conn.close()


def is_duplicate_key(error: mysql.connector.Error) -> bool:
    return getattr(error, "errno", None) == errorcode.ER_DUP_ENTRY


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
