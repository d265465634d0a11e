from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar

from mysql.connector import errorcode
from mysql.connector.errors import DatabaseError, IntegrityError

from ..common.calendar import format_day_key, parse_day_key
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
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


def is_duplicate_key(exc: IntegrityError) -> bool:
    return getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


def is_deadlock(exc: DatabaseError) -> bool:
    return getattr(exc, "errno", None) in (errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT)


def run_in_transaction(conn_factory: DatabaseConnection, work: Callable[[Any], T], *, retries: int = 1) -> T:
    """Run ``work(cur)`` in one transaction, re-running it from scratch when
    InnoDB gives up on a lock (deadlock victim or lock wait timeout).
    ``work`` must not keep state between attempts."""

    attempt = 0
    while True:
        try:
            with db_cursor(conn_factory) as (_, cur):
                return work(cur)
        except DatabaseError as exc:
            if not is_deadlock(exc) or attempt >= retries:
                raise
            attempt += 1
            logger.warning("Lock conflict (errno=%s), retrying %d/%d", exc.errno, attempt, retries)


def day_key_param(value: Optional[str]) -> Optional[date]:
    """Day key -> DATE column value."""
    if value is None:
        return None
    return parse_day_key(value)


def day_key_value(value: Any) -> Optional[str]:
    """DATE column value -> day key.

    mysql-connector returns DATE as datetime.date, but string columns and
    some pure-python cursors hand back 'YYYY-MM-DD' text.
    """

    if value is None:
        return None
    if isinstance(value, date):
        return format_day_key(value)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("ascii")
    text = str(value)[:10]
    parse_day_key(text)
    return text


def in_clause(values) -> str:
    return ",".join(["%s"] * len(values))
