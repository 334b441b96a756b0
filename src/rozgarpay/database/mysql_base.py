from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import time, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DuplicateEntryError, TransactionFailure
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Private auto-committed cursor. Driver errors surface as ``TransactionFailure``."""
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise TransactionFailure("Database is unavailable") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        logger.warning("Query failed: %s", e)
        raise TransactionFailure("The database request failed") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@dataclass
class MySQLTransaction:
    conn: Any
    cursor: Any


class MySQLUnitOfWork:
    """One connection, one READ COMMITTED transaction, shared by every repository call."""

    def __init__(self, conn_factory: DatabaseConnection, *, isolation_level: str = "READ COMMITTED"):
        self._conn_factory = conn_factory
        self._isolation_level = isolation_level

    @contextmanager
    def begin(self) -> Iterator[MySQLTransaction]:
        try:
            conn = self._conn_factory.connect()
        except mysql.connector.Error as e:
            raise TransactionFailure("Database is unavailable") from e

        cur = conn.cursor(dictionary=True)
        try:
            conn.start_transaction(isolation_level=self._isolation_level)
            yield MySQLTransaction(conn=conn, cursor=cur)
            conn.commit()
        except mysql.connector.Error as e:
            conn.rollback()
            logger.exception("Transaction rolled back")
            raise TransactionFailure("The transaction was aborted, nothing was saved") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()
            conn.close()


@contextmanager
def tx_cursor(conn_factory: DatabaseConnection, tx: Optional[MySQLTransaction]):
    """Cursor of the caller's transaction, or a private auto-committed one."""
    if tx is not None:
        yield tx.cursor
        return
    with db_cursor(conn_factory) as (_, cur):
        yield cur


def insert_row(cur, sql: str, params: tuple) -> int:
    try:
        cur.execute(sql, params)
    except mysql.connector.IntegrityError as e:
        if e.errno == errorcode.ER_DUP_ENTRY:
            raise DuplicateEntryError(str(e)) from e
        raise
    return int(cur.lastrowid)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values (time, timedelta or "HH:MM[:SS]" string)."""

    if value is None:
        return None
    if isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        return time(hour=total_seconds // 3600, minute=(total_seconds % 3600) // 60, second=total_seconds % 60)
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=int(parts[0]), minute=int(parts[1]), second=seconds)
    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")


def as_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def as_bool(value: Any) -> bool:
    return bool(int(value or 0))


def load_json(value: Any) -> dict:
    if value is None:
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value) if value else {}
    return dict(value)


def dump_json(value: Optional[dict]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str, ensure_ascii=False)
