from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Transaction:
    """An open connection plus its dictionary cursor."""

    conn: Any
    cursor: Any


@contextmanager
def transaction(conn_factory) -> Iterator[Transaction]:
    """Scoped unit of work: commit on normal exit, rollback on any other exit.

    The connection is closed on every path, including a failure to open the cursor.
    """

    conn = conn_factory.connect()
    cur = None
    try:
        cur = conn.cursor(dictionary=True)
        yield Transaction(conn=conn, cursor=cur)
        conn.commit()
    except BaseException:
        logger.debug("rolling back transaction")
        conn.rollback()
        raise
    finally:
        if cur is not None:
            cur.close()
        conn.close()


@contextmanager
def db_cursor(conn_factory, tx: Optional[Transaction] = None) -> Iterator[Any]:
    """Cursor joined to ``tx`` when given, otherwise inside its own transaction."""

    if tx is not None:
        yield tx.cursor
        return
    with transaction(conn_factory) as own:
        yield own.cursor


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
