"""In-app notifications.

Delivery channels other than the in-app inbox live outside this package; the
dispatcher only queues rows that the front end polls.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, insert_row

logger = logging.getLogger(__name__)

INAPP = "INAPP"


class NotificationDispatcher(Protocol):
    def notify(
        self,
        *,
        user_id: int,
        company_id: int,
        title: str,
        message: str,
        meta: Optional[dict] = None,
    ) -> None:
        raise NotImplementedError


class MySQLNotificationDispatcher(NotificationDispatcher):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def notify(
        self,
        *,
        user_id: int,
        company_id: int,
        title: str,
        message: str,
        meta: Optional[dict] = None,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            notification_id = insert_row(
                cur,
                """
                INSERT INTO notifications(user_id, company_id, title, message, channel, status, meta)
                VALUES(%s,%s,%s,%s,%s,'PENDING',%s)
                """,
                (int(user_id), int(company_id), title, message, INAPP, dump_json(meta or {})),
            )
        logger.debug("Queued notification %s for user %s", notification_id, user_id)


def notify_quietly(dispatcher: NotificationDispatcher, **kwargs) -> bool:
    """Send a notification without letting a delivery failure reach the caller."""
    try:
        dispatcher.notify(**kwargs)
        return True
    except Exception:
        logger.exception("Notification failed for user %s", kwargs.get("user_id"))
        return False
