"""
In-app notification adapter - Implements InAppNotifier protocol.

Notifications are plain rows in the "notifications" collection of the
data store; the front end lists and marks them read.
"""

import logging
from collections.abc import Mapping
from typing import Any

from eventdesk.domain.ports import DataStore

logger = logging.getLogger(__name__)


class StoreNotifier:
    """Implements InAppNotifier by inserting notification rows."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    def create_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        kind: str,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        self._store.insert(
            "notifications",
            {
                "user_id": user_id,
                "title": title,
                "message": message,
                "kind": kind,
                "payload": dict(payload or {}),
            },
        )
        logger.debug("Notification '%s' created for user %s", kind, user_id)
