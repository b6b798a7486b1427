"""Store-backed duplicate detection for mentions."""

import logging

from pingpal.models import RECORD_KIND, DedupStatus, InboundMessage
from pingpal.ports import MentionStore
from pingpal.store import StoreUnavailable

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 50


class DuplicateChecker:
    """Answers whether a message has already been recorded as processed.

    Only the ``window`` most recent records for the same agent and room are
    scanned, so a message whose record has been pushed out of that window by
    newer mentions in the same room is treated as new again.
    """

    def __init__(self, store: MentionStore, agent_id: str, window: int = DEFAULT_WINDOW) -> None:
        self._store = store
        self._agent_id = agent_id
        self._window = window

    def check(self, message: InboundMessage) -> DedupStatus:
        try:
            recent = self._store.query(self._agent_id, message.room_ref, self._window)
        except StoreUnavailable as exc:
            logger.error(
                "Duplicate check failed for %s in %s: %s",
                message.message_id,
                message.room_ref,
                exc,
            )
            return DedupStatus.STORE_UNAVAILABLE

        for record in recent:
            if record.kind == RECORD_KIND and record.message_id == message.message_id:
                return DedupStatus.DUPLICATE
        return DedupStatus.NEW
