"""Persists the classification outcome for a mention."""

import logging
from datetime import datetime, timezone

from pingpal.models import (
    Classification,
    InboundMessage,
    ProcessedMentionRecord,
    RecordResult,
    RecordStatus,
)
from pingpal.ports import MentionStore
from pingpal.store import DuplicateRecord, StoreUnavailable

logger = logging.getLogger(__name__)


class OutcomeRecorder:
    def __init__(self, store: MentionStore, agent_id: str) -> None:
        self._store = store
        self._agent_id = agent_id

    def record(self, message: InboundMessage, verdict: Classification) -> RecordResult:
        """Write a ProcessedMentionRecord for ``message``.

        Must run before any notification is attempted. A failed write is
        reported as FAILED rather than raised; the caller decides whether to
        continue.
        """
        record = ProcessedMentionRecord(
            agent_id=self._agent_id,
            room_id=message.room_ref,
            message_id=message.message_id,
            important=verdict.important,
            reason=verdict.reason,
            sender_id=message.sender_ref,
            original_timestamp=message.timestamp,
            created_at=datetime.now(timezone.utc),
        )

        try:
            record_id = self._store.write(record)
        except DuplicateRecord as exc:
            logger.warning("Mention already recorded by another run: %s", exc)
            return RecordResult(status=RecordStatus.CONFLICT)
        except StoreUnavailable as exc:
            logger.error(
                "Failed to record processed mention %s in %s: %s",
                message.message_id,
                message.room_ref,
                exc,
            )
            return RecordResult(status=RecordStatus.FAILED)

        logger.info(
            "Recorded mention %s in %s (important=%s, record=%s)",
            message.message_id,
            message.room_ref,
            verdict.important,
            record_id,
        )
        return RecordResult(status=RecordStatus.RECORDED, record_id=record_id)
