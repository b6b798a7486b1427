"""Mention pipeline: detect → dedup → classify → record → notify.

Each stage reports a result value instead of raising; this module owns the
decision of whether a result stops, aborts, or lets the run continue. Only
an unavailable store during the duplicate check aborts a run outright.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pingpal.dedup import DuplicateChecker
from pingpal.llm_classifier import MentionClassifier
from pingpal.mentions import detect_mention
from pingpal.models import (
    DedupStatus,
    DeliveryStatus,
    InboundMessage,
    PipelineOutcome,
    RecordStatus,
)
from pingpal.notifier import Notifier
from pingpal.recorder import OutcomeRecorder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineSettings:
    target_handle: str
    target_recipient: str


class MentionPipeline:
    def __init__(
        self,
        settings: PipelineSettings,
        dedup: DuplicateChecker,
        classifier: MentionClassifier,
        recorder: OutcomeRecorder,
        notifier: Notifier,
    ) -> None:
        self._settings = settings
        self._dedup = dedup
        self._classifier = classifier
        self._recorder = recorder
        self._notifier = notifier

    def handle(self, message: InboundMessage) -> PipelineOutcome:
        """Run one inbound message through the pipeline."""
        if not detect_mention(message.text, self._settings.target_handle):
            logger.debug(
                "No mention in %s / %s: %.50s",
                message.room_ref,
                message.message_id,
                message.text or "",
            )
            return PipelineOutcome.NO_MENTION

        if not message.message_id:
            logger.error(
                "Mention in %s has no message identifier; cannot deduplicate",
                message.room_ref,
            )
            return PipelineOutcome.MISSING_ID

        logger.info("Mention detected: %s / %s", message.room_ref, message.message_id)

        status = self._dedup.check(message)
        if status is DedupStatus.DUPLICATE:
            logger.info(
                "Duplicate mention %s in %s; skipping", message.message_id, message.room_ref
            )
            return PipelineOutcome.DUPLICATE
        if status is DedupStatus.STORE_UNAVAILABLE:
            logger.error(
                "Store unavailable; aborting mention %s in %s",
                message.message_id,
                message.room_ref,
            )
            return PipelineOutcome.STORE_UNAVAILABLE

        verdict = self._classifier.classify(message)

        result = self._recorder.record(message, verdict)
        if result.status is RecordStatus.CONFLICT:
            return PipelineOutcome.RECORD_CONFLICT
        if result.status is RecordStatus.FAILED:
            # The record is missing, so a redelivery of this message would be
            # processed again.
            logger.warning(
                "Continuing without a processed record for %s", message.message_id
            )

        if not verdict.important:
            logger.info(
                "Mention %s processed, notification not required", message.message_id
            )
            return PipelineOutcome.NOT_IMPORTANT

        logger.info(
            "Important mention %s, notifying: %s", message.message_id, verdict.reason
        )
        delivery = self._notifier.notify(
            self._settings.target_recipient, message, verdict.reason
        )
        if delivery is DeliveryStatus.SENT:
            return PipelineOutcome.NOTIFIED
        return PipelineOutcome.DELIVERY_FAILED
