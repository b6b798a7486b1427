"""Shared data structures used across all components."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

RECORD_KIND = "pingpal_processed_mention"


@dataclass(frozen=True)
class InboundMessage:
    message_id: str  # durable ID, stable across redeliveries
    sender_ref: str  # raw user ID
    room_ref: str  # raw channel ID
    text: str  # message body
    timestamp: datetime  # when the platform received it (UTC)


@dataclass
class Classification:
    important: bool
    reason: str  # brief explanation from the LLM


@dataclass(frozen=True)
class ProcessedMentionRecord:
    agent_id: str
    room_id: str
    message_id: str
    important: bool
    reason: str
    sender_id: str
    original_timestamp: datetime
    created_at: datetime
    kind: str = RECORD_KIND
    record_id: int | None = None  # assigned by the store on write


@dataclass
class ParsedVerdict:
    classification: Classification


@dataclass
class UnparseableResponse:
    error: str
    raw: object = field(default=None, repr=False)


@dataclass
class SenderInfo:
    display_name: str | None = None
    username: str | None = None


@dataclass
class RoomInfo:
    display_name: str | None = None
    channel_ref: str | None = None


@dataclass
class ChannelInfo:
    title: str | None = None
    public_handle: str | None = None


class DedupStatus(Enum):
    NEW = "new"
    DUPLICATE = "duplicate"
    STORE_UNAVAILABLE = "store_unavailable"


class RecordStatus(Enum):
    RECORDED = "recorded"
    CONFLICT = "conflict"  # another run already recorded this message
    FAILED = "failed"


@dataclass
class RecordResult:
    status: RecordStatus
    record_id: int | None = None


class DeliveryStatus(Enum):
    SENT = "sent"
    NO_CHANNEL = "no_channel"
    NO_RECIPIENT = "no_recipient"
    FAILED = "failed"


class PipelineOutcome(Enum):
    NO_MENTION = "no_mention"
    MISSING_ID = "missing_id"
    DUPLICATE = "duplicate"
    STORE_UNAVAILABLE = "store_unavailable"
    RECORD_CONFLICT = "record_conflict"
    NOT_IMPORTANT = "not_important"
    NOTIFIED = "notified"
    DELIVERY_FAILED = "delivery_failed"
