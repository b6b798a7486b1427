"""Ports (interfaces) for the collaborators the mention pipeline talks to.

The pipeline components only depend on these contracts, so the Slack,
Ollama and SQLite adapters can be swapped for fakes in tests or for other
backends.
"""

from __future__ import annotations

from typing import Any, Protocol

from pingpal.models import ChannelInfo, ProcessedMentionRecord, RoomInfo, SenderInfo


class MentionStore(Protocol):
    """Persistent storage for processed-mention records."""

    def query(
        self, agent_id: str, room_id: str, limit: int
    ) -> list[ProcessedMentionRecord]:
        ...

    def write(self, record: ProcessedMentionRecord) -> int:
        ...


class InferenceClient(Protocol):
    """Language model call returning either a decoded object or raw text."""

    def infer(self, prompt: str, schema: dict) -> Any:
        ...


class Directory(Protocol):
    """Display-name lookups for senders and rooms."""

    def get_sender(self, sender_ref: str) -> SenderInfo:
        ...

    def get_room(self, room_ref: str) -> RoomInfo:
        ...


class DeliveryChannel(Protocol):
    """Outbound channel used to push the private alert."""

    def send(self, recipient: str, text: str) -> None:
        ...

    def lookup_channel(self, channel_ref: str) -> ChannelInfo:
        ...
