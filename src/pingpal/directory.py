"""Sender and room display-name lookups backed by the Slack Web API."""

from __future__ import annotations

import logging

from pingpal.models import RoomInfo, SenderInfo

logger = logging.getLogger(__name__)

# Conversation types that have no meaningful display name.
_DIRECT_CONVERSATION_KEYS = ("is_im", "is_mpim")


class SlackDirectory:
    """Resolves user and channel IDs into display context.

    Successful look-ups are cached in memory (no TTL). Failures are not
    cached and Slack API errors propagate to the caller, which decides on a
    placeholder.
    """

    def __init__(self, client) -> None:
        self._client = client
        self._sender_cache: dict[str, SenderInfo] = {}
        self._room_cache: dict[str, RoomInfo] = {}

    def get_sender(self, sender_ref: str) -> SenderInfo:
        if sender_ref in self._sender_cache:
            return self._sender_cache[sender_ref]

        logger.debug("User cache miss for %s", sender_ref)
        info = self._client.users_info(user=sender_ref)
        user = info["user"]
        profile = user.get("profile", {})
        sender = SenderInfo(
            display_name=(
                profile.get("display_name")
                or profile.get("real_name")
                or user.get("real_name")
                or None
            ),
            username=user.get("name") or None,
        )

        self._sender_cache[sender_ref] = sender
        return sender

    def get_room(self, room_ref: str) -> RoomInfo:
        if room_ref in self._room_cache:
            return self._room_cache[room_ref]

        logger.debug("Channel cache miss for %s", room_ref)
        info = self._client.conversations_info(channel=room_ref)
        channel = info["channel"]
        if any(channel.get(key) for key in _DIRECT_CONVERSATION_KEYS):
            name = None
        else:
            name = channel.get("name") or None
        room = RoomInfo(display_name=name, channel_ref=channel.get("id") or room_ref)

        self._room_cache[room_ref] = room
        return room
