"""Slack delivery channel for private alerts."""

from __future__ import annotations

import logging
import re

from pingpal.models import ChannelInfo

logger = logging.getLogger(__name__)

_CHANNEL_ID_RE = re.compile(r"^[CDG][A-Z0-9]+$")


class SlackDelivery:
    """Sends alerts through ``chat.postMessage``.

    Posting with a user ID as the channel delivers the message into the
    bot's direct conversation with that user.
    """

    def __init__(self, client) -> None:
        self._client = client

    def send(self, recipient: str, text: str) -> None:
        self._client.chat_postMessage(
            channel=recipient,
            text=text,
            mrkdwn=True,
            unfurl_links=False,
            unfurl_media=False,
        )
        logger.debug("Posted %d chars to %s", len(text), recipient)

    def lookup_channel(self, channel_ref: str) -> ChannelInfo:
        """Fetch a conversation's title and, for public channels, its handle."""
        if not _CHANNEL_ID_RE.match(channel_ref):
            raise ValueError(f"not a Slack channel ID: {channel_ref!r}")

        info = self._client.conversations_info(channel=channel_ref)
        channel = info["channel"]
        title = channel.get("name") or None
        is_public = channel.get("is_channel", False) and not channel.get("is_private", False)
        return ChannelInfo(
            title=title,
            public_handle=channel.get("id", channel_ref) if is_public else None,
        )
