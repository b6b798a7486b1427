"""Slack event listener using Socket Mode.

Connects to Slack via the bolt framework and converts raw events into
InboundMessage instances for the mention pipeline.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from pingpal.models import InboundMessage

logger = logging.getLogger(__name__)

# Event subtypes that carry no new message content.
_IGNORED_SUBTYPES = frozenset({
    "channel_join",
    "channel_leave",
    "channel_topic",
    "channel_purpose",
    "channel_name",
    "channel_archive",
    "channel_unarchive",
    "group_join",
    "group_leave",
    "group_topic",
    "group_purpose",
    "group_name",
    "group_archive",
    "group_unarchive",
    "message_changed",
    "message_deleted",
})


def _parse_ts(ts: str | None) -> datetime:
    """Convert a Slack ``ts`` ("1700000000.000100") into a UTC datetime."""
    if ts:
        try:
            return datetime.fromtimestamp(float(ts), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            logger.debug("Unparseable ts %r; using receipt time", ts)
    return datetime.now(timezone.utc)


class SlackListener:
    """Wraps a Slack Bolt ``App`` with Socket Mode for real-time events.

    Responsibilities
    ----------------
    * Connects to Slack and retrieves the bot's own user ID.
    * Converts raw ``message`` event dicts into :class:`InboundMessage` objects.

    Redelivered events are passed through; the persistent mention store
    recognises them.
    """

    def __init__(self) -> None:
        bot_token = os.environ["SLACK_BOT_TOKEN"]
        app_token = os.environ["SLACK_APP_TOKEN"]

        self._app = App(token=bot_token)
        self._handler = SocketModeHandler(self._app, app_token)

        # The bot's own user ID scopes the processed-mention records and lets
        # us drop our own alerts, which quote the mention they report.
        auth_response = self._app.client.auth_test()
        self._bot_user_id: str = auth_response["user_id"]
        logger.info("Bot user ID resolved: %s", self._bot_user_id)

    # -- public properties / helpers -----------------------------------------

    @property
    def bot_user_id(self) -> str:
        """The Slack user ID of the bot itself."""
        return self._bot_user_id

    @property
    def app(self) -> App:
        """The underlying ``slack_bolt.App`` instance."""
        return self._app

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Start the Socket Mode handler (blocking)."""
        logger.info("Starting Socket Mode handler")
        self._handler.start()

    def close(self) -> None:
        """Shut down the Socket Mode handler gracefully."""
        logger.info("Closing Socket Mode handler")
        self._handler.close()

    # -- event parsing -------------------------------------------------------

    def parse_event(self, event: dict) -> InboundMessage | None:
        """Convert a raw Slack ``message`` event into an :class:`InboundMessage`.

        Returns ``None`` when the event should be silently dropped (no
        identifier, irrelevant subtype, missing required fields, or one of the
        bot's own messages).
        """

        # -- durable identifier ----------------------------------------------
        message_id = event.get("client_msg_id") or event.get("ts")
        if not message_id:
            logger.debug("Event has no client_msg_id or ts; dropping")
            return None

        # -- filter irrelevant subtypes --------------------------------------
        subtype = event.get("subtype")
        if subtype is not None and subtype in _IGNORED_SUBTYPES:
            logger.debug("Ignored subtype %s; dropping", subtype)
            return None

        # -- required fields -------------------------------------------------
        channel_id = event.get("channel")
        sender_id = event.get("user")

        if not channel_id:
            logger.debug("Event missing 'channel'; dropping")
            return None

        # bot_message subtypes may lack a "user" field; that is acceptable
        # only when we can still identify it as a bot.
        if not sender_id:
            if event.get("bot_id") is not None or subtype == "bot_message":
                sender_id = event.get("bot_id", "unknown_bot")
            else:
                logger.debug("Event missing 'user'; dropping")
                return None

        if sender_id == self._bot_user_id:
            logger.debug("Own message %s; dropping", message_id)
            return None

        return InboundMessage(
            message_id=message_id,
            sender_ref=sender_id,
            room_ref=channel_id,
            text=event.get("text") or "",
            timestamp=_parse_ts(event.get("ts")),
        )
