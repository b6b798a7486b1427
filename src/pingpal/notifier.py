"""Private alert sender for important mentions."""

from __future__ import annotations

import logging
from urllib.parse import quote

from pingpal.models import DeliveryStatus, InboundMessage
from pingpal.ports import DeliveryChannel, Directory

logger = logging.getLogger(__name__)

DEFAULT_LINK_TEMPLATE = "https://slack.com/app_redirect?channel={handle}"

# Placeholders are already valid mrkdwn (italics) and are never escaped.
UNKNOWN_SENDER = "_Unknown User_"
UNKNOWN_ROOM = "_Unknown Group_"
ROOM_FETCH_ERROR = "_Fetch Error_"
ROOM_FETCH_FAILED = "_Fetch Failed_"


def escape_mrkdwn(text: str) -> str:
    """Escape the three control characters Slack's mrkdwn parser reserves."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _quote_block(text: str) -> str:
    lines = text.splitlines() or [""]
    return "\n".join(f"> {line}" for line in lines)


def format_alert(
    sender: str,
    room: str,
    reason: str,
    body: str,
    link: str | None = None,
) -> str:
    """Build the alert text. All arguments must already be escaped."""
    lines = [
        "*:bell: PingPal Alert: Important Mention*",
        "",
        f"*From:* {sender}",
        f"*Channel:* {room}",
        "",
        f"*Reason:* {reason}",
        "",
        "*Original Message:*",
        _quote_block(body),
    ]
    if link:
        lines.extend(["", f"Open the channel: <{link}>"])
    return "\n".join(lines)


class Notifier:
    """Composes and sends the alert; every failure is logged, none raised."""

    def __init__(
        self,
        delivery: DeliveryChannel | None,
        directory: Directory | None,
        link_template: str = DEFAULT_LINK_TEMPLATE,
    ) -> None:
        self._delivery = delivery
        self._directory = directory
        self._link_template = link_template

    def _sender_name(self, message: InboundMessage) -> str:
        if self._directory is None:
            return UNKNOWN_SENDER
        try:
            sender = self._directory.get_sender(message.sender_ref)
        except Exception:
            logger.warning(
                "Could not fetch sender %s for notification of %s",
                message.sender_ref,
                message.message_id,
                exc_info=True,
            )
            return UNKNOWN_SENDER
        if sender is None:
            return escape_mrkdwn("Unknown User")
        return escape_mrkdwn(sender.display_name or sender.username or "Unknown User")

    def _room_context(self, message: InboundMessage) -> tuple[str, str | None]:
        """Return the escaped room name and the room's public handle, if any."""
        room_name = None
        fetch_error = False
        channel_ref: str | None = message.room_ref

        if self._directory is not None:
            try:
                room = self._directory.get_room(message.room_ref)
                if room is not None:
                    channel_ref = room.channel_ref or channel_ref
                    if room.display_name:
                        room_name = escape_mrkdwn(room.display_name)
            except Exception:
                logger.warning(
                    "Could not fetch room %s for notification context",
                    message.room_ref,
                    exc_info=True,
                )
                fetch_error = True

        if room_name is not None:
            return room_name, None

        if not channel_ref:
            return (ROOM_FETCH_ERROR if fetch_error else UNKNOWN_ROOM), None

        logger.info("Room name unknown for %s, asking delivery channel", channel_ref)
        try:
            info = self._delivery.lookup_channel(channel_ref)
        except Exception:
            logger.warning(
                "Failed to fetch channel info for %s from delivery channel",
                channel_ref,
                exc_info=True,
            )
            return ROOM_FETCH_FAILED, None

        if info is None or not info.title:
            logger.warning("Channel info for %s did not contain a title", channel_ref)
            return UNKNOWN_ROOM, None
        return escape_mrkdwn(info.title), info.public_handle

    def notify(self, target_recipient: str | None, message: InboundMessage, reason: str) -> DeliveryStatus:
        """Send one private alert about ``message`` to ``target_recipient``."""
        logger.info(
            "Preparing notification for %s in %s", message.message_id, message.room_ref
        )

        if self._delivery is None:
            logger.error(
                "No delivery channel configured; cannot notify about %s",
                message.message_id,
            )
            return DeliveryStatus.NO_CHANNEL

        if not target_recipient:
            logger.error(
                "Target recipient not configured; cannot notify about %s",
                message.message_id,
            )
            return DeliveryStatus.NO_RECIPIENT

        sender = self._sender_name(message)
        room, public_handle = self._room_context(message)

        try:
            link = None
            if public_handle:
                link = self._link_template.format(handle=quote(public_handle, safe=""))
            text = format_alert(
                sender=sender,
                room=room,
                reason=escape_mrkdwn(reason),
                body=escape_mrkdwn(message.text or ""),
                link=link,
            )
            self._delivery.send(target_recipient, text)
        except Exception:
            logger.error(
                "Failed to send notification to %s for message %s",
                target_recipient,
                message.message_id,
                exc_info=True,
            )
            return DeliveryStatus.FAILED

        logger.info(
            "Notification sent to %s for message %s", target_recipient, message.message_id
        )
        return DeliveryStatus.SENT
