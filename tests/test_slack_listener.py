"""Tests for the Slack event listener / parser."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from pingpal.slack_listener import SlackListener

BOT_USER_ID = "U_BOT_123"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_event(**overrides) -> dict:
    """Return a minimal valid message event dict, with overrides."""
    base = {
        "type": "message",
        "channel": "C_CHAN_1",
        "user": "U_BOB",
        "text": "hey @alice",
        "ts": "1700000000.000001",
        "client_msg_id": "9f1c2d3e-0000-4000-8000-000000000001",
    }
    base.update(overrides)
    return base


@pytest.fixture()
def listener():
    """Create a ``SlackListener`` with Slack API calls fully mocked."""
    with (
        patch("pingpal.slack_listener.App") as MockApp,
        patch("pingpal.slack_listener.SocketModeHandler"),
        patch.dict(
            "os.environ",
            {"SLACK_BOT_TOKEN": "xoxb-fake", "SLACK_APP_TOKEN": "xapp-fake"},
        ),
    ):
        # Make auth_test return the bot user ID.
        mock_app_instance = MockApp.return_value
        mock_app_instance.client.auth_test.return_value = {
            "user_id": BOT_USER_ID,
        }
        sl = SlackListener()
    return sl


# ---------------------------------------------------------------------------
# Basic event parsing
# ---------------------------------------------------------------------------


class TestParseEvent:
    def test_basic_event(self, listener):
        msg = listener.parse_event(_make_event())

        assert msg is not None
        assert msg.message_id == "9f1c2d3e-0000-4000-8000-000000000001"
        assert msg.sender_ref == "U_BOB"
        assert msg.room_ref == "C_CHAN_1"
        assert msg.text == "hey @alice"
        assert msg.timestamp == datetime.fromtimestamp(1700000000.000001, tz=timezone.utc)

    def test_ts_used_when_no_client_msg_id(self, listener):
        event = _make_event()
        del event["client_msg_id"]

        msg = listener.parse_event(event)

        assert msg is not None
        assert msg.message_id == "1700000000.000001"

    def test_redelivered_event_parsed_again(self, listener):
        event = _make_event()

        first = listener.parse_event(event)
        second = listener.parse_event(dict(event))

        assert first == second

    def test_unparseable_ts_uses_now(self, listener):
        before = datetime.now(timezone.utc)

        msg = listener.parse_event(_make_event(ts="not-a-ts"))

        assert msg is not None
        assert msg.timestamp >= before


# ---------------------------------------------------------------------------
# Own messages and bots
# ---------------------------------------------------------------------------


class TestSenders:
    def test_own_message_dropped(self, listener):
        assert listener.parse_event(_make_event(user=BOT_USER_ID)) is None

    def test_bot_without_user_uses_bot_id(self, listener):
        event = _make_event(subtype="bot_message", bot_id="B_DEPLOY")
        del event["user"]

        msg = listener.parse_event(event)

        assert msg is not None
        assert msg.sender_ref == "B_DEPLOY"


# ---------------------------------------------------------------------------
# Dropped events
# ---------------------------------------------------------------------------


class TestUnparseableEvents:
    def test_missing_user_returns_none(self, listener):
        event = _make_event()
        del event["user"]

        assert listener.parse_event(event) is None

    def test_missing_channel_returns_none(self, listener):
        event = _make_event()
        del event["channel"]

        assert listener.parse_event(event) is None

    def test_missing_ts_and_client_msg_id_returns_none(self, listener):
        event = _make_event()
        del event["ts"]
        del event["client_msg_id"]

        assert listener.parse_event(event) is None


class TestIgnoredSubtypes:
    @pytest.mark.parametrize(
        "subtype",
        [
            "channel_join",
            "channel_leave",
            "channel_topic",
            "group_join",
            "message_changed",
            "message_deleted",
        ],
    )
    def test_irrelevant_subtype_returns_none(self, listener, subtype):
        assert listener.parse_event(_make_event(subtype=subtype)) is None

    def test_thread_broadcast_kept(self, listener):
        assert listener.parse_event(_make_event(subtype="thread_broadcast")) is not None


# ---------------------------------------------------------------------------
# Init and lifecycle
# ---------------------------------------------------------------------------


class TestSlackListenerInit:
    def test_bot_user_id_set(self, listener):
        assert listener.bot_user_id == BOT_USER_ID

    def test_app_property(self, listener):
        assert listener.app is not None

    def test_missing_env_vars_raises(self):
        with (
            patch("pingpal.slack_listener.App"),
            patch("pingpal.slack_listener.SocketModeHandler"),
            patch.dict("os.environ", {}, clear=True),
        ):
            with pytest.raises(KeyError):
                SlackListener()


class TestLifecycle:
    def test_start_delegates(self, listener):
        listener.start()
        listener._handler.start.assert_called_once()

    def test_close_delegates(self, listener):
        listener.close()
        listener._handler.close.assert_called_once()


class TestEdgeCases:
    def test_empty_text(self, listener):
        msg = listener.parse_event(_make_event(text=""))

        assert msg is not None
        assert msg.text == ""

    def test_missing_text_defaults_empty(self, listener):
        event = _make_event()
        del event["text"]

        msg = listener.parse_event(event)

        assert msg is not None
        assert msg.text == ""
