"""Tests for the entry point and event wiring."""

import signal
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from pingpal.config import Config
from pingpal.main import _parse_args, build_pipeline, handle_message, main
from pingpal.models import InboundMessage, PipelineOutcome
from pingpal.pipeline import MentionPipeline
from pingpal.store import SQLiteMentionStore, StoreUnavailable


def make_msg(**overrides) -> InboundMessage:
    """Create an InboundMessage with sensible defaults, overriding specific fields."""
    defaults = dict(
        message_id="m-1",
        sender_ref="U_BOB",
        room_ref="C_OPS",
        text="hey @alice",
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )
    defaults.update(overrides)
    return InboundMessage(**defaults)


def make_config(**overrides) -> Config:
    """Create a Config with defaults, overriding specific fields."""
    config = Config()
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


# ── Argument parsing ──────────────────────────────────────────────


class TestParseArgs:
    def test_defaults(self):
        args = _parse_args([])
        assert args.config is None
        assert args.log_level == "INFO"

    def test_config_flag(self):
        args = _parse_args(["--config", "/tmp/my.yaml"])
        assert args.config == "/tmp/my.yaml"

    def test_log_level_flag(self):
        args = _parse_args(["--log-level", "DEBUG"])
        assert args.log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            _parse_args(["--log-level", "TRACE"])


# ── handle_message ────────────────────────────────────────────────


class TestHandleMessage:
    def test_unparseable_event_returns_early(self):
        listener = MagicMock()
        listener.parse_event.return_value = None
        pipeline = MagicMock()

        assert handle_message({}, listener=listener, pipeline=pipeline) is None
        pipeline.handle.assert_not_called()

    def test_parsed_message_goes_through_pipeline(self):
        listener = MagicMock()
        msg = make_msg()
        listener.parse_event.return_value = msg
        pipeline = MagicMock()
        pipeline.handle.return_value = PipelineOutcome.NOTIFIED

        outcome = handle_message({"ts": "1"}, listener=listener, pipeline=pipeline)

        listener.parse_event.assert_called_once_with({"ts": "1"})
        pipeline.handle.assert_called_once_with(msg)
        assert outcome is PipelineOutcome.NOTIFIED


# ── build_pipeline ────────────────────────────────────────────────


class TestBuildPipeline:
    def test_wires_slack_ollama_and_store(self, tmp_path, mocker):
        store = SQLiteMentionStore(str(tmp_path / "pingpal.db"))
        store.init_db()
        client = MagicMock()
        client.users_info.return_value = {"user": {"profile": {"display_name": "Bob"}}}
        client.conversations_info.return_value = {"channel": {"id": "C_OPS", "name": "ops"}}
        mock_resp = mocker.Mock()
        mock_resp.json.return_value = {
            "message": {"content": '{"important": true, "reason": "needs a reviewer"}'}
        }
        mock_post = mocker.patch("pingpal.ollama.requests.post", return_value=mock_resp)
        config = make_config(target_handle="alice", target_recipient="U0ALICE")

        pipeline = build_pipeline(config, agent_id="U_BOT", store=store, client=client)

        assert isinstance(pipeline, MentionPipeline)
        assert pipeline.handle(make_msg()) is PipelineOutcome.NOTIFIED
        assert mock_post.call_args[0][0] == "http://localhost:11434/api/chat"
        client.chat_postMessage.assert_called_once()
        kwargs = client.chat_postMessage.call_args[1]
        assert kwargs["channel"] == "U0ALICE"
        assert "needs a reviewer" in kwargs["text"]
        assert "*From:* Bob" in kwargs["text"]
        assert store.query("U_BOT", "C_OPS", 10)[0].message_id == "m-1"


# ── Signal handling ───────────────────────────────────────────────


def _mock_listener(mock_listener_cls):
    mock_listener = MagicMock()
    mock_listener.bot_user_id = "U_BOT"
    mock_listener.app = MagicMock()
    mock_listener_cls.return_value = mock_listener
    return mock_listener


class TestSignalHandling:
    """Verify that SIGTERM triggers graceful shutdown."""

    @patch("pingpal.main.SQLiteMentionStore")
    @patch("pingpal.main.SlackListener")
    @patch("pingpal.main.load_config")
    def test_sigterm_closes_listener(self, mock_load_config, mock_listener_cls, _mock_store):
        mock_load_config.return_value = make_config()
        mock_listener = _mock_listener(mock_listener_cls)

        # Make start() send SIGTERM to itself so the handler fires.
        import os

        def send_sigterm():
            os.kill(os.getpid(), signal.SIGTERM)

        mock_listener.start.side_effect = send_sigterm

        main(["--config", "/dev/null"])

        mock_listener.close.assert_called_once()


# ── main() startup ────────────────────────────────────────────────


class TestMainStartup:
    @patch("pingpal.main.SQLiteMentionStore")
    @patch("pingpal.main.SlackListener")
    @patch("pingpal.main.load_config")
    def test_main_loads_config_and_starts(self, mock_load_config, mock_listener_cls, mock_store_cls):
        mock_load_config.return_value = make_config(db_path="/tmp/pingpal-test.db")
        mock_listener = _mock_listener(mock_listener_cls)

        main(["--config", "/dev/null"])

        mock_load_config.assert_called_once_with("/dev/null")
        mock_store_cls.assert_called_once_with("/tmp/pingpal-test.db")
        mock_store_cls.return_value.init_db.assert_called_once()
        mock_listener.app.event.assert_called_once_with("message")
        mock_listener.start.assert_called_once()

    @patch("pingpal.main.load_config")
    def test_main_exits_on_missing_config(self, mock_load_config):
        mock_load_config.side_effect = FileNotFoundError("/no/such/file")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", "/no/such/file"])
        assert exc_info.value.code == 1

    @patch("pingpal.main.load_config")
    def test_main_exits_on_invalid_config(self, mock_load_config):
        mock_load_config.side_effect = ValueError("bad window")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", "/dev/null"])
        assert exc_info.value.code == 1

    @patch("pingpal.main.SlackListener")
    @patch("pingpal.main.SQLiteMentionStore")
    @patch("pingpal.main.load_config")
    def test_main_exits_when_store_unavailable(self, mock_load_config, mock_store_cls, mock_listener_cls):
        mock_load_config.return_value = make_config()
        mock_store_cls.return_value.init_db.side_effect = StoreUnavailable("read-only fs")

        with pytest.raises(SystemExit) as exc_info:
            main(["--config", "/dev/null"])

        assert exc_info.value.code == 1
        mock_listener_cls.assert_not_called()
