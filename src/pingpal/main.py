"""Entry point and event wiring for pingpal."""

from __future__ import annotations

import argparse
import logging
import signal
import sys

from pingpal.config import Config, load_config
from pingpal.dedup import DuplicateChecker
from pingpal.directory import SlackDirectory
from pingpal.llm_classifier import MentionClassifier
from pingpal.models import PipelineOutcome
from pingpal.notifier import Notifier
from pingpal.ollama import OllamaClient
from pingpal.pipeline import MentionPipeline, PipelineSettings
from pingpal.recorder import OutcomeRecorder
from pingpal.slack_delivery import SlackDelivery
from pingpal.slack_listener import SlackListener
from pingpal.store import SQLiteMentionStore, StoreUnavailable

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pingpal",
        description="Watch Slack for mentions of one user and DM them the urgent ones.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="Path to config YAML (default: ~/.config/pingpal/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    return parser.parse_args(argv)


def build_pipeline(config: Config, *, agent_id: str, store, client) -> MentionPipeline:
    """Assemble the mention pipeline around the Slack client and store."""
    directory = SlackDirectory(client)
    inference = OllamaClient(config.ollama_url, config.model, config.ollama_timeout)
    return MentionPipeline(
        settings=PipelineSettings(
            target_handle=config.target_handle,
            target_recipient=config.target_recipient,
        ),
        dedup=DuplicateChecker(store, agent_id, window=config.dedup_window),
        classifier=MentionClassifier(inference, directory, config.prompt_name),
        recorder=OutcomeRecorder(store, agent_id),
        notifier=Notifier(SlackDelivery(client), directory, config.link_template),
    )


def handle_message(
    event: dict, *, listener: SlackListener, pipeline: MentionPipeline
) -> PipelineOutcome | None:
    """Process a single Slack message event through the full pipeline."""
    msg = listener.parse_event(event)
    if msg is None:
        return None

    outcome = pipeline.handle(msg)
    logger.debug("Message %s in %s -> %s", msg.message_id, msg.room_ref, outcome.value)
    return outcome


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        level=getattr(logging, args.log_level),
    )

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        logger.error("Config file not found: %s", exc)
        sys.exit(1)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    logger.info("Configuration loaded successfully")

    store = SQLiteMentionStore(config.db_path)
    try:
        store.init_db()
    except StoreUnavailable as exc:
        logger.error("Cannot open mention store: %s", exc)
        sys.exit(1)

    listener = SlackListener()
    pipeline = build_pipeline(
        config,
        agent_id=listener.bot_user_id,
        store=store,
        client=listener.app.client,
    )

    # Register the message handler on the Slack app.
    @listener.app.event("message")
    def _on_message(event):
        handle_message(event, listener=listener, pipeline=pipeline)

    # Graceful shutdown on SIGTERM / SIGINT.
    def _shutdown(signum, _frame):
        sig_name = signal.Signals(signum).name
        logger.info("Received %s — shutting down", sig_name)
        listener.close()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    logger.info("Starting pingpal for handle %r", config.target_handle)
    listener.start()
