"""LLM-based importance classifier for mentions."""

import json
import logging
import re
from collections.abc import Mapping

from pingpal.models import (
    Classification,
    InboundMessage,
    ParsedVerdict,
    UnparseableResponse,
)
from pingpal.ports import Directory, InferenceClient

logger = logging.getLogger(__name__)

VERDICT_SCHEMA = {
    "type": "object",
    "properties": {
        "important": {
            "type": "boolean",
            "description": "Is this message important/actionable for the mentioned user?",
        },
        "reason": {
            "type": "string",
            "description": "Brief explanation for importance classification.",
        },
    },
    "required": ["important", "reason"],
}

FAILED_REASON = "LLM analysis failed."
UNKNOWN_SENDER = "Unknown User"
UNKNOWN_ROOM = "Unknown Group"

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def build_prompt(text: str, sender: str, room: str, target: str) -> str:
    """Format the instruction sent to the model for one mention."""
    return (
        f"You are an assistant helping '{target}' filter Slack channel messages. "
        f"Analyze the following message sent by '{sender}' in the channel '{room}'. "
        f"Determine if this message requires '{target}'s urgent attention or action. "
        "Consider keywords like 'urgent', 'action needed', 'deadline', 'blocker', "
        f"'ping', 'help', direct questions to '{target}', or tasks assigned.\n"
        "\n"
        "Respond ONLY with a JSON object with exactly two fields:\n"
        f'  "important": true if the message requires urgent attention or action by {target}, false otherwise\n'
        '  "reason": a brief justification for the classification (1-2 sentences)\n'
        "\n"
        "Message Text:\n"
        f'"{text}"'
    )


def _json_object_from_text(text: str) -> dict | None:
    """Pull a JSON object out of model text, tolerating fences and chatter."""
    candidates = [text.strip()]
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None


def parse_verdict(raw: object) -> ParsedVerdict | UnparseableResponse:
    """Validate a raw model reply into a verdict.

    Accepts either an already-decoded mapping or a string holding JSON.
    ``important`` must be a real boolean and ``reason`` a string.
    """
    if isinstance(raw, str):
        candidate = _json_object_from_text(raw)
        if candidate is None:
            return UnparseableResponse(error="response text holds no JSON object", raw=raw)
    elif isinstance(raw, Mapping):
        candidate = raw
    else:
        return UnparseableResponse(
            error=f"unexpected response type {type(raw).__name__}", raw=raw
        )

    important = candidate.get("important")
    reason = candidate.get("reason")
    if not isinstance(important, bool):
        return UnparseableResponse(error="'important' missing or not a boolean", raw=raw)
    if not isinstance(reason, str):
        return UnparseableResponse(error="'reason' missing or not a string", raw=raw)

    return ParsedVerdict(classification=Classification(important=important, reason=reason))


def _fallback(context: str) -> Classification:
    """Return the safe not-important verdict used whenever analysis fails."""
    logger.warning("LLM classifier fallback: %s", context)
    return Classification(important=False, reason=FAILED_REASON)


class MentionClassifier:
    """Decides whether a mention needs the target user's urgent attention."""

    def __init__(
        self,
        inference: InferenceClient,
        directory: Directory | None,
        target_name: str,
    ) -> None:
        self._inference = inference
        self._directory = directory
        self._target_name = target_name

    def _sender_name(self, sender_ref: str) -> str:
        if self._directory is None:
            return UNKNOWN_SENDER
        try:
            sender = self._directory.get_sender(sender_ref)
        except Exception:
            logger.warning("Could not fetch sender %s for prompt", sender_ref, exc_info=True)
            return UNKNOWN_SENDER
        if sender is None:
            return UNKNOWN_SENDER
        return sender.display_name or sender.username or UNKNOWN_SENDER

    def _room_name(self, room_ref: str) -> str:
        if self._directory is None:
            return UNKNOWN_ROOM
        try:
            room = self._directory.get_room(room_ref)
        except Exception:
            logger.warning("Could not fetch room %s for prompt", room_ref, exc_info=True)
            return UNKNOWN_ROOM
        if room is None:
            return UNKNOWN_ROOM
        return room.display_name or UNKNOWN_ROOM

    def classify(self, message: InboundMessage) -> Classification:
        """Classify a mention; never raises.

        Any inference error or malformed reply yields the safe default
        ``Classification(important=False, reason="LLM analysis failed.")``.
        """
        prompt = build_prompt(
            message.text or "",
            self._sender_name(message.sender_ref),
            self._room_name(message.room_ref),
            self._target_name,
        )
        logger.debug("Calling LLM for %s: %s", message.message_id, prompt)

        try:
            raw = self._inference.infer(prompt, VERDICT_SCHEMA)
        except Exception as exc:
            return _fallback(f"inference failed: {exc}")

        result = parse_verdict(raw)
        if isinstance(result, UnparseableResponse):
            return _fallback(f"unexpected response: {result.error} ({result.raw!r})")

        logger.info(
            "LLM analysis for %s: important=%s reason=%s",
            message.message_id,
            result.classification.important,
            result.classification.reason,
        )
        return result.classification
