"""Configuration loading and validation for pingpal."""

import logging
import os
from dataclasses import dataclass

import yaml

from pingpal.dedup import DEFAULT_WINDOW
from pingpal.notifier import DEFAULT_LINK_TEMPLATE

logger = logging.getLogger(__name__)

KNOWN_KEYS = {
    "target_handle",
    "target_name",
    "target_recipient",
    "model",
    "ollama_url",
    "ollama_timeout",
    "db_path",
    "dedup_window",
    "link_template",
}

# Used only when the key is absent from the config file.
ENV_FALLBACKS = {
    "target_handle": "PINGPAL_TARGET_HANDLE",
    "target_recipient": "PINGPAL_TARGET_RECIPIENT",
}


@dataclass
class Config:
    target_handle: str = ""  # e.g. the target's Slack user ID
    target_name: str = ""  # how the prompt refers to the target; defaults to the handle
    target_recipient: str = ""  # user or channel ID that receives alerts
    model: str = "llama3.2:3b"
    ollama_url: str = "http://localhost:11434"
    ollama_timeout: int = 10
    db_path: str = "~/.local/share/pingpal/pingpal.db"
    dedup_window: int = DEFAULT_WINDOW
    link_template: str = DEFAULT_LINK_TEMPLATE

    @property
    def prompt_name(self) -> str:
        return self.target_name or self.target_handle


def _validate_config(config: Config) -> None:
    """Validate config values, raising ValueError on invalid fields."""
    for name in ("target_handle", "target_name", "target_recipient"):
        value = getattr(config, name)
        if not isinstance(value, str):
            raise ValueError(f"{name} must be a string, got {type(value).__name__}")

    # bool is an int subclass but never a sensible window
    if not isinstance(config.dedup_window, int) or isinstance(config.dedup_window, bool):
        raise ValueError(
            f"dedup_window must be an integer, got {type(config.dedup_window).__name__}"
        )
    if config.dedup_window < 1:
        raise ValueError(f"dedup_window must be positive, got {config.dedup_window}")

    if not isinstance(config.ollama_timeout, (int, float)):
        raise ValueError(
            f"ollama_timeout must be a number, got {type(config.ollama_timeout).__name__}"
        )
    if config.ollama_timeout <= 0:
        raise ValueError(
            f"ollama_timeout must be positive, got {config.ollama_timeout}"
        )

    if "{handle}" not in config.link_template:
        raise ValueError("link_template must contain a '{handle}' placeholder")

    if not config.target_handle:
        logger.warning("No target_handle configured; mentions will never be detected")
    if not config.target_recipient:
        logger.warning("No target_recipient configured; alerts will not be sent")


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML file.

    Config path resolution order:
    1. Explicit path argument
    2. PINGPAL_CONFIG_PATH environment variable
    3. ~/.config/pingpal/config.yaml
    """
    if path is None:
        path = os.environ.get("PINGPAL_CONFIG_PATH")
    if path is None:
        path = os.path.expanduser("~/.config/pingpal/config.yaml")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a YAML mapping, got {type(raw).__name__}")

    # Warn about unknown keys
    for key in raw:
        if key not in KNOWN_KEYS:
            logger.warning("Unknown config key '%s' — ignoring", key)

    config = Config()

    for key, env_var in ENV_FALLBACKS.items():
        if key not in raw and os.environ.get(env_var):
            setattr(config, key, os.environ[env_var])

    # Simple scalar fields
    for key in ("target_handle", "target_name", "target_recipient"):
        if key in raw:
            setattr(config, key, "" if raw[key] is None else raw[key])
    if "model" in raw:
        config.model = str(raw["model"])
    if "ollama_url" in raw:
        config.ollama_url = str(raw["ollama_url"])
    if "ollama_timeout" in raw:
        config.ollama_timeout = raw["ollama_timeout"]
    if "db_path" in raw:
        config.db_path = str(raw["db_path"])
    if "dedup_window" in raw:
        config.dedup_window = raw["dedup_window"]
    if "link_template" in raw:
        config.link_template = str(raw["link_template"])

    _validate_config(config)

    return config
