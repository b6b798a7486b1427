"""Mention detection for the configured target user."""


def detect_mention(message_text: str | None, target_handle: str | None) -> bool:
    """Return True when ``@<target_handle>`` occurs in the message text.

    The match is a case-insensitive substring test. Without a configured
    handle nothing is ever detected.

    On Slack an autocompleted mention arrives as ``<@U123ABC>``, so a handle
    configured as the target's user ID matches it, while a plain ``@alice``
    typed by hand matches the handle ``alice``.
    """
    if not target_handle:
        return False
    text = message_text or ""
    return f"@{target_handle}".lower() in text.lower()
