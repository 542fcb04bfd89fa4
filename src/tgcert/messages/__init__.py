"""Chat message rendering (Jinja2 templates + inline keyboards)."""

from tgcert.messages.formatter import Button, Keyboard, MessageFormatter, Reply

__all__ = ["Button", "Keyboard", "MessageFormatter", "Reply"]
