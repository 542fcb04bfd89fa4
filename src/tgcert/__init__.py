"""tgcert: TLS certificates through a Telegram bot and DNS-01 challenges."""

__version__ = "0.1.0"
