"""maskbot: Fastmail masked emails from Telegram."""

__version__ = "0.3.0"
