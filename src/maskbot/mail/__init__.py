"""Masked email provider."""

from maskbot.mail.fastmail import FastmailClient, site_origin
from maskbot.mail.protocol import MaskingEmail

__all__ = ["FastmailClient", "MaskingEmail", "site_origin"]
