"""Email message representation."""

from email_rules.mail.messages import EmailMessage, extract_email_address

__all__ = [
    "EmailMessage",
    "extract_email_address",
]
