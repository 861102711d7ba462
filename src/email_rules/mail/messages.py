"""Email message representation used during rule evaluation."""

import re
from dataclasses import dataclass
from datetime import datetime

_ANGLE_ADDRESS = re.compile(r"<([^<>]+)>")


def extract_email_address(header: str) -> str:
    """
    Extract the bare address from a header value.

    Handles both ``"Jane Doe <jane@example.com>"`` and plain
    ``jane@example.com`` forms.

    Args:
        header: Raw From/To header value.

    Returns:
        The bare address, or an empty string if none was found.
    """
    if not header:
        return ""

    match = _ANGLE_ADDRESS.search(header)
    address = match.group(1) if match else header
    return address.strip().strip('"')


@dataclass(frozen=True)
class EmailMessage:
    """An inbound email under evaluation. Never modified by the evaluator."""

    id: str
    thread_id: str
    sender: str
    recipient: str
    subject: str
    body: str
    date: datetime | None = None

    @property
    def sender_address(self) -> str:
        """Bare sender address, used for static, group and category matching."""
        return extract_email_address(self.sender)

    @property
    def recipient_address(self) -> str:
        return extract_email_address(self.recipient)

    @property
    def is_reply_in_thread(self) -> bool:
        """True when this message is not the first message of its thread."""
        return bool(self.thread_id) and self.thread_id != self.id
