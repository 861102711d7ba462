"""Pytest fixtures for email-rules tests."""

from datetime import datetime

import pytest

from email_rules.logging import reset_logging, setup_logging
from email_rules.mail.messages import EmailMessage
from email_rules.rules.models import Category, Group, GroupItem, GroupItemType


@pytest.fixture(autouse=True)
def isolated_logging(tmp_path):
    """Write log files to a temporary directory."""
    setup_logging(log_dir=tmp_path / "logs")
    yield
    reset_logging()


@pytest.fixture
def sample_email() -> EmailMessage:
    """Create a sample email for testing."""
    return EmailMessage(
        id="msg-1",
        thread_id="msg-1",
        sender="test@example.com",
        recipient="me@inbox.com",
        subject="Test Subject",
        body="This is a test email body.",
        date=datetime.now(),
    )


@pytest.fixture
def gmail_email() -> EmailMessage:
    """Create an email from a Gmail sender."""
    return EmailMessage(
        id="msg-2",
        thread_id="msg-2",
        sender="Test User <test@gmail.com>",
        recipient="me@inbox.com",
        subject="This is important: lunch?",
        body="Want to grab lunch tomorrow?",
        date=datetime.now(),
    )


@pytest.fixture
def reply_email() -> EmailMessage:
    """Create an email that is a reply within an existing thread."""
    return EmailMessage(
        id="msg-3",
        thread_id="thread-1",
        sender="test@example.com",
        recipient="me@inbox.com",
        subject="Re: Test Subject",
        body="Replying to your message.",
        date=datetime.now(),
    )


@pytest.fixture
def newsletter_category() -> Category:
    return Category(id="cat-newsletter", name="Newsletter")


@pytest.fixture
def receipts_category() -> Category:
    return Category(id="cat-receipts", name="Receipts")


@pytest.fixture
def two_groups() -> list[Group]:
    """Two groups holding the same sender, each owned by a different rule."""
    item = GroupItem(type=GroupItemType.FROM, value="test@example.com")
    return [
        Group(id="group1", user_id="user-1", name="Group 1", rule_id="rule1", items=[item]),
        Group(id="group2", user_id="user-1", name="Group 2", rule_id="rule2", items=[item]),
    ]
