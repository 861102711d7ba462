"""Condition kinds and static pattern matching."""

import re
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from email_rules.mail.messages import EmailMessage
    from email_rules.rules.models import Rule

STATIC_MATCH_REASON = "Matched static conditions"

# Alternatives in from/to fields: "@a.com|@b.com", "@a.com, @b.com", "@a.com OR @b.com"
_EMAIL_PATTERN_SEPARATOR = re.compile(r"\s+or\s+|[|,]", re.IGNORECASE)


class ConditionType(str, Enum):
    """Kinds of conditions a rule can declare, in evaluation order."""

    STATIC = "STATIC"
    GROUP = "GROUP"
    CATEGORY = "CATEGORY"
    AI = "AI"


def has_static_conditions(rule: "Rule") -> bool:
    return any((rule.from_, rule.to, rule.subject, rule.body))


def is_ai_rule(rule: "Rule") -> bool:
    return bool(rule.instructions and rule.instructions.strip())


def get_condition_types(rule: "Rule") -> frozenset[ConditionType]:
    """
    Get the condition kinds a rule declares.

    Args:
        rule: The rule to inspect.

    Returns:
        The set of declared kinds. Empty if the rule declares nothing.
    """
    types = set()
    if has_static_conditions(rule):
        types.add(ConditionType.STATIC)
    if rule.group_id:
        types.add(ConditionType.GROUP)
    if rule.category_filter_type and rule.category_filters:
        types.add(ConditionType.CATEGORY)
    if is_ai_rule(rule):
        types.add(ConditionType.AI)
    return frozenset(types)


def split_email_patterns(pattern: str) -> list[str]:
    """Split a from/to pattern into its alternatives."""
    return [p.strip() for p in _EMAIL_PATTERN_SEPARATOR.split(pattern) if p.strip()]


def wildcard_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Compile a ``*`` wildcard pattern.

    Every character other than ``*`` is literal; ``*`` matches any run of
    characters, line breaks included. Matching is case-sensitive. The
    result always compiles, so regex syntax in user patterns is plain text.
    """
    escaped = "".join(".*" if ch == "*" else re.escape(ch) for ch in pattern)
    return re.compile(escaped, re.DOTALL)


def matches_pattern(pattern: str, *candidates: str) -> bool:
    """
    Check a single static pattern against one or more field values.

    A pattern containing ``*`` must match a whole candidate. Any other
    pattern (including ``@domain`` forms) is a substring test.
    """
    if "*" not in pattern:
        return any(pattern in candidate for candidate in candidates if candidate)

    regex = wildcard_to_regex(pattern)
    return any(regex.fullmatch(candidate) for candidate in candidates if candidate)


def _matches_address_field(pattern: str, header: str, address: str) -> bool:
    return any(
        matches_pattern(alternative, header, address)
        for alternative in split_email_patterns(pattern)
    )


def matches_static(rule: "Rule", email: "EmailMessage") -> bool:
    """
    Check if an email satisfies a rule's static conditions.

    Every declared field must match. A rule with no static fields never
    matches.

    Args:
        rule: The rule whose from/to/subject/body patterns are checked.
        email: The email to check.

    Returns:
        True if all declared static fields match.
    """
    if not has_static_conditions(rule):
        return False

    if rule.from_ and not _matches_address_field(
        rule.from_, email.sender, email.sender_address
    ):
        return False

    if rule.to and not _matches_address_field(
        rule.to, email.recipient, email.recipient_address
    ):
        return False

    if rule.subject and not matches_pattern(rule.subject, email.subject):
        return False

    if rule.body and not matches_pattern(rule.body, email.body):
        return False

    return True
