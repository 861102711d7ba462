"""Group membership matching."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from email_rules.rules.models import Group, GroupItem, GroupItemType

if TYPE_CHECKING:
    from email_rules.mail.messages import EmailMessage
    from email_rules.rules.models import Rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupMatch:
    """Outcome of checking a message against the group a rule references."""

    group: Group | None = None
    item: GroupItem | None = None
    excluded: bool = False

    @property
    def reason(self) -> str | None:
        if self.item is None:
            return None
        return f'Matched group item: "{self.item.type.value}: {self.item.value}"'


def _item_matches(item: GroupItem, email: "EmailMessage") -> bool:
    value = item.value.strip().lower()
    if not value:
        return False

    match item.type:
        case GroupItemType.FROM:
            address = email.sender_address.lower()
            if value.startswith("@"):
                return value in address
            return value == address

        case GroupItemType.SUBJECT:
            return value in email.subject.lower()

        case _:
            return False


def find_matching_group_item(group: Group, email: "EmailMessage") -> GroupMatch:
    """
    Find the first item of a group that matches an email.

    Excluded items take precedence: if any excluded item matches, the
    result is marked excluded and carries no item.

    Args:
        group: The group to search.
        email: The email to check.

    Returns:
        GroupMatch describing the matching item, an exclusion, or nothing.
    """
    if any(item.exclude and _item_matches(item, email) for item in group.items):
        return GroupMatch(group=group, excluded=True)

    for item in group.items:
        if not item.exclude and _item_matches(item, email):
            return GroupMatch(group=group, item=item)

    return GroupMatch()


def get_rule_group(groups: list[Group], rule: "Rule") -> Group | None:
    """Get the group referenced by a rule; only that group is eligible."""
    for group in groups:
        if group.id == rule.group_id:
            return group
    return None


def match_rule_group(
    groups: list[Group], rule: "Rule", email: "EmailMessage"
) -> GroupMatch:
    """Check an email against the single group a rule references."""
    group = get_rule_group(groups, rule)
    if group is None:
        logger.debug("Rule %s references missing group %s", rule.id, rule.group_id)
        return GroupMatch()
    return find_matching_group_item(group, email)


def matches_group(
    groups: list[Group], rule: "Rule", email: "EmailMessage"
) -> GroupItem | None:
    """
    Get the item of the rule's own group that matches an email.

    Items in other groups never count, even when their values are identical.

    Returns:
        The first matching item, or None (including when the group is
        missing or an excluded item matched).
    """
    return match_rule_group(groups, rule, email).item
