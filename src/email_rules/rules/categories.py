"""Sender category filtering."""

from typing import TYPE_CHECKING

from email_rules.rules.models import CategoryFilterType

if TYPE_CHECKING:
    from email_rules.rules.models import Category, Rule

UNCATEGORIZED = "Uncategorized"


def has_category_filter(rule: "Rule") -> bool:
    return bool(rule.category_filter_type and rule.category_filters)


def matches_category(rule: "Rule", category: "Category | None") -> bool:
    """
    Check a sender's category against a rule's category filter.

    A rule without a filter is always satisfied. A sender with no category
    is never included, so EXCLUDE holds and INCLUDE fails.

    Args:
        rule: The rule whose filter is applied.
        category: The sender's assigned category, or None if unassigned.

    Returns:
        True if the filter is satisfied.
    """
    if not has_category_filter(rule):
        return True

    is_included = category is not None and any(
        category_id == category.id for category_id in rule.category_filters
    )

    if rule.category_filter_type == CategoryFilterType.EXCLUDE:
        return not is_included
    return is_included


def category_match_reason(category: "Category | None") -> str:
    name = category.name if category is not None else UNCATEGORIZED
    return f'Matched category: "{name}"'
