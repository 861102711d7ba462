"""Rule evaluation for email processing."""

from email_rules.rules.conditions import ConditionType, get_condition_types, matches_static
from email_rules.rules.engine import (
    EvaluationCache,
    EvaluationResult,
    EvaluationStatus,
    RuleEngine,
    find_potential_matching_rules,
)
from email_rules.rules.models import (
    Category,
    CategoryFilterType,
    Group,
    GroupItem,
    GroupItemType,
    LogicalOperator,
    Rule,
    RuleMatch,
)

__all__ = [
    "Category",
    "CategoryFilterType",
    "ConditionType",
    "EvaluationCache",
    "EvaluationResult",
    "EvaluationStatus",
    "Group",
    "GroupItem",
    "GroupItemType",
    "LogicalOperator",
    "Rule",
    "RuleEngine",
    "RuleMatch",
    "find_potential_matching_rules",
    "get_condition_types",
    "matches_static",
]
