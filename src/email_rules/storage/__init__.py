"""Stores for rules, groups and sender categories."""

from email_rules.storage.base import RuleStore
from email_rules.storage.database import RuleDatabase
from email_rules.storage.memory import InMemoryRuleStore

__all__ = [
    "InMemoryRuleStore",
    "RuleDatabase",
    "RuleStore",
]
