"""In-memory rule store, built from YAML rule sets or directly in code."""

from email_rules.rules.models import Category, Group, Rule
from email_rules.storage.base import RuleStore


class InMemoryRuleStore(RuleStore):
    """Rule store holding everything in plain Python collections."""

    def __init__(
        self,
        rules: list[Rule] | None = None,
        groups: list[Group] | None = None,
        categories: list[Category] | None = None,
        sender_categories: dict[tuple[str, str], str] | None = None,
        applied_rules: dict[tuple[str, str], set[str]] | None = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            rules: Rules in priority order.
            groups: Groups with their items.
            categories: Known categories.
            sender_categories: Map of (user_id, sender address) to category id.
            applied_rules: Map of (user_id, thread_id) to rule ids already applied.
        """
        self.rules = list(rules or [])
        self.groups = list(groups or [])
        self.categories = {c.id: c for c in categories or []}
        self.sender_categories = {
            (user_id, sender.lower()): category_id
            for (user_id, sender), category_id in (sender_categories or {}).items()
        }
        self.applied_rules = dict(applied_rules or {})

    async def load_rules(self, user_id: str) -> list[Rule]:
        return [r for r in self.rules if r.user_id == user_id]

    async def load_groups_with_rules(self, user_id: str) -> list[Group]:
        return [g for g in self.groups if g.user_id == user_id]

    async def lookup_sender_category(self, user_id: str, sender: str) -> Category | None:
        category_id = self.sender_categories.get((user_id, sender.lower()))
        if category_id is None:
            return None
        return self.categories.get(category_id)

    async def previously_applied_rule_ids(self, user_id: str, thread_id: str) -> set[str]:
        return set(self.applied_rules.get((user_id, thread_id), set()))
