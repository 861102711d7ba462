"""Store interface for rules, groups and sender categories."""

from abc import ABC, abstractmethod

from email_rules.rules.models import Category, Group, Rule


class RuleStore(ABC):
    """Abstract source of a user's rules, groups and sender categories."""

    @abstractmethod
    async def load_rules(self, user_id: str) -> list[Rule]:
        """
        Load a user's rules in priority order.

        Args:
            user_id: Owner of the rules.

        Returns:
            Rules ordered so that the first definitive match wins.
        """
        ...

    @abstractmethod
    async def load_groups_with_rules(self, user_id: str) -> list[Group]:
        """Load every group of a user, including its items and owning rule id."""
        ...

    @abstractmethod
    async def lookup_sender_category(self, user_id: str, sender: str) -> Category | None:
        """
        Look up the category assigned to a sender.

        Args:
            user_id: Owner of the category assignment.
            sender: Bare sender address.

        Returns:
            The assigned category, or None if the sender has none.

        Raises:
            CategoryLookupError: If the assignment cannot be determined.
        """
        ...

    async def previously_applied_rule_ids(self, user_id: str, thread_id: str) -> set[str]:
        """Ids of rules already applied to earlier messages of a thread."""
        return set()
