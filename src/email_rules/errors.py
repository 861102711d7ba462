"""Error classes for rule evaluation and rule storage."""


class EmailRulesError(Exception):
    """Base class for all email-rules errors."""


class StoreError(EmailRulesError):
    """Raised when the rule/group/category store cannot be read."""


class CategoryLookupError(StoreError):
    """Raised when a sender's category cannot be determined.

    This is distinct from a sender having no category at all: an unknown
    category must fail the evaluation instead of changing INCLUDE/EXCLUDE
    outcomes.
    """

    def __init__(self, user_id: str, sender: str, reason: str | None = None) -> None:
        message = f"Could not look up category for {sender} (user {user_id})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.user_id = user_id
        self.sender = sender


class RuleSetError(EmailRulesError):
    """Raised when a rule-set file contains an invalid entry."""

    def __init__(self, message: str, entry: str | None = None) -> None:
        super().__init__(message)
        self.entry = entry
