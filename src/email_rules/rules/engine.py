"""Rule engine: deterministic rule evaluation with deferred AI adjudication."""

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from email_rules.ai.base import resolve_choice
from email_rules.logging import get_user_logger
from email_rules.rules.categories import category_match_reason, matches_category
from email_rules.rules.conditions import (
    STATIC_MATCH_REASON,
    ConditionType,
    get_condition_types,
    matches_static,
)
from email_rules.rules.groups import match_rule_group
from email_rules.rules.models import Category, Group, LogicalOperator, Rule, RuleMatch

if TYPE_CHECKING:
    from email_rules.ai.base import AIProvider
    from email_rules.mail.messages import EmailMessage
    from email_rules.storage.base import RuleStore

logger = logging.getLogger(__name__)


class EvaluationStatus(str, Enum):
    """Terminal states of one deterministic evaluation run."""

    RESOLVED = "resolved"
    DEFERRED = "deferred"
    EXHAUSTED = "exhausted"


class RuleDecision(str, Enum):
    """Per-rule outcome of the condition combinator."""

    SKIP = "skip"
    DEFER = "defer"
    MATCH = "match"


class EvaluationResult(BaseModel):
    """Result of the deterministic pass over a rule list."""

    status: EvaluationStatus
    match: Rule | None = None
    reason: str | None = None
    potential_matches: list[Rule] = Field(default_factory=list)

    @classmethod
    def resolved(cls, rule: Rule, reason: str) -> "EvaluationResult":
        return cls(status=EvaluationStatus.RESOLVED, match=rule, reason=reason)

    @classmethod
    def deferred(cls, candidates: list[Rule]) -> "EvaluationResult":
        if not candidates:
            return cls(status=EvaluationStatus.EXHAUSTED)
        return cls(status=EvaluationStatus.DEFERRED, potential_matches=list(candidates))


class EvaluationCache:
    """Per-run memo of the store lookups needed by group and category conditions.

    One cache serves one message for one user. Each lookup runs at most once,
    and only when a rule first needs it.
    """

    def __init__(self, store: "RuleStore", user_id: str, email: "EmailMessage") -> None:
        self.store = store
        self.user_id = user_id
        self.email = email
        self._groups: list[Group] | None = None
        self._category_loaded = False
        self._category: Category | None = None
        self._applied_rule_ids: set[str] | None = None

    async def get_groups(self) -> list[Group]:
        if self._groups is None:
            self._groups = await self.store.load_groups_with_rules(self.user_id)
        return self._groups

    async def get_sender_category(self) -> Category | None:
        # Errors propagate; an unknown category is not the same as no category.
        if not self._category_loaded:
            self._category = await self.store.lookup_sender_category(
                self.user_id, self.email.sender_address
            )
            self._category_loaded = True
        return self._category

    async def get_applied_rule_ids(self) -> set[str]:
        if self._applied_rule_ids is None:
            self._applied_rule_ids = await self.store.previously_applied_rule_ids(
                self.user_id, self.email.thread_id
            )
        return self._applied_rule_ids


async def evaluate_rule(
    rule: Rule,
    email: "EmailMessage",
    cache: EvaluationCache,
) -> tuple[RuleDecision, str | None]:
    """
    Combine a rule's declared conditions into a single decision.

    Deterministic kinds are evaluated in the order STATIC, GROUP, CATEGORY.
    A satisfied kind resolves the rule under OR, or under AND once nothing
    else is outstanding. A failed kind rejects the rule under AND. A rule
    with AI instructions that survives is deferred.

    Args:
        rule: The rule to evaluate.
        email: The email under evaluation.
        cache: Lazily loaded groups and sender category for this run.

    Returns:
        The decision and, for MATCH, the reason string.
    """
    condition_types = get_condition_types(rule)
    unmatched = set(condition_types)
    is_or = rule.conditional_operator == LogicalOperator.OR

    def resolves() -> bool:
        return is_or or not unmatched

    if ConditionType.STATIC in condition_types:
        if matches_static(rule, email):
            unmatched.discard(ConditionType.STATIC)
            if resolves():
                return RuleDecision.MATCH, STATIC_MATCH_REASON
        elif not is_or:
            return RuleDecision.SKIP, None

    if ConditionType.GROUP in condition_types:
        group_match = match_rule_group(await cache.get_groups(), rule, email)
        if group_match.excluded:
            logger.debug("Rule %s excluded by its group for %s", rule.id, email.id)
            return RuleDecision.SKIP, None
        if group_match.item is not None:
            unmatched.discard(ConditionType.GROUP)
            if resolves():
                return RuleDecision.MATCH, group_match.reason
        elif not is_or:
            return RuleDecision.SKIP, None

    if ConditionType.CATEGORY in condition_types:
        category = await cache.get_sender_category()
        if matches_category(rule, category):
            unmatched.discard(ConditionType.CATEGORY)
            if resolves():
                return RuleDecision.MATCH, category_match_reason(category)
        elif not is_or:
            return RuleDecision.SKIP, None

    if ConditionType.AI in condition_types:
        return RuleDecision.DEFER, None

    return RuleDecision.SKIP, None


async def find_potential_matching_rules(
    rules: list[Rule],
    email: "EmailMessage",
    cache: EvaluationCache,
    *,
    is_thread: bool = False,
) -> EvaluationResult:
    """
    Scan rules in priority order for a definitive match.

    Stops at the first rule that matches without AI. Rules that still need
    their AI condition judged are collected instead.

    Args:
        rules: Rules in priority order.
        email: The email under evaluation.
        cache: Store lookups memoized for this run.
        is_thread: Whether the email is a reply within an existing thread.

    Returns:
        RESOLVED with the matching rule, DEFERRED with the candidates, or
        EXHAUSTED if nothing can match.
    """
    potential_matches: list[Rule] = []

    for rule in rules:
        if not rule.enabled:
            continue

        if is_thread and not rule.run_on_threads:
            # Keep applying a rule that already handled this thread
            if rule.id not in await cache.get_applied_rule_ids():
                continue

        decision, reason = await evaluate_rule(rule, email, cache)

        if decision == RuleDecision.MATCH:
            return EvaluationResult.resolved(rule, reason or STATIC_MATCH_REASON)
        if decision == RuleDecision.DEFER:
            potential_matches.append(rule)

    return EvaluationResult.deferred(potential_matches)


class RuleEngine:
    """Engine choosing the rule that governs each email."""

    def __init__(
        self,
        store: "RuleStore",
        ai_provider: "AIProvider | None" = None,
    ) -> None:
        """
        Initialize the rule engine.

        Args:
            store: Source of rules, groups and sender categories.
            ai_provider: AI provider used to adjudicate AI-conditioned rules.
        """
        self.store = store
        self.ai_provider = ai_provider

    async def evaluate(
        self,
        email: "EmailMessage",
        user_id: str,
        *,
        is_thread: bool | None = None,
    ) -> EvaluationResult:
        """Run the deterministic pass only."""
        if is_thread is None:
            is_thread = email.is_reply_in_thread

        rules = await self.store.load_rules(user_id)
        cache = EvaluationCache(self.store, user_id, email)
        return await find_potential_matching_rules(
            rules, email, cache, is_thread=is_thread
        )

    async def choose_rule(
        self,
        email: "EmailMessage",
        user_id: str,
        *,
        is_thread: bool | None = None,
    ) -> RuleMatch | None:
        """
        Choose the single rule that governs an email.

        Args:
            email: The email to evaluate.
            user_id: Owner of the rules.
            is_thread: Override thread detection; defaults to the email's own.

        Returns:
            RuleMatch if a rule applies, None otherwise.

        Raises:
            CategoryLookupError: If a needed sender category could not be read.
        """
        log = get_user_logger(user_id)
        result = await self.evaluate(email, user_id, is_thread=is_thread)

        if result.status == EvaluationStatus.RESOLVED and result.match is not None:
            log.info(
                "Message %s matched rule %s: %s",
                email.id,
                result.match.display_name,
                result.reason,
            )
            return RuleMatch(rule=result.match, reason=result.reason or "")

        if result.status == EvaluationStatus.EXHAUSTED:
            log.info("Message %s matched no rule", email.id)
            return None

        return await self._choose_with_ai(email, result.potential_matches, log)

    async def _choose_with_ai(
        self,
        email: "EmailMessage",
        candidates: list[Rule],
        log: logging.Logger,
    ) -> RuleMatch | None:
        """Ask the AI provider to pick among deferred candidates."""
        if self.ai_provider is None:
            log.warning(
                "Message %s has %d AI candidate rules but no AI provider is configured",
                email.id,
                len(candidates),
            )
            return None

        try:
            choice = await self.ai_provider.choose_rule(candidates, email)
        except Exception:
            log.exception("AI rule selection failed for message %s", email.id)
            return None

        rule = resolve_choice(choice, candidates)
        if rule is None:
            if choice.rule_name:
                log.warning(
                    "AI chose unknown rule %r for message %s", choice.rule_name, email.id
                )
            log.info("Message %s matched no rule (AI: %s)", email.id, choice.reason)
            return None

        log.info(
            "Message %s matched rule %s via AI: %s",
            email.id,
            rule.display_name,
            choice.reason,
        )
        return RuleMatch(rule=rule, reason=choice.reason)

    async def classify_all(
        self,
        emails: list["EmailMessage"],
        user_id: str,
    ) -> list[tuple["EmailMessage", RuleMatch | Exception | None]]:
        """
        Choose rules for a batch of emails concurrently.

        A message whose evaluation fails (for example on a category lookup
        error) is reported with its exception; the other messages still get
        their result.

        Args:
            emails: Emails to evaluate, each with its own lookup cache.
            user_id: Owner of the rules.

        Returns:
            List of (email, match or exception) tuples in input order.
        """
        results = await asyncio.gather(
            *(self.choose_rule(email, user_id) for email in emails),
            return_exceptions=True,
        )

        log = get_user_logger(user_id)
        outcomes: list[tuple["EmailMessage", RuleMatch | Exception | None]] = []
        for email, result in zip(emails, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                log.error("Rule selection failed for message %s: %s", email.id, result)
            outcomes.append((email, result))
        return outcomes
