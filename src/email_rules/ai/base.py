"""Base AI provider interface and shared prompt helpers."""

import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from email_rules.mail.messages import EmailMessage
    from email_rules.rules.models import Rule


CHOOSE_RULE_SYSTEM_PROMPT = """You are an email assistant that decides which of the user's rules applies to an email.

Each rule has a name and natural-language instructions describing the emails it applies to.
Pick the single rule whose instructions best describe the email.
If no rule clearly applies, answer with "none".

Be CONSERVATIVE: only choose a rule when the email plainly fits its instructions.

Respond with ONLY a valid JSON object (no markdown, no explanation):
{
    "rule_name": "exact rule name or none",
    "reason": "brief explanation"
}"""

NO_MATCH = "none"


class AIRuleChoice(BaseModel):
    """Result of asking an AI provider to choose among candidate rules."""

    rule_name: str | None = Field(
        default=None, description="Name of the chosen rule, or None for no match"
    )
    reason: str = Field(description="Brief explanation of the decision")


def format_email_for_prompt(email: "EmailMessage", max_body: int = 3000) -> str:
    return f"""
From: {email.sender}
To: {email.recipient}
Subject: {email.subject}
Date: {email.date or "unknown"}

Content:
{email.body[:max_body]}
"""


def format_rules_for_prompt(rules: list["Rule"]) -> str:
    return "\n".join(
        f"<rule>\n<name>{rule.display_name}</name>\n"
        f"<instructions>{rule.instructions or ''}</instructions>\n</rule>"
        for rule in rules
    )


def build_choose_rule_prompt(rules: list["Rule"], email: "EmailMessage") -> str:
    return f"""## RULES:
{format_rules_for_prompt(rules)}

## EMAIL:
{format_email_for_prompt(email)}

Which rule applies to this email? Respond with only a JSON object."""


def parse_json_response(response_text: str) -> dict:
    """Parse JSON from an AI response, handling markdown code blocks."""
    if "```json" in response_text:
        json_str = response_text.split("```json")[1].split("```")[0]
    elif "```" in response_text:
        json_str = response_text.split("```")[1].split("```")[0]
    else:
        json_str = response_text

    data = json.loads(json_str.strip())
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_rule_choice(response_text: str) -> AIRuleChoice:
    """Turn a raw AI response into an AIRuleChoice; unparseable means no match."""
    try:
        data = parse_json_response(response_text)
    except (json.JSONDecodeError, ValueError, IndexError) as e:
        return AIRuleChoice(reason=f"Failed to parse AI response: {e}")

    rule_name = data.get("rule_name")
    if not isinstance(rule_name, str) or rule_name.strip().lower() in ("", NO_MATCH):
        rule_name = None

    return AIRuleChoice(
        rule_name=rule_name.strip() if rule_name else None,
        reason=str(data.get("reason") or "No reasoning provided"),
    )


def resolve_choice(choice: AIRuleChoice, candidates: list["Rule"]) -> "Rule | None":
    """Map a choice back to one of the candidates; unknown names match nothing."""
    if not choice.rule_name:
        return None

    wanted = choice.rule_name.lower()
    for rule in candidates:
        if rule.display_name.lower() == wanted:
            return rule
    return None


class AIProvider(ABC):
    """Abstract base class for AI providers that adjudicate AI-conditioned rules."""

    @abstractmethod
    async def choose_rule(
        self,
        potential_matches: list["Rule"],
        email: "EmailMessage",
    ) -> AIRuleChoice:
        """
        Choose at most one rule among the candidates for an email.

        Args:
            potential_matches: Rules whose AI instructions still need judging.
            email: The email being evaluated.

        Returns:
            AIRuleChoice naming the winning rule, or with no rule name.
        """
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if the AI provider is available and properly configured."""
        ...
