"""Anthropic Claude AI provider implementation."""

import os
from typing import TYPE_CHECKING

from email_rules.ai.base import (
    CHOOSE_RULE_SYSTEM_PROMPT,
    AIProvider,
    AIRuleChoice,
    build_choose_rule_prompt,
    parse_rule_choice,
)

if TYPE_CHECKING:
    import anthropic

    from email_rules.mail.messages import EmailMessage
    from email_rules.rules.models import Rule


class ClaudeProvider(AIProvider):
    """Anthropic Claude AI provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-haiku-4-5-20251001",
    ) -> None:
        """
        Initialize the Claude provider.

        Args:
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            model: Model to use for rule selection.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model
        self._client: "anthropic.AsyncAnthropic | None" = None

    @property
    def client(self) -> "anthropic.AsyncAnthropic":
        """Lazy-load the Anthropic client."""
        if self._client is None:
            import anthropic

            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def choose_rule(
        self,
        potential_matches: list["Rule"],
        email: "EmailMessage",
    ) -> AIRuleChoice:
        """Choose among candidate rules using Claude."""
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=1024,
            system=CHOOSE_RULE_SYSTEM_PROMPT,
            messages=[
                {"role": "user", "content": build_choose_rule_prompt(potential_matches, email)}
            ],
        )

        return parse_rule_choice(message.content[0].text)

    async def is_available(self) -> bool:
        """Check if Claude API is available."""
        if not self.api_key:
            return False

        try:
            await self.client.messages.create(
                model=self.model,
                max_tokens=10,
                messages=[{"role": "user", "content": "test"}],
            )
            return True
        except Exception:
            return False
