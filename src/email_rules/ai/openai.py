"""OpenAI GPT provider implementation."""

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
    import openai

    from email_rules.mail.messages import EmailMessage
    from email_rules.rules.models import Rule


class OpenAIProvider(AIProvider):
    """OpenAI GPT provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
    ) -> None:
        """
        Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            model: Model to use for rule selection.
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self._client: "openai.AsyncOpenAI | None" = None

    @property
    def client(self) -> "openai.AsyncOpenAI":
        """Lazy-load the OpenAI client."""
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def choose_rule(
        self,
        potential_matches: list["Rule"],
        email: "EmailMessage",
    ) -> AIRuleChoice:
        """Choose among candidate rules using GPT."""
        response = await self.client.chat.completions.create(
            model=self.model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": CHOOSE_RULE_SYSTEM_PROMPT},
                {"role": "user", "content": build_choose_rule_prompt(potential_matches, email)},
            ],
        )

        return parse_rule_choice(response.choices[0].message.content or "{}")

    async def is_available(self) -> bool:
        """Check if OpenAI API is available."""
        if not self.api_key:
            return False

        try:
            await self.client.models.list()
            return True
        except Exception:
            return False
