"""Ollama local LLM provider implementation."""

from typing import TYPE_CHECKING

from email_rules.ai.base import (
    CHOOSE_RULE_SYSTEM_PROMPT,
    AIProvider,
    AIRuleChoice,
    build_choose_rule_prompt,
    parse_rule_choice,
)

if TYPE_CHECKING:
    import ollama

    from email_rules.mail.messages import EmailMessage
    from email_rules.rules.models import Rule


class OllamaProvider(AIProvider):
    """Ollama local LLM provider."""

    def __init__(
        self,
        model: str = "llama3.2",
        host: str = "http://localhost:11434",
    ) -> None:
        """
        Initialize the Ollama provider.

        Args:
            model: Model name to use (e.g., llama3.2, mistral, phi3).
            host: Ollama server URL.
        """
        self.model = model
        self.host = host
        self._client: "ollama.AsyncClient | None" = None

    @property
    def client(self) -> "ollama.AsyncClient":
        """Lazy-load the Ollama client."""
        if self._client is None:
            import ollama

            self._client = ollama.AsyncClient(host=self.host)
        return self._client

    async def choose_rule(
        self,
        potential_matches: list["Rule"],
        email: "EmailMessage",
    ) -> AIRuleChoice:
        """Choose among candidate rules using a local Ollama model."""
        prompt = f"{CHOOSE_RULE_SYSTEM_PROMPT}\n\n{build_choose_rule_prompt(potential_matches, email)}"

        response = await self.client.generate(
            model=self.model,
            prompt=prompt,
            format="json",
            options={"temperature": 0.1},
        )

        return parse_rule_choice(response.get("response", "{}"))

    async def is_available(self) -> bool:
        """Check if Ollama is available and the model is loaded."""
        try:
            models = await self.client.list()
            model_names = [m.get("model", m.get("name", "")).split(":")[0] for m in models.get("models", [])]
            return self.model.split(":")[0] in model_names
        except Exception:
            return False
