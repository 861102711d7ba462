"""AI providers that adjudicate AI-conditioned rules."""

from email_rules.ai.base import AIProvider, AIRuleChoice
from email_rules.ai.claude import ClaudeProvider
from email_rules.ai.ollama import OllamaProvider
from email_rules.ai.openai import OpenAIProvider

__all__ = [
    "AIProvider",
    "AIRuleChoice",
    "ClaudeProvider",
    "OpenAIProvider",
    "OllamaProvider",
]


def get_provider(name: str, settings) -> AIProvider:
    """Build the AI provider named in settings."""
    match name:
        case "claude":
            return ClaudeProvider(api_key=settings.anthropic_api_key, model=settings.claude_model)
        case "openai":
            return OpenAIProvider(api_key=settings.openai_api_key, model=settings.openai_model)
        case "ollama":
            return OllamaProvider(host=settings.ollama_host, model=settings.ollama_model)
        case _:
            raise ValueError(f"Unknown AI provider: {name}")
