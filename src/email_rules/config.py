"""Application configuration and rule-set loading."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from email_rules.errors import RuleSetError
from email_rules.rules.models import Category, Group, Rule
from email_rules.storage.memory import InMemoryRuleStore

DEFAULT_USER = "default"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_RULES_",
        env_file=[
            ".env",  # Project-level defaults (lower priority)
            Path.home() / ".config" / "email-rules" / ".env",  # User config (higher priority)
        ],
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # AI Provider settings
    ai_provider: Literal["claude", "openai", "ollama"] = Field(
        default="claude", description="AI provider used to adjudicate AI rules"
    )

    # Claude settings
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    claude_model: str = Field(
        default="claude-haiku-4-5-20251001", description="Claude model to use"
    )

    # OpenAI settings
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o", description="OpenAI model to use")

    # Ollama settings
    ollama_host: str = Field(
        default="http://localhost:11434", description="Ollama server URL"
    )
    ollama_model: str = Field(default="llama3.2", description="Ollama model to use")

    # Paths
    config_dir: Path = Field(
        default=Path.home() / ".config" / "email-rules",
        description="Configuration directory",
    )
    rules_file: str = Field(default="rules.yaml", description="Rule-set filename")
    database_file: str = Field(default="rules.db", description="SQLite store filename")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Path = Field(
        default=Path.home() / ".local" / "state" / "email-rules",
        description="Directory for log files (per-user logs written here)",
    )
    log_rotation_size_mb: int = Field(
        default=5, ge=1, description="Max size per log file in MB before rotation"
    )
    log_backup_count: int = Field(
        default=3, ge=0, description="Number of rotated log files to keep"
    )

    @property
    def rules_path(self) -> Path:
        """Full path to the rule-set file."""
        return self.config_dir / self.rules_file

    @property
    def database_path(self) -> Path:
        """Path to the SQLite rule store."""
        return self.config_dir / self.database_file

    def ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        return {}

    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuleSetError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise RuleSetError(f"Expected a mapping at the top of {path}")
    return data


def load_rules(path: Path) -> list[dict]:
    """Load raw rule definitions from a YAML file."""
    return _read_yaml(path).get("rules") or []


def _parse_entries(model, entries: list[dict], section: str, user_id: str) -> list:
    parsed = []
    for index, entry in enumerate(entries):
        label = f"{section}[{index}]"
        if not isinstance(entry, dict):
            raise RuleSetError(f"{label} must be a mapping", entry=label)
        entry = {"user_id": user_id, **entry}
        try:
            parsed.append(model.model_validate(entry))
        except ValidationError as e:
            raise RuleSetError(f"Invalid entry {label}: {e}", entry=label) from e
    return parsed


def load_rule_set(path: Path, user_id: str = DEFAULT_USER) -> InMemoryRuleStore:
    """
    Build an in-memory store from a YAML rule set.

    The document may contain ``rules``, ``groups``, ``categories`` and
    ``senders`` (a mapping of sender address to category id). Entries
    without a ``user_id`` belong to ``user_id``.

    Args:
        path: YAML file to read.
        user_id: Default owner for entries.

    Returns:
        InMemoryRuleStore with rules in file order.

    Raises:
        RuleSetError: If any entry is invalid.
    """
    data = _read_yaml(path)

    rules = _parse_entries(Rule, data.get("rules") or [], "rules", user_id)
    groups = _parse_entries(Group, data.get("groups") or [], "groups", user_id)

    categories = []
    for index, entry in enumerate(data.get("categories") or []):
        try:
            categories.append(Category.model_validate(entry))
        except ValidationError as e:
            label = f"categories[{index}]"
            raise RuleSetError(f"Invalid entry {label}: {e}", entry=label) from e

    senders = data.get("senders") or {}
    if not isinstance(senders, dict):
        raise RuleSetError("senders must map sender addresses to category ids", entry="senders")

    known = {c.id for c in categories}
    for sender, category_id in senders.items():
        if category_id not in known:
            raise RuleSetError(
                f"Sender {sender} refers to unknown category {category_id}",
                entry=f"senders.{sender}",
            )

    return InMemoryRuleStore(
        rules=rules,
        groups=groups,
        categories=categories,
        sender_categories={(user_id, sender): cid for sender, cid in senders.items()},
    )
