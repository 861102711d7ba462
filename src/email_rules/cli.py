"""Command-line interface for email-rules."""

import asyncio
import uuid
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from email_rules.config import DEFAULT_USER, Settings, load_rule_set
from email_rules.errors import EmailRulesError

app = typer.Typer(
    name="email-rules",
    help="Choose which automation rule governs an email",
    no_args_is_help=True,
)
console = Console()

# Sub-command groups
rules_app = typer.Typer(help="Inspect configured rules")
db_app = typer.Typer(help="Manage the SQLite rule store")

app.add_typer(rules_app, name="rules")
app.add_typer(db_app, name="db")


EXAMPLE_RULES = """# Email Rules Configuration
# Rules are evaluated top to bottom; the first definitive match wins.
# Rules with instructions are judged by the AI only when no other rule matched.

categories:
  - id: newsletter
    name: Newsletter
  - id: receipts
    name: Receipts

senders:
  news@example.com: newsletter

groups:
  - id: vip
    name: VIP senders
    rule_id: vip-rule
    items:
      - type: FROM
        value: boss@example.com
      - type: FROM
        value: "@family.example"

rules:
  - id: vip-rule
    name: VIP
    group_id: vip

  - id: receipts-rule
    name: Receipts
    conditional_operator: OR
    subject: "*receipt*"
    category_filter_type: INCLUDE
    category_filters: [receipts]

  - id: newsletters-rule
    name: Newsletters
    category_filter_type: INCLUDE
    category_filters: [newsletter]

  - id: gmail-rule
    name: Personal Gmail
    from: "*@gmail.com"
    instructions: "Personal emails from friends, not marketing"
"""


def get_settings() -> Settings:
    """Load application settings."""
    return Settings()


def _setup_logging(settings: Settings) -> None:
    from email_rules.logging import setup_logging

    setup_logging(
        log_dir=settings.log_dir,
        log_level=settings.log_level,
        max_bytes=settings.log_rotation_size_mb * 1024 * 1024,
        backup_count=settings.log_backup_count,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from email_rules import __version__

    console.print(f"email-rules v{__version__}")


@app.command()
def init(
    config_dir: Annotated[
        Path | None,
        typer.Option("--config-dir", "-c", help="Configuration directory"),
    ] = None,
) -> None:
    """Initialize configuration directory with an example rule set."""
    settings = get_settings()
    if config_dir:
        settings.config_dir = config_dir

    settings.ensure_config_dir()

    if settings.rules_path.exists():
        console.print(f"[yellow]Exists[/yellow] {settings.rules_path}")
        return

    settings.rules_path.write_text(EXAMPLE_RULES)
    console.print(f"[green]Created[/green] {settings.rules_path}")


# === Rules Commands ===


@rules_app.command("list")
def rules_list(
    rules_file: Annotated[
        Path | None, typer.Option("--rules", "-r", help="Rule-set YAML file")
    ] = None,
) -> None:
    """List configured rules in priority order."""
    from email_rules.rules.conditions import get_condition_types

    settings = get_settings()
    path = rules_file or settings.rules_path

    try:
        store = load_rule_set(path)
    except EmailRulesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not store.rules:
        console.print("[yellow]No rules configured[/yellow]")
        console.print("Run [bold]email-rules init[/bold] to create example rules")
        return

    table = Table(title="Rules")
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", style="cyan")
    table.add_column("Operator", width=8)
    table.add_column("Conditions", style="green")
    table.add_column("Threads", width=7)
    table.add_column("Enabled", width=7)

    for position, rule in enumerate(store.rules, start=1):
        kinds = get_condition_types(rule)
        table.add_row(
            str(position),
            rule.display_name,
            rule.conditional_operator.value,
            ", ".join(sorted(k.value for k in kinds)) or "-",
            "✓" if rule.run_on_threads else "",
            "✓" if rule.enabled else "✗",
        )

    console.print(table)


# === Matching ===


@app.command()
def match(
    sender: Annotated[str, typer.Option("--from", "-f", help="Sender address")],
    subject: Annotated[str, typer.Option("--subject", "-s")] = "",
    recipient: Annotated[str, typer.Option("--to", "-t")] = "",
    body: Annotated[str, typer.Option("--body", "-b")] = "",
    thread: Annotated[
        bool, typer.Option("--thread", help="Treat the message as a reply in a thread")
    ] = False,
    rules_file: Annotated[
        Path | None, typer.Option("--rules", "-r", help="Rule-set YAML file")
    ] = None,
    use_db: Annotated[
        bool, typer.Option("--db", help="Read rules from the SQLite store")
    ] = False,
    user: Annotated[str, typer.Option("--user", "-u")] = DEFAULT_USER,
    provider: Annotated[
        str | None, typer.Option("--provider", "-p", help="claude, openai, ollama or none")
    ] = None,
) -> None:
    """Show which rule would govern a message."""
    from email_rules.ai import get_provider
    from email_rules.mail.messages import EmailMessage
    from email_rules.rules.engine import RuleEngine

    settings = get_settings()
    _setup_logging(settings)

    try:
        if use_db:
            from email_rules.storage.database import RuleDatabase

            store = RuleDatabase(settings.database_path)
        else:
            store = load_rule_set(rules_file or settings.rules_path, user_id=user)
    except EmailRulesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    provider_name = provider or settings.ai_provider
    ai = None
    if provider_name != "none":
        try:
            ai = get_provider(provider_name, settings)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    message_id = uuid.uuid4().hex
    email = EmailMessage(
        id=message_id,
        thread_id=message_id,
        sender=sender,
        recipient=recipient,
        subject=subject,
        body=body,
    )

    engine = RuleEngine(store, ai_provider=ai)

    try:
        result = asyncio.run(engine.choose_rule(email, user, is_thread=thread))
    except EmailRulesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if result is None:
        console.print("[yellow]No rule matched[/yellow]")
        return

    console.print(f"[green]Matched:[/green] [bold]{result.rule.display_name}[/bold]")
    console.print(f"  Reason: {result.reason}")


# === Database Commands ===


@db_app.command("import")
def db_import(
    rules_file: Annotated[
        Path | None, typer.Option("--rules", "-r", help="Rule-set YAML file")
    ] = None,
    user: Annotated[str, typer.Option("--user", "-u")] = DEFAULT_USER,
) -> None:
    """Load a YAML rule set into the SQLite store."""
    from email_rules.storage.database import RuleDatabase

    settings = get_settings()
    settings.ensure_config_dir()

    try:
        store = load_rule_set(rules_file or settings.rules_path, user_id=user)
    except EmailRulesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    db = RuleDatabase(settings.database_path)
    count = asyncio.run(db.import_store(store, user))
    console.print(f"[green]Imported[/green] {count} rules into {settings.database_path}")
