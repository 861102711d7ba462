"""SQLite store for rules, groups, sender categories and executed rules."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from email_rules.errors import CategoryLookupError, StoreError
from email_rules.rules.models import Category, Group, GroupItem, Rule
from email_rules.storage.base import RuleStore
from email_rules.storage.memory import InMemoryRuleStore

logger = logging.getLogger(__name__)


def _safe_json_loads(data: str | None, default: Any = None) -> Any:
    """Safely parse JSON, returning default on error."""
    if not data:
        return default
    try:
        return json.loads(data)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Failed to parse JSON in database: %s", e)
        return default


class RuleDatabase(RuleStore):
    """SQLite-backed rule store."""

    def __init__(self, db_path: Path) -> None:
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        """Create database tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.executescript("""
                -- Rules, ordered per user by position
                CREATE TABLE IF NOT EXISTS rules (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    enabled INTEGER NOT NULL DEFAULT 1,
                    conditional_operator TEXT NOT NULL DEFAULT 'AND',
                    from_pattern TEXT,
                    to_pattern TEXT,
                    subject_pattern TEXT,
                    body_pattern TEXT,
                    group_id TEXT,
                    category_filter_type TEXT,
                    category_filters TEXT,
                    instructions TEXT,
                    run_on_threads INTEGER NOT NULL DEFAULT 0
                );

                CREATE TABLE IF NOT EXISTS groups (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    rule_id TEXT
                );

                CREATE TABLE IF NOT EXISTS group_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    group_id TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
                    type TEXT NOT NULL,
                    value TEXT NOT NULL,
                    exclude INTEGER NOT NULL DEFAULT 0,
                    UNIQUE (group_id, type, value)
                );

                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT
                );

                -- Category assigned to each sender, per user
                CREATE TABLE IF NOT EXISTS sender_categories (
                    user_id TEXT NOT NULL,
                    sender TEXT NOT NULL,
                    category_id TEXT NOT NULL REFERENCES categories(id),
                    PRIMARY KEY (user_id, sender)
                );

                -- Rules applied to messages, used for thread continuity
                CREATE TABLE IF NOT EXISTS executed_rules (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    thread_id TEXT NOT NULL,
                    message_id TEXT NOT NULL,
                    rule_id TEXT NOT NULL,
                    reason TEXT,
                    executed_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_rules_user
                    ON rules(user_id, position);
                CREATE INDEX IF NOT EXISTS idx_groups_user
                    ON groups(user_id);
                CREATE INDEX IF NOT EXISTS idx_executed_thread
                    ON executed_rules(user_id, thread_id);
            """)

    # === Rule Store ===

    async def load_rules(self, user_id: str) -> list[Rule]:
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM rules WHERE user_id = ? ORDER BY position, id",
                    (user_id,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to load rules for {user_id}: {e}") from e

        return [self._row_to_rule(row) for row in rows]

    async def load_groups_with_rules(self, user_id: str) -> list[Group]:
        try:
            with self._connection() as conn:
                group_rows = conn.execute(
                    "SELECT * FROM groups WHERE user_id = ? ORDER BY id",
                    (user_id,),
                ).fetchall()
                item_rows = conn.execute(
                    """
                    SELECT gi.* FROM group_items gi
                    JOIN groups g ON g.id = gi.group_id
                    WHERE g.user_id = ?
                    ORDER BY gi.id
                    """,
                    (user_id,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to load groups for {user_id}: {e}") from e

        items: dict[str, list[GroupItem]] = {}
        for row in item_rows:
            items.setdefault(row["group_id"], []).append(
                GroupItem(type=row["type"], value=row["value"], exclude=bool(row["exclude"]))
            )

        return [
            Group(
                id=row["id"],
                user_id=row["user_id"],
                name=row["name"],
                rule_id=row["rule_id"],
                items=items.get(row["id"], []),
            )
            for row in group_rows
        ]

    async def lookup_sender_category(self, user_id: str, sender: str) -> Category | None:
        try:
            with self._connection() as conn:
                row = conn.execute(
                    """
                    SELECT c.* FROM sender_categories sc
                    JOIN categories c ON c.id = sc.category_id
                    WHERE sc.user_id = ? AND sc.sender = ?
                    """,
                    (user_id, sender.lower()),
                ).fetchone()
        except sqlite3.Error as e:
            raise CategoryLookupError(user_id, sender, str(e)) from e

        if row is None:
            return None
        return Category(id=row["id"], name=row["name"], description=row["description"])

    async def previously_applied_rule_ids(self, user_id: str, thread_id: str) -> set[str]:
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    """
                    SELECT DISTINCT rule_id FROM executed_rules
                    WHERE user_id = ? AND thread_id = ?
                    """,
                    (user_id, thread_id),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to load executed rules for thread {thread_id}: {e}") from e

        return {row["rule_id"] for row in rows}

    # === Writes ===

    def save_rule(self, rule: Rule, position: int | None = None) -> None:
        """Insert or replace a rule; new rules go last unless a position is given."""
        with self._connection() as conn:
            if position is None:
                existing = conn.execute(
                    "SELECT position FROM rules WHERE id = ?", (rule.id,)
                ).fetchone()
                if existing:
                    position = existing["position"]
                else:
                    row = conn.execute(
                        "SELECT COALESCE(MAX(position), -1) + 1 AS next FROM rules WHERE user_id = ?",
                        (rule.user_id,),
                    ).fetchone()
                    position = row["next"]

            conn.execute(
                """
                INSERT OR REPLACE INTO rules
                (id, user_id, position, name, enabled, conditional_operator,
                 from_pattern, to_pattern, subject_pattern, body_pattern, group_id,
                 category_filter_type, category_filters, instructions, run_on_threads)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rule.id,
                    rule.user_id,
                    position,
                    rule.name,
                    int(rule.enabled),
                    rule.conditional_operator.value,
                    rule.from_,
                    rule.to,
                    rule.subject,
                    rule.body,
                    rule.group_id,
                    rule.category_filter_type.value if rule.category_filter_type else None,
                    json.dumps(rule.category_filters),
                    rule.instructions,
                    int(rule.run_on_threads),
                ),
            )

    def save_group(self, group: Group) -> None:
        """Insert or replace a group together with its items."""
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO groups (id, user_id, name, rule_id) VALUES (?, ?, ?, ?)",
                (group.id, group.user_id, group.name, group.rule_id),
            )
            conn.execute("DELETE FROM group_items WHERE group_id = ?", (group.id,))
            conn.executemany(
                "INSERT OR REPLACE INTO group_items (group_id, type, value, exclude) VALUES (?, ?, ?, ?)",
                [
                    (group.id, item.type.value, item.value, int(item.exclude))
                    for item in group.items
                ],
            )

    def save_category(self, category: Category) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO categories (id, name, description) VALUES (?, ?, ?)",
                (category.id, category.name, category.description),
            )

    def assign_sender_category(self, user_id: str, sender: str, category_id: str) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sender_categories (user_id, sender, category_id) VALUES (?, ?, ?)",
                (user_id, sender.lower(), category_id),
            )

    def record_executed_rule(
        self,
        user_id: str,
        thread_id: str,
        message_id: str,
        rule_id: str,
        reason: str | None = None,
    ) -> None:
        """Record that a rule was applied to a message."""
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO executed_rules
                (user_id, thread_id, message_id, rule_id, reason, executed_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, thread_id, message_id, rule_id, reason, datetime.now().isoformat()),
            )

    async def import_store(self, store: InMemoryRuleStore, user_id: str) -> int:
        """
        Copy one user's rules, groups and sender categories from another store.

        Returns:
            Number of rules imported.
        """
        rules = await store.load_rules(user_id)
        for position, rule in enumerate(rules):
            self.save_rule(rule, position=position)

        for group in await store.load_groups_with_rules(user_id):
            self.save_group(group)

        for category in store.categories.values():
            self.save_category(category)

        for (owner, sender), category_id in store.sender_categories.items():
            if owner == user_id:
                self.assign_sender_category(owner, sender, category_id)

        return len(rules)

    @staticmethod
    def _row_to_rule(row: sqlite3.Row) -> Rule:
        return Rule(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            enabled=bool(row["enabled"]),
            conditional_operator=row["conditional_operator"],
            from_=row["from_pattern"],
            to=row["to_pattern"],
            subject=row["subject_pattern"],
            body=row["body_pattern"],
            group_id=row["group_id"],
            category_filter_type=row["category_filter_type"],
            category_filters=_safe_json_loads(row["category_filters"], []),
            instructions=row["instructions"],
            run_on_threads=bool(row["run_on_threads"]),
        )
