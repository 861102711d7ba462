"""Rule, group and category models consumed by the evaluator."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LogicalOperator(str, Enum):
    """How a rule's condition kinds are combined."""

    AND = "AND"
    OR = "OR"


class CategoryFilterType(str, Enum):
    """Whether a rule's category filter selects or rejects the listed categories."""

    INCLUDE = "INCLUDE"
    EXCLUDE = "EXCLUDE"


class GroupItemType(str, Enum):
    """What a group item is matched against."""

    FROM = "FROM"
    SUBJECT = "SUBJECT"


class GroupItem(BaseModel):
    """A single sender or subject pattern inside a group."""

    model_config = ConfigDict(frozen=True)

    type: GroupItemType
    value: str = Field(min_length=1, description="Literal value to match")
    exclude: bool = Field(
        default=False,
        description="A matching excluded item removes the rule from consideration",
    )


class Group(BaseModel):
    """A named collection of group items owned by one user."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    name: str
    rule_id: str | None = Field(default=None, description="Rule that owns this group")
    items: list[GroupItem] = Field(default_factory=list)


class Category(BaseModel):
    """A label assigned to a sender address."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None


class Rule(BaseModel):
    """A user-defined automation rule.

    A rule may declare any combination of static patterns, a group reference,
    a category filter and AI instructions. Declaring none means the rule can
    never match.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    user_id: str
    name: str = Field(default="", description="Human-readable rule name")
    enabled: bool = Field(default=True, description="Whether the rule is active")
    conditional_operator: LogicalOperator = Field(default=LogicalOperator.AND)

    # Static conditions
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    subject: str | None = None
    body: str | None = None

    # Group condition
    group_id: str | None = None

    # Category condition
    category_filter_type: CategoryFilterType | None = None
    category_filters: list[str] = Field(
        default_factory=list, description="Category ids the filter refers to"
    )

    # AI condition
    instructions: str | None = Field(
        default=None, description="Natural-language condition judged by the AI"
    )

    run_on_threads: bool = Field(
        default=False, description="Apply to replies within a thread, not only new threads"
    )

    @property
    def display_name(self) -> str:
        return self.name or self.id


class RuleMatch(BaseModel):
    """The rule that governs a message and why."""

    rule: Rule
    reason: str
