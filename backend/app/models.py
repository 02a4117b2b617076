from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ApiModel(BaseModel):
    """Snake_case in Python, camelCase on the wire; input accepts both."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
    )


class PartialUpdate(ApiModel):
    # Fields that may be omitted from a patch but never set to null.
    non_nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "PartialUpdate":
        for name in sorted(self.model_fields_set & self.non_nullable):
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CampaignType(str, Enum):
    email = "email"
    social = "social"
    content = "content"


class CampaignStatus(str, Enum):
    draft = "draft"
    active = "active"
    paused = "paused"
    completed = "completed"


class ContactStatus(str, Enum):
    new = "new"
    contacted = "contacted"
    qualified = "qualified"
    converted = "converted"
    nurturing = "nurturing"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class TaskStatus(str, Enum):
    todo = "todo"
    in_progress = "in_progress"
    completed = "completed"


class TaskCategory(str, Enum):
    campaign = "campaign"
    crm = "crm"
    content = "content"


class LeadTemperature(str, Enum):
    hot = "hot"
    warm = "warm"
    cold = "cold"


class CampaignMetrics(ApiModel):
    leads: int = Field(default=0, ge=0)
    conversions: int = Field(default=0, ge=0)
    roi: float = 0


def _metrics_or_empty(value: Any) -> Any:
    return {} if value is None else value


# Users


class RegisterRequest(ApiModel):
    username: str = Field(min_length=3, max_length=60)
    password: str = Field(min_length=6, max_length=72)
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=254)
    role: Optional[str] = Field(default=None, max_length=40)

    @field_validator("password")
    @classmethod
    def fits_bcrypt_input(cls, value: str) -> str:
        # bcrypt only reads the first 72 bytes.
        if len(value.encode("utf-8")) > 72:
            raise ValueError("password must be at most 72 bytes")
        return value


class LoginRequest(ApiModel):
    username: str = Field(min_length=1, max_length=60)
    password: str = Field(min_length=1, max_length=72)


class UserRecord(ApiModel):
    id: str
    username: str
    password_hash: str
    name: str
    email: str
    role: str = "founder"


class UserPublic(ApiModel):
    id: str
    username: str
    name: str
    email: str
    role: str

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserPublic":
        return cls(
            id=record.id,
            username=record.username,
            name=record.name,
            email=record.email,
            role=record.role,
        )


# Campaigns


class CampaignCreate(ApiModel):
    name: str = Field(min_length=1, max_length=200)
    type: CampaignType
    status: CampaignStatus = CampaignStatus.draft
    description: Optional[str] = None
    target_audience: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    metrics: CampaignMetrics = Field(default_factory=CampaignMetrics)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def blank_dates_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("metrics", mode="before")
    @classmethod
    def default_metrics(cls, value: Any) -> Any:
        return _metrics_or_empty(value)


class CampaignUpdate(PartialUpdate):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"name", "type", "status", "metrics"})

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[CampaignType] = None
    status: Optional[CampaignStatus] = None
    description: Optional[str] = None
    target_audience: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    metrics: Optional[CampaignMetrics] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def blank_dates_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class CampaignRecord(ApiModel):
    id: str
    name: str
    type: CampaignType
    status: CampaignStatus = CampaignStatus.draft
    description: Optional[str] = None
    target_audience: Optional[str] = None
    budget: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    metrics: CampaignMetrics = Field(default_factory=CampaignMetrics)
    created_at: datetime
    updated_at: datetime
    user_id: str

    @field_validator("metrics", mode="before")
    @classmethod
    def default_metrics(cls, value: Any) -> Any:
        return _metrics_or_empty(value)


# Contacts


class ContactCreate(ApiModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=254)
    phone: Optional[str] = Field(default=None, max_length=40)
    company: Optional[str] = Field(default=None, max_length=200)
    position: Optional[str] = Field(default=None, max_length=200)
    lead_score: int = Field(default=0, ge=0, le=100)
    status: ContactStatus = ContactStatus.new
    source: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, value: Any) -> Any:
        return [] if value is None else value


class ContactUpdate(PartialUpdate):
    non_nullable: ClassVar[frozenset[str]] = frozenset(
        {"first_name", "last_name", "email", "lead_score", "status", "tags"}
    )

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    email: Optional[str] = Field(default=None, min_length=3, max_length=254)
    phone: Optional[str] = Field(default=None, max_length=40)
    company: Optional[str] = Field(default=None, max_length=200)
    position: Optional[str] = Field(default=None, max_length=200)
    lead_score: Optional[int] = Field(default=None, ge=0, le=100)
    status: Optional[ContactStatus] = None
    source: Optional[str] = None
    tags: Optional[list[str]] = None
    notes: Optional[str] = None


class ContactRecord(ApiModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    lead_score: int = Field(default=0, ge=0, le=100)
    status: ContactStatus = ContactStatus.new
    source: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user_id: str


# Tasks


class TaskCreate(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.medium
    status: TaskStatus = TaskStatus.todo
    due_date: Optional[datetime] = None
    assigned_to: Optional[str] = Field(default=None, max_length=120)
    category: Optional[TaskCategory] = None
    campaign_id: Optional[str] = None

    @field_validator("due_date", "campaign_id", "category", mode="before")
    @classmethod
    def blank_refs_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class TaskUpdate(PartialUpdate):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"title", "priority", "status"})

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    assigned_to: Optional[str] = Field(default=None, max_length=120)
    category: Optional[TaskCategory] = None
    campaign_id: Optional[str] = None

    @field_validator("due_date", "campaign_id", "category", mode="before")
    @classmethod
    def blank_refs_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class TaskRecord(ApiModel):
    id: str
    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.medium
    status: TaskStatus = TaskStatus.todo
    due_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    category: Optional[TaskCategory] = None
    campaign_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user_id: str


# Activities


class ActivityCreate(ApiModel):
    type: str = Field(min_length=1, max_length=80)
    title: str = Field(min_length=1, max_length=250)
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, value: Any) -> Any:
        return {} if value is None else value


class ActivityRecord(ApiModel):
    id: str
    type: str
    title: str
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    user_id: str


# Dashboard


class LeadScoreBuckets(ApiModel):
    hot: int
    warm: int
    cold: int


class GrowthMetrics(ApiModel):
    campaigns: str
    leads: str
    conversions: str
    roi: str


class DashboardMetrics(ApiModel):
    active_campaigns: int
    total_leads: int
    conversion_rate: str
    roi: str
    lead_scores: LeadScoreBuckets
    growth: GrowthMetrics
    open_tasks: int


class MessageResponse(BaseModel):
    message: str
