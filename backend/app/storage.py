"""Storage contract shared by the in-memory and document-store backends.

Every entity except users is owned by a ``user_id``. Reads, updates and
deletes only ever see rows owned by the caller; a row owned by someone else
is reported exactly like a missing one (``None`` / ``False``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, TypeVar
from uuid import uuid4

from backend.app.models import (
    ActivityCreate,
    ActivityRecord,
    CampaignCreate,
    CampaignRecord,
    CampaignUpdate,
    ContactCreate,
    ContactRecord,
    ContactUpdate,
    DashboardMetrics,
    PartialUpdate,
    RegisterRequest,
    TaskCreate,
    TaskRecord,
    TaskUpdate,
    UserRecord,
    utc_now,
)
from backend.app.services.metrics import compute_dashboard_metrics
from backend.app.services.scoring import DEFAULT_WARM_LEAD_THRESHOLD

RecordT = TypeVar("RecordT", CampaignRecord, ContactRecord, TaskRecord)

DEFAULT_ROLE = "founder"
MAX_ACTIVITY_LIMIT = 200


def new_id() -> str:
    return str(uuid4())


class StoreConflictError(Exception):
    pass


class StorageUnavailableError(Exception):
    pass


def clamp_limit(limit: int) -> int:
    return max(0, min(limit, MAX_ACTIVITY_LIMIT))


def build_user(request: RegisterRequest, *, password_hash: str) -> UserRecord:
    return UserRecord(
        id=new_id(),
        username=request.username.strip(),
        password_hash=password_hash,
        name=request.name.strip(),
        email=request.email.strip(),
        role=(request.role or "").strip() or DEFAULT_ROLE,
    )


def build_campaign(request: CampaignCreate, *, user_id: str) -> CampaignRecord:
    now = utc_now()
    return CampaignRecord(
        id=new_id(),
        name=request.name.strip(),
        type=request.type,
        status=request.status,
        description=request.description,
        target_audience=request.target_audience,
        budget=request.budget,
        start_date=request.start_date,
        end_date=request.end_date,
        metrics=request.metrics,
        created_at=now,
        updated_at=now,
        user_id=user_id,
    )


def build_contact(request: ContactCreate, *, user_id: str) -> ContactRecord:
    now = utc_now()
    return ContactRecord(
        id=new_id(),
        first_name=request.first_name.strip(),
        last_name=request.last_name.strip(),
        email=request.email.strip(),
        phone=request.phone,
        company=request.company,
        position=request.position,
        lead_score=request.lead_score,
        status=request.status,
        source=request.source,
        tags=list(request.tags),
        notes=request.notes,
        created_at=now,
        updated_at=now,
        user_id=user_id,
    )


def build_task(request: TaskCreate, *, user_id: str) -> TaskRecord:
    now = utc_now()
    return TaskRecord(
        id=new_id(),
        title=request.title.strip(),
        description=request.description,
        priority=request.priority,
        status=request.status,
        due_date=request.due_date,
        assigned_to=request.assigned_to,
        category=request.category,
        campaign_id=request.campaign_id,
        created_at=now,
        updated_at=now,
        user_id=user_id,
    )


def build_activity(request: ActivityCreate, *, user_id: str) -> ActivityRecord:
    return ActivityRecord(
        id=new_id(),
        type=request.type.strip(),
        title=request.title.strip(),
        description=request.description,
        metadata=dict(request.metadata),
        created_at=utc_now(),
        user_id=user_id,
    )


def merge_update(record: RecordT, changes: PartialUpdate) -> RecordT:
    """Apply the fields present in ``changes`` and bump ``updated_at``.

    The merged payload is validated as a whole, so a bad value raises before
    anything is written.
    """
    payload = record.model_dump()
    payload.update(changes.changes())
    payload["id"] = record.id
    payload["user_id"] = record.user_id
    payload["created_at"] = record.created_at
    payload["updated_at"] = utc_now()
    return type(record).model_validate(payload)


class Storage(ABC):
    backend_name = "abstract"

    def __init__(
        self,
        *,
        warm_lead_threshold: int = DEFAULT_WARM_LEAD_THRESHOLD,
        total_leads_source: str = "contacts",
    ) -> None:
        self.warm_lead_threshold = warm_lead_threshold
        self.total_leads_source = total_leads_source

    def ping(self) -> bool:
        return True

    # Users

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def create_user(self, request: RegisterRequest, *, password_hash: str) -> UserRecord: ...

    @abstractmethod
    def update_user_role(self, user_id: str, role: str) -> Optional[UserRecord]: ...

    # Campaigns

    @abstractmethod
    def list_campaigns(self, user_id: str) -> list[CampaignRecord]: ...

    @abstractmethod
    def get_campaign(self, campaign_id: str, user_id: str) -> Optional[CampaignRecord]: ...

    @abstractmethod
    def create_campaign(self, request: CampaignCreate, *, user_id: str) -> CampaignRecord: ...

    @abstractmethod
    def update_campaign(
        self, campaign_id: str, changes: CampaignUpdate, user_id: str
    ) -> Optional[CampaignRecord]: ...

    @abstractmethod
    def delete_campaign(self, campaign_id: str, user_id: str) -> bool: ...

    # Contacts

    @abstractmethod
    def list_contacts(self, user_id: str) -> list[ContactRecord]: ...

    @abstractmethod
    def get_contact(self, contact_id: str, user_id: str) -> Optional[ContactRecord]: ...

    @abstractmethod
    def create_contact(self, request: ContactCreate, *, user_id: str) -> ContactRecord: ...

    @abstractmethod
    def update_contact(
        self, contact_id: str, changes: ContactUpdate, user_id: str
    ) -> Optional[ContactRecord]: ...

    @abstractmethod
    def delete_contact(self, contact_id: str, user_id: str) -> bool: ...

    # Tasks

    @abstractmethod
    def list_tasks(self, user_id: str) -> list[TaskRecord]: ...

    @abstractmethod
    def get_task(self, task_id: str, user_id: str) -> Optional[TaskRecord]: ...

    @abstractmethod
    def create_task(self, request: TaskCreate, *, user_id: str) -> TaskRecord: ...

    @abstractmethod
    def update_task(
        self, task_id: str, changes: TaskUpdate, user_id: str
    ) -> Optional[TaskRecord]: ...

    @abstractmethod
    def delete_task(self, task_id: str, user_id: str) -> bool: ...

    # Activities

    @abstractmethod
    def list_activities(self, user_id: str, limit: int = 20) -> list[ActivityRecord]: ...

    @abstractmethod
    def create_activity(self, request: ActivityCreate, *, user_id: str) -> ActivityRecord: ...

    # Analytics

    def get_dashboard_metrics(self, user_id: str) -> DashboardMetrics:
        return compute_dashboard_metrics(
            self.list_campaigns(user_id),
            self.list_contacts(user_id),
            self.list_tasks(user_id),
            warm_threshold=self.warm_lead_threshold,
            total_leads_source=self.total_leads_source,
        )
