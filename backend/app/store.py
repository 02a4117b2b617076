from __future__ import annotations

import logging
from collections.abc import Iterable
from threading import RLock
from typing import Optional, TypeVar

from backend.app.models import (
    ActivityCreate,
    ActivityRecord,
    CampaignCreate,
    CampaignRecord,
    CampaignUpdate,
    ContactCreate,
    ContactRecord,
    ContactUpdate,
    PartialUpdate,
    RegisterRequest,
    TaskCreate,
    TaskRecord,
    TaskUpdate,
    UserRecord,
)
from backend.app.services.fixtures import DEMO_PASSWORD, build_demo_fixtures
from backend.app.services.passwords import DEFAULT_ROUNDS, hash_password
from backend.app.storage import (
    Storage,
    StoreConflictError,
    build_activity,
    build_campaign,
    build_contact,
    build_task,
    build_user,
    clamp_limit,
    merge_update,
    new_id,
)

logger = logging.getLogger("campaignforge.storage")

OwnedT = TypeVar("OwnedT", CampaignRecord, ContactRecord, TaskRecord, ActivityRecord)
UpdatableT = TypeVar("UpdatableT", CampaignRecord, ContactRecord, TaskRecord)


def _newest_first(records: Iterable[OwnedT]) -> list[OwnedT]:
    # Reversing first keeps equal timestamps in newest-inserted-first order.
    return sorted(reversed(list(records)), key=lambda item: item.created_at, reverse=True)


def _detached(record: OwnedT) -> OwnedT:
    # Callers get their own copy; stored records only change through update_*.
    return record.model_copy(deep=True)


class InMemoryStore(Storage):
    """Dict-backed storage that lives and dies with the process."""

    backend_name = "memory"

    def __init__(
        self,
        *,
        seed_demo_data: bool = True,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
        **options,
    ) -> None:
        super().__init__(**options)
        self._lock = RLock()
        self.users: dict[str, UserRecord] = {}
        self.campaigns: dict[str, CampaignRecord] = {}
        self.contacts: dict[str, ContactRecord] = {}
        self.tasks: dict[str, TaskRecord] = {}
        self.activities: dict[str, ActivityRecord] = {}

        if seed_demo_data:
            self._load_demo_fixtures(bcrypt_rounds)

    def _load_demo_fixtures(self, bcrypt_rounds: int) -> None:
        fixtures = build_demo_fixtures(
            new_id=new_id,
            password_hash=hash_password(DEMO_PASSWORD, rounds=bcrypt_rounds),
        )
        with self._lock:
            self.users[fixtures.user.id] = fixtures.user
            self.campaigns.update({record.id: record for record in fixtures.campaigns})
            self.contacts.update({record.id: record for record in fixtures.contacts})
            self.tasks.update({record.id: record for record in fixtures.tasks})
            self.activities.update({record.id: record for record in fixtures.activities})
        logger.info(
            "demo_fixtures_loaded username=%s campaigns=%s contacts=%s tasks=%s",
            fixtures.user.username,
            len(fixtures.campaigns),
            len(fixtures.contacts),
            len(fixtures.tasks),
        )

    # Users

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users.values():
                if user.username == username:
                    return user
        return None

    def create_user(self, request: RegisterRequest, *, password_hash: str) -> UserRecord:
        with self._lock:
            user = build_user(request, password_hash=password_hash)
            if self.get_user_by_username(user.username):
                logger.warning("username_conflict username=%s", user.username)
                raise StoreConflictError(f"username already exists: {user.username}")
            self.users[user.id] = user
            return user

    def update_user_role(self, user_id: str, role: str) -> Optional[UserRecord]:
        with self._lock:
            user = self.users.get(user_id)
            if not user:
                return None
            updated = user.model_copy(update={"role": role})
            self.users[user_id] = updated
            return updated

    # Campaigns

    def list_campaigns(self, user_id: str) -> list[CampaignRecord]:
        return self._list_owned(self.campaigns, user_id)

    def get_campaign(self, campaign_id: str, user_id: str) -> Optional[CampaignRecord]:
        return self._get_owned(self.campaigns, campaign_id, user_id)

    def create_campaign(self, request: CampaignCreate, *, user_id: str) -> CampaignRecord:
        campaign = build_campaign(request, user_id=user_id)
        with self._lock:
            self.campaigns[campaign.id] = campaign
        return _detached(campaign)

    def update_campaign(
        self, campaign_id: str, changes: CampaignUpdate, user_id: str
    ) -> Optional[CampaignRecord]:
        return self._update_owned(self.campaigns, campaign_id, changes, user_id)

    def delete_campaign(self, campaign_id: str, user_id: str) -> bool:
        return self._delete_owned(self.campaigns, campaign_id, user_id)

    # Contacts

    def list_contacts(self, user_id: str) -> list[ContactRecord]:
        return self._list_owned(self.contacts, user_id)

    def get_contact(self, contact_id: str, user_id: str) -> Optional[ContactRecord]:
        return self._get_owned(self.contacts, contact_id, user_id)

    def create_contact(self, request: ContactCreate, *, user_id: str) -> ContactRecord:
        contact = build_contact(request, user_id=user_id)
        with self._lock:
            self.contacts[contact.id] = contact
        return _detached(contact)

    def update_contact(
        self, contact_id: str, changes: ContactUpdate, user_id: str
    ) -> Optional[ContactRecord]:
        return self._update_owned(self.contacts, contact_id, changes, user_id)

    def delete_contact(self, contact_id: str, user_id: str) -> bool:
        return self._delete_owned(self.contacts, contact_id, user_id)

    # Tasks

    def list_tasks(self, user_id: str) -> list[TaskRecord]:
        return self._list_owned(self.tasks, user_id)

    def get_task(self, task_id: str, user_id: str) -> Optional[TaskRecord]:
        return self._get_owned(self.tasks, task_id, user_id)

    def create_task(self, request: TaskCreate, *, user_id: str) -> TaskRecord:
        task = build_task(request, user_id=user_id)
        with self._lock:
            self.tasks[task.id] = task
        return _detached(task)

    def update_task(
        self, task_id: str, changes: TaskUpdate, user_id: str
    ) -> Optional[TaskRecord]:
        return self._update_owned(self.tasks, task_id, changes, user_id)

    def delete_task(self, task_id: str, user_id: str) -> bool:
        return self._delete_owned(self.tasks, task_id, user_id)

    # Activities

    def list_activities(self, user_id: str, limit: int = 20) -> list[ActivityRecord]:
        return self._list_owned(self.activities, user_id)[: clamp_limit(limit)]

    def create_activity(self, request: ActivityCreate, *, user_id: str) -> ActivityRecord:
        activity = build_activity(request, user_id=user_id)
        with self._lock:
            self.activities[activity.id] = activity
        return _detached(activity)

    # Shared helpers

    def _list_owned(self, table: dict[str, OwnedT], user_id: str) -> list[OwnedT]:
        with self._lock:
            records = [record for record in table.values() if record.user_id == user_id]
        return [_detached(record) for record in _newest_first(records)]

    def _find_owned(
        self, table: dict[str, OwnedT], record_id: str, user_id: str
    ) -> Optional[OwnedT]:
        record = table.get(record_id)
        if not record or record.user_id != user_id:
            return None
        return record

    def _get_owned(
        self, table: dict[str, OwnedT], record_id: str, user_id: str
    ) -> Optional[OwnedT]:
        with self._lock:
            record = self._find_owned(table, record_id, user_id)
        return _detached(record) if record else None

    def _update_owned(
        self,
        table: dict[str, UpdatableT],
        record_id: str,
        changes: PartialUpdate,
        user_id: str,
    ) -> Optional[UpdatableT]:
        with self._lock:
            existing = self._find_owned(table, record_id, user_id)
            if not existing:
                return None
            updated = merge_update(existing, changes)
            table[record_id] = updated
            return _detached(updated)

    def _delete_owned(self, table: dict[str, OwnedT], record_id: str, user_id: str) -> bool:
        with self._lock:
            if not self._find_owned(table, record_id, user_id):
                return False
            del table[record_id]
            return True
