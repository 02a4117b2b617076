from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, TypeVar

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

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
from backend.app.storage import (
    Storage,
    StorageUnavailableError,
    StoreConflictError,
    build_activity,
    build_campaign,
    build_contact,
    build_task,
    build_user,
    clamp_limit,
    merge_update,
)

logger = logging.getLogger("campaignforge.storage")

OwnedT = TypeVar("OwnedT", CampaignRecord, ContactRecord, TaskRecord, ActivityRecord)
UpdatableT = TypeVar("UpdatableT", CampaignRecord, ContactRecord, TaskRecord)


def _normalize_database_url(database_url: str) -> str:
    value = database_url.strip()
    if value.startswith("sqlite:///"):
        sqlite_path = value[len("sqlite:///") :].split("?", 1)[0]
        if sqlite_path and sqlite_path != ":memory:":
            path = Path(sqlite_path)
            if path.parent:
                path.parent.mkdir(parents=True, exist_ok=True)
        return value
    if "://" in value:
        return value
    path = Path(value)
    if path.parent:
        path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{str(path).replace(chr(92), '/')}"


def _owned_collection(name: str, metadata: MetaData) -> Table:
    return Table(
        name,
        metadata,
        Column("pk", Integer, primary_key=True, autoincrement=True),
        Column("id", String(64), nullable=False, unique=True),
        Column("user_id", String(64), nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("document", Text, nullable=False),
        Index(f"ix_{name}_user_id_created_at", "user_id", "created_at"),
    )


class DocumentStorage(Storage):
    """
    One JSON document per row. The application ``id`` is a separate column from
    the database ``pk``; ``user_id`` and ``created_at`` are lifted out of the
    document so listing can use the ``(user_id, created_at)`` index.
    Works with any SQLAlchemy URL (SQLite and PostgreSQL are both used).
    """

    backend_name = "document"

    def __init__(self, database_url: str, **options) -> None:
        super().__init__(**options)
        self.database_url = _normalize_database_url(database_url)
        self.engine: Engine = self._create_engine()
        self.metadata = MetaData()
        self.users = Table(
            "users",
            self.metadata,
            Column("pk", Integer, primary_key=True, autoincrement=True),
            Column("id", String(64), nullable=False, unique=True),
            Column("username", String(60), nullable=False, unique=True),
            Column("document", Text, nullable=False),
        )
        self.campaigns = _owned_collection("campaigns", self.metadata)
        self.contacts = _owned_collection("contacts", self.metadata)
        self.tasks = _owned_collection("tasks", self.metadata)
        self.activities = _owned_collection("activities", self.metadata)
        self._ensure_schema()

    def _create_engine(self) -> Engine:
        # Unknown dialects and missing DBAPI drivers surface here, before any connect.
        try:
            return create_engine(
                self.database_url,
                future=True,
                pool_pre_ping=True,
            )
        except (SQLAlchemyError, ImportError) as exc:
            scheme = self.database_url.split("://", 1)[0]
            raise StorageUnavailableError(
                f"database unavailable: unsupported database url scheme {scheme!r}"
            ) from exc

    def _ensure_schema(self) -> None:
        try:
            self.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"database unavailable: {self.engine.url.render_as_string(hide_password=True)}"
            ) from exc
        if not self.ping():
            raise StorageUnavailableError("database did not answer ping")
        logger.info(
            "document_storage_ready url=%s",
            self.engine.url.render_as_string(hide_password=True),
        )

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True
        except SQLAlchemyError:
            return False

    # Users

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(self.users.c.document).where(self.users.c.id == user_id)
            ).first()
        return UserRecord.model_validate_json(row.document) if row else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(self.users.c.document).where(self.users.c.username == username)
            ).first()
        return UserRecord.model_validate_json(row.document) if row else None

    def create_user(self, request: RegisterRequest, *, password_hash: str) -> UserRecord:
        user = build_user(request, password_hash=password_hash)
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    self.users.insert().values(
                        id=user.id,
                        username=user.username,
                        document=user.model_dump_json(),
                    )
                )
        except IntegrityError as exc:
            logger.warning("username_conflict username=%s", user.username)
            raise StoreConflictError(f"username already exists: {user.username}") from exc
        return user

    def update_user_role(self, user_id: str, role: str) -> Optional[UserRecord]:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(self.users.c.document).where(self.users.c.id == user_id)
            ).first()
            if not row:
                return None
            updated = UserRecord.model_validate_json(row.document).model_copy(
                update={"role": role}
            )
            conn.execute(
                self.users.update()
                .where(self.users.c.id == user_id)
                .values(document=updated.model_dump_json())
            )
        return updated

    # Campaigns

    def list_campaigns(self, user_id: str) -> list[CampaignRecord]:
        return self._list_owned(self.campaigns, CampaignRecord, user_id)

    def get_campaign(self, campaign_id: str, user_id: str) -> Optional[CampaignRecord]:
        return self._get_owned(self.campaigns, CampaignRecord, campaign_id, user_id)

    def create_campaign(self, request: CampaignCreate, *, user_id: str) -> CampaignRecord:
        return self._insert_owned(self.campaigns, build_campaign(request, user_id=user_id))

    def update_campaign(
        self, campaign_id: str, changes: CampaignUpdate, user_id: str
    ) -> Optional[CampaignRecord]:
        return self._update_owned(self.campaigns, CampaignRecord, campaign_id, changes, user_id)

    def delete_campaign(self, campaign_id: str, user_id: str) -> bool:
        return self._delete_owned(self.campaigns, campaign_id, user_id)

    # Contacts

    def list_contacts(self, user_id: str) -> list[ContactRecord]:
        return self._list_owned(self.contacts, ContactRecord, user_id)

    def get_contact(self, contact_id: str, user_id: str) -> Optional[ContactRecord]:
        return self._get_owned(self.contacts, ContactRecord, contact_id, user_id)

    def create_contact(self, request: ContactCreate, *, user_id: str) -> ContactRecord:
        return self._insert_owned(self.contacts, build_contact(request, user_id=user_id))

    def update_contact(
        self, contact_id: str, changes: ContactUpdate, user_id: str
    ) -> Optional[ContactRecord]:
        return self._update_owned(self.contacts, ContactRecord, contact_id, changes, user_id)

    def delete_contact(self, contact_id: str, user_id: str) -> bool:
        return self._delete_owned(self.contacts, contact_id, user_id)

    # Tasks

    def list_tasks(self, user_id: str) -> list[TaskRecord]:
        return self._list_owned(self.tasks, TaskRecord, user_id)

    def get_task(self, task_id: str, user_id: str) -> Optional[TaskRecord]:
        return self._get_owned(self.tasks, TaskRecord, task_id, user_id)

    def create_task(self, request: TaskCreate, *, user_id: str) -> TaskRecord:
        return self._insert_owned(self.tasks, build_task(request, user_id=user_id))

    def update_task(
        self, task_id: str, changes: TaskUpdate, user_id: str
    ) -> Optional[TaskRecord]:
        return self._update_owned(self.tasks, TaskRecord, task_id, changes, user_id)

    def delete_task(self, task_id: str, user_id: str) -> bool:
        return self._delete_owned(self.tasks, task_id, user_id)

    # Activities

    def list_activities(self, user_id: str, limit: int = 20) -> list[ActivityRecord]:
        return self._list_owned(
            self.activities, ActivityRecord, user_id, limit=clamp_limit(limit)
        )

    def create_activity(self, request: ActivityCreate, *, user_id: str) -> ActivityRecord:
        return self._insert_owned(self.activities, build_activity(request, user_id=user_id))

    # Shared helpers

    def _list_owned(
        self,
        table: Table,
        model: type[OwnedT],
        user_id: str,
        limit: Optional[int] = None,
    ) -> list[OwnedT]:
        query = (
            select(table.c.document)
            .where(table.c.user_id == user_id)
            .order_by(table.c.created_at.desc(), table.c.pk.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).all()
        return [model.model_validate_json(row.document) for row in rows]

    @staticmethod
    def _select_owned_row(
        conn: Connection, table: Table, record_id: str, user_id: str
    ) -> Optional[str]:
        row = conn.execute(
            select(table.c.document).where(
                table.c.id == record_id,
                table.c.user_id == user_id,
            )
        ).first()
        return row.document if row else None

    def _get_owned(
        self, table: Table, model: type[OwnedT], record_id: str, user_id: str
    ) -> Optional[OwnedT]:
        with self.engine.connect() as conn:
            document = self._select_owned_row(conn, table, record_id, user_id)
        return model.model_validate_json(document) if document else None

    def _insert_owned(self, table: Table, record: OwnedT) -> OwnedT:
        with self.engine.begin() as conn:
            conn.execute(
                table.insert().values(
                    id=record.id,
                    user_id=record.user_id,
                    created_at=record.created_at,
                    document=record.model_dump_json(),
                )
            )
        return record

    def _update_owned(
        self,
        table: Table,
        model: type[UpdatableT],
        record_id: str,
        changes: PartialUpdate,
        user_id: str,
    ) -> Optional[UpdatableT]:
        with self.engine.begin() as conn:
            document = self._select_owned_row(conn, table, record_id, user_id)
            if not document:
                return None
            updated = merge_update(model.model_validate_json(document), changes)
            conn.execute(
                table.update()
                .where(table.c.id == record_id, table.c.user_id == user_id)
                .values(document=updated.model_dump_json())
            )
        return updated

    def _delete_owned(self, table: Table, record_id: str, user_id: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                table.delete().where(table.c.id == record_id, table.c.user_id == user_id)
            )
        return result.rowcount == 1
