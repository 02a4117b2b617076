from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from backend.app.auth import (
    AuthContext,
    clear_session_cookie,
    get_auth_context,
    get_session_token,
    get_sessions,
    get_settings,
    issue_session_cookie,
)
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
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    TaskCreate,
    TaskRecord,
    TaskStatus,
    TaskUpdate,
    UserPublic,
)
from backend.app.observability import MetricsRegistry, configure_logging, observe_request
from backend.app.persistence import DocumentStorage
from backend.app.services.passwords import hash_password, verify_password
from backend.app.sessions import SessionRegistry
from backend.app.settings import DEV_SESSION_SECRET, Settings, load_settings
from backend.app.storage import Storage, StoreConflictError
from backend.app.store import InMemoryStore

logger = logging.getLogger("campaignforge.storage")


def build_storage(settings: Settings) -> Storage:
    options = {
        "warm_lead_threshold": settings.warm_lead_threshold,
        "total_leads_source": settings.total_leads_source,
    }
    if settings.persistence_enabled:
        storage: Storage = DocumentStorage(settings.database_url, **options)
    else:
        storage = InMemoryStore(
            seed_demo_data=settings.seed_demo_data,
            bcrypt_rounds=settings.bcrypt_rounds,
            **options,
        )
    logger.info(
        "storage_backend_selected backend=%s warm_threshold=%s total_leads_source=%s",
        storage.backend_name,
        settings.warm_lead_threshold,
        settings.total_leads_source,
    )
    return storage


def create_app() -> FastAPI:
    app = FastAPI(title="CampaignForge API", version="0.1.0")
    configure_logging()
    settings = load_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.app_env == "production" and settings.session_secret == DEV_SESSION_SECRET:
        logging.getLogger("campaignforge").warning("session_secret_is_default app_env=production")

    storage = build_storage(settings)
    app.state.storage = storage
    app.state.settings = settings
    app.state.sessions = SessionRegistry(
        secret=settings.session_secret,
        ttl_seconds=settings.session_ttl_seconds,
    )
    app.state.metrics = MetricsRegistry(storage_backend=storage.backend_name)

    @app.middleware("http")
    async def observability_middleware(request: Request, call_next):
        return await observe_request(request, call_next, metrics=app.state.metrics)

    app.include_router(build_router())
    app.include_router(build_auth_router())
    app.include_router(build_api_router())
    return app


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_metrics(request: Request) -> MetricsRegistry:
    return request.app.state.metrics


def not_found(entity: str, record_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{entity} not found: {record_id}",
    )


def build_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @router.get("/health/ready")
    def readiness(request: Request) -> dict[str, str]:
        if not get_storage(request).ping():
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="database unavailable",
            )
        return {"status": "ready"}

    @router.get("/metrics", response_class=PlainTextResponse)
    def metrics(request: Request) -> Response:
        registry = get_metrics(request)
        return PlainTextResponse(
            registry.to_prometheus(active_sessions=get_sessions(request).active_count())
        )

    return router


def build_auth_router() -> APIRouter:
    router = APIRouter(prefix="/api/auth")

    @router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
    def register(payload: RegisterRequest, request: Request, response: Response) -> UserPublic:
        storage = get_storage(request)
        settings = get_settings(request)
        username = payload.username.strip()
        if storage.get_user_by_username(username):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"username already exists: {username}",
            )
        try:
            user = storage.create_user(
                payload,
                password_hash=hash_password(payload.password, rounds=settings.bcrypt_rounds),
            )
        except StoreConflictError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        token = get_sessions(request).start(user.id)
        issue_session_cookie(response, settings=settings, token=token)
        return UserPublic.from_record(user)

    @router.post("/login", response_model=UserPublic)
    def login(payload: LoginRequest, request: Request, response: Response) -> UserPublic:
        storage = get_storage(request)
        settings = get_settings(request)
        user = storage.get_user_by_username(payload.username.strip())
        if not user or not verify_password(payload.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="invalid username or password",
            )
        token = get_sessions(request).start(user.id)
        issue_session_cookie(response, settings=settings, token=token)
        return UserPublic.from_record(user)

    @router.post("/logout", response_model=MessageResponse)
    def logout(
        request: Request,
        response: Response,
        token: Optional[str] = Depends(get_session_token),
    ) -> MessageResponse:
        if token:
            get_sessions(request).revoke(token)
        clear_session_cookie(response, settings=get_settings(request))
        return MessageResponse(message="logged out")

    @router.get("/me", response_model=UserPublic)
    def me(auth: AuthContext = Depends(get_auth_context)) -> UserPublic:
        return UserPublic.from_record(auth.user)

    return router


def build_api_router() -> APIRouter:
    router = APIRouter(prefix="/api")

    # Campaigns

    @router.get("/campaigns", response_model=list[CampaignRecord])
    def list_campaigns(
        request: Request, auth: AuthContext = Depends(get_auth_context)
    ) -> list[CampaignRecord]:
        return get_storage(request).list_campaigns(auth.user_id)

    @router.post(
        "/campaigns", response_model=CampaignRecord, status_code=status.HTTP_201_CREATED
    )
    def create_campaign(
        payload: CampaignCreate,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> CampaignRecord:
        storage = get_storage(request)
        campaign = storage.create_campaign(payload, user_id=auth.user_id)
        storage.create_activity(
            ActivityCreate(
                type="campaign_created",
                title=f"Created new campaign: {campaign.name}",
                metadata={"entityId": campaign.id, "entityType": "campaign"},
            ),
            user_id=auth.user_id,
        )
        return campaign

    @router.get("/campaigns/{campaign_id}", response_model=CampaignRecord)
    def get_campaign(
        campaign_id: str,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> CampaignRecord:
        campaign = get_storage(request).get_campaign(campaign_id, auth.user_id)
        if not campaign:
            raise not_found("campaign", campaign_id)
        return campaign

    @router.api_route(
        "/campaigns/{campaign_id}", methods=["PATCH", "PUT"], response_model=CampaignRecord
    )
    def update_campaign(
        campaign_id: str,
        payload: CampaignUpdate,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> CampaignRecord:
        updated = get_storage(request).update_campaign(campaign_id, payload, auth.user_id)
        if not updated:
            raise not_found("campaign", campaign_id)
        return updated

    @router.delete("/campaigns/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_campaign(
        campaign_id: str,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> Response:
        if not get_storage(request).delete_campaign(campaign_id, auth.user_id):
            raise not_found("campaign", campaign_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Contacts

    @router.get("/contacts", response_model=list[ContactRecord])
    def list_contacts(
        request: Request, auth: AuthContext = Depends(get_auth_context)
    ) -> list[ContactRecord]:
        return get_storage(request).list_contacts(auth.user_id)

    @router.post("/contacts", response_model=ContactRecord, status_code=status.HTTP_201_CREATED)
    def create_contact(
        payload: ContactCreate,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> ContactRecord:
        storage = get_storage(request)
        contact = storage.create_contact(payload, user_id=auth.user_id)
        label = f"{contact.first_name} {contact.last_name}"
        if contact.company:
            label = f"{label} from {contact.company}"
        storage.create_activity(
            ActivityCreate(
                type="contact_created",
                title=f"Added new contact: {label}",
                metadata={"entityId": contact.id, "entityType": "contact"},
            ),
            user_id=auth.user_id,
        )
        return contact

    @router.get("/contacts/{contact_id}", response_model=ContactRecord)
    def get_contact(
        contact_id: str,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> ContactRecord:
        contact = get_storage(request).get_contact(contact_id, auth.user_id)
        if not contact:
            raise not_found("contact", contact_id)
        return contact

    @router.api_route(
        "/contacts/{contact_id}", methods=["PATCH", "PUT"], response_model=ContactRecord
    )
    def update_contact(
        contact_id: str,
        payload: ContactUpdate,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> ContactRecord:
        updated = get_storage(request).update_contact(contact_id, payload, auth.user_id)
        if not updated:
            raise not_found("contact", contact_id)
        return updated

    @router.delete("/contacts/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_contact(
        contact_id: str,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> Response:
        if not get_storage(request).delete_contact(contact_id, auth.user_id):
            raise not_found("contact", contact_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Tasks

    @router.get("/tasks", response_model=list[TaskRecord])
    def list_tasks(
        request: Request, auth: AuthContext = Depends(get_auth_context)
    ) -> list[TaskRecord]:
        return get_storage(request).list_tasks(auth.user_id)

    @router.post("/tasks", response_model=TaskRecord, status_code=status.HTTP_201_CREATED)
    def create_task(
        payload: TaskCreate,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> TaskRecord:
        return get_storage(request).create_task(payload, user_id=auth.user_id)

    @router.get("/tasks/{task_id}", response_model=TaskRecord)
    def get_task(
        task_id: str,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> TaskRecord:
        task = get_storage(request).get_task(task_id, auth.user_id)
        if not task:
            raise not_found("task", task_id)
        return task

    @router.api_route("/tasks/{task_id}", methods=["PATCH", "PUT"], response_model=TaskRecord)
    def update_task(
        task_id: str,
        payload: TaskUpdate,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> TaskRecord:
        storage = get_storage(request)
        existing = storage.get_task(task_id, auth.user_id)
        if not existing:
            raise not_found("task", task_id)
        updated = storage.update_task(task_id, payload, auth.user_id)
        if not updated:
            raise not_found("task", task_id)
        if updated.status == TaskStatus.completed and existing.status != TaskStatus.completed:
            storage.create_activity(
                ActivityCreate(
                    type="task_completed",
                    title=f"Completed task: {updated.title}",
                    metadata={"entityId": updated.id, "entityType": "task"},
                ),
                user_id=auth.user_id,
            )
        return updated

    @router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_task(
        task_id: str,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> Response:
        if not get_storage(request).delete_task(task_id, auth.user_id):
            raise not_found("task", task_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Activities

    @router.get("/activities", response_model=list[ActivityRecord])
    def list_activities(
        request: Request,
        limit: Optional[int] = None,
        auth: AuthContext = Depends(get_auth_context),
    ) -> list[ActivityRecord]:
        if limit is None:
            limit = get_settings(request).activity_feed_limit
        return get_storage(request).list_activities(auth.user_id, limit=limit)

    @router.post(
        "/activities", response_model=ActivityRecord, status_code=status.HTTP_201_CREATED
    )
    def create_activity(
        payload: ActivityCreate,
        request: Request,
        auth: AuthContext = Depends(get_auth_context),
    ) -> ActivityRecord:
        return get_storage(request).create_activity(payload, user_id=auth.user_id)

    # Dashboard

    @router.get("/dashboard/metrics", response_model=DashboardMetrics)
    def dashboard_metrics(
        request: Request, auth: AuthContext = Depends(get_auth_context)
    ) -> DashboardMetrics:
        return get_storage(request).get_dashboard_metrics(auth.user_id)

    return router


app = create_app()
