from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from backend.app.models import (
    ActivityRecord,
    CampaignMetrics,
    CampaignRecord,
    CampaignStatus,
    CampaignType,
    ContactRecord,
    ContactStatus,
    TaskCategory,
    TaskPriority,
    TaskRecord,
    UserRecord,
    utc_now,
)

DEMO_USERNAME = "founder"
DEMO_PASSWORD = "password"


@dataclass
class FixtureSet:
    user: UserRecord
    campaigns: list[CampaignRecord] = field(default_factory=list)
    contacts: list[ContactRecord] = field(default_factory=list)
    tasks: list[TaskRecord] = field(default_factory=list)
    activities: list[ActivityRecord] = field(default_factory=list)


def _campaign(
    *,
    new_id: Callable[[], str],
    user_id: str,
    now: datetime,
    name: str,
    type: CampaignType,
    status: CampaignStatus,
    description: str,
    target_audience: str,
    budget: float,
    started_days_ago: int,
    ends_in_days: int,
    metrics: CampaignMetrics,
) -> CampaignRecord:
    started = now - timedelta(days=started_days_ago)
    return CampaignRecord(
        id=new_id(),
        name=name,
        type=type,
        status=status,
        description=description,
        target_audience=target_audience,
        budget=budget,
        start_date=started,
        end_date=now + timedelta(days=ends_in_days),
        metrics=metrics,
        created_at=started,
        updated_at=now,
        user_id=user_id,
    )


def build_demo_fixtures(*, new_id: Callable[[], str], password_hash: str) -> FixtureSet:
    """Sample workspace for the demo founder account, dated relative to now."""
    now = utc_now()
    user = UserRecord(
        id=new_id(),
        username=DEMO_USERNAME,
        password_hash=password_hash,
        name="Sarah Chen",
        email="sarah@startup.com",
        role="founder",
    )
    email_campaign = _campaign(
        new_id=new_id,
        user_id=user.id,
        now=now,
        name="Summer Product Launch",
        type=CampaignType.email,
        status=CampaignStatus.active,
        description="Email campaign for new product launch",
        target_audience="Enterprise customers",
        budget=5000,
        started_days_ago=5,
        ends_in_days=25,
        metrics=CampaignMetrics(leads=1234, conversions=52, roi=285),
    )
    social_campaign = _campaign(
        new_id=new_id,
        user_id=user.id,
        now=now,
        name="Social Media Boost",
        type=CampaignType.social,
        status=CampaignStatus.active,
        description="Multi-platform social media campaign",
        target_audience="SMB customers",
        budget=3000,
        started_days_ago=7,
        ends_in_days=23,
        metrics=CampaignMetrics(leads=892, conversions=34, roi=192),
    )
    content_campaign = _campaign(
        new_id=new_id,
        user_id=user.id,
        now=now,
        name="Content Marketing Series",
        type=CampaignType.content,
        status=CampaignStatus.paused,
        description="Educational content series",
        target_audience="Tech professionals",
        budget=2000,
        started_days_ago=14,
        ends_in_days=16,
        metrics=CampaignMetrics(leads=721, conversions=37, roi=348),
    )

    contacts = [
        ContactRecord(
            id=new_id(),
            first_name="Alex",
            last_name="Johnson",
            email="alex@techstart.com",
            phone="+1-555-0123",
            company="TechStart Inc.",
            position="CEO",
            lead_score=95,
            status=ContactStatus.qualified,
            source=email_campaign.id,
            tags=["enterprise", "hot-lead"],
            notes="Very interested in our enterprise solution",
            created_at=now - timedelta(days=2),
            updated_at=now,
            user_id=user.id,
        ),
        ContactRecord(
            id=new_id(),
            first_name="Maria",
            last_name="Garcia",
            email="maria@growthco.com",
            phone="+1-555-0124",
            company="GrowthCo",
            position="Marketing Director",
            lead_score=88,
            status=ContactStatus.contacted,
            source=social_campaign.id,
            tags=["marketing", "warm-lead"],
            notes="Interested in marketing automation features",
            created_at=now - timedelta(days=3),
            updated_at=now,
            user_id=user.id,
        ),
    ]

    tasks = [
        TaskRecord(
            id=new_id(),
            title="Review email campaign performance",
            description="Analyze the performance metrics of the Summer Product Launch campaign",
            priority=TaskPriority.high,
            due_date=now + timedelta(hours=6),
            assigned_to="Marketing Team",
            category=TaskCategory.campaign,
            campaign_id=email_campaign.id,
            created_at=now,
            updated_at=now,
            user_id=user.id,
        ),
        TaskRecord(
            id=new_id(),
            title="Update lead scoring criteria",
            description="Review and update the lead scoring algorithm based on recent data",
            priority=TaskPriority.medium,
            due_date=now + timedelta(days=1),
            assigned_to="Sales Team",
            category=TaskCategory.crm,
            created_at=now,
            updated_at=now,
            user_id=user.id,
        ),
        TaskRecord(
            id=new_id(),
            title="Create content calendar for next month",
            description="Plan and schedule content for the upcoming month",
            priority=TaskPriority.low,
            due_date=now + timedelta(days=3),
            assigned_to="Content Team",
            category=TaskCategory.content,
            campaign_id=content_campaign.id,
            created_at=now,
            updated_at=now,
            user_id=user.id,
        ),
    ]

    activities = [
        ActivityRecord(
            id=new_id(),
            type="campaign_launched",
            title='Email Campaign "Summer Sale" launched',
            description="2,340 recipients",
            metadata={"recipients": 2340, "campaignId": email_campaign.id},
            created_at=now - timedelta(minutes=15),
            user_id=user.id,
        ),
        ActivityRecord(
            id=new_id(),
            type="leads_generated",
            title='47 new leads from "Product Demo" landing page',
            description="Conversion rate: 6.2%",
            metadata={"leads": 47, "conversionRate": 6.2, "source": "landing_page"},
            created_at=now - timedelta(hours=1),
            user_id=user.id,
        ),
        ActivityRecord(
            id=new_id(),
            type="social_campaign",
            title="Social media campaign reached 12.5K impressions",
            description="Instagram & LinkedIn",
            metadata={"impressions": 12500, "platforms": ["instagram", "linkedin"]},
            created_at=now - timedelta(hours=3),
            user_id=user.id,
        ),
        ActivityRecord(
            id=new_id(),
            type="crm_sync",
            title="CRM sync completed",
            description="2,847 contacts updated",
            metadata={"contactsUpdated": 2847},
            created_at=now - timedelta(hours=5),
            user_id=user.id,
        ),
    ]

    return FixtureSet(
        user=user,
        campaigns=[email_campaign, social_campaign, content_campaign],
        contacts=contacts,
        tasks=tasks,
        activities=activities,
    )
