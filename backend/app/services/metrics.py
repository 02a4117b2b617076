"""Dashboard KPIs derived from a user's campaigns, contacts and tasks.

Nothing here touches storage; callers load the records and pass them in, so
any storage failure surfaces before aggregation starts.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from backend.app.models import (
    CampaignRecord,
    CampaignStatus,
    ContactRecord,
    DashboardMetrics,
    GrowthMetrics,
    TaskRecord,
    TaskStatus,
)
from backend.app.services.scoring import DEFAULT_WARM_LEAD_THRESHOLD, bucket_lead_scores

# No historical snapshots are kept, so month-over-month trends are fixed.
GROWTH_PLACEHOLDERS = GrowthMetrics(
    campaigns="+8.2%",
    leads="+23.1%",
    conversions="+1.2%",
    roi="+45.3%",
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def conversion_rate(campaigns: Sequence[CampaignRecord]) -> str:
    total_leads = sum(campaign.metrics.leads for campaign in campaigns)
    total_conversions = sum(campaign.metrics.conversions for campaign in campaigns)
    if total_leads <= 0:
        return "0.0%"
    return f"{total_conversions / total_leads * 100:.1f}%"


def average_roi(campaigns: Sequence[CampaignRecord]) -> str:
    if not campaigns:
        return "0%"
    total_roi = sum(campaign.metrics.roi for campaign in campaigns)
    return f"{_round_half_up(total_roi / len(campaigns))}%"


def total_leads(
    campaigns: Sequence[CampaignRecord],
    contacts: Sequence[ContactRecord],
    source: str = "contacts",
) -> int:
    """Count leads either as stored contacts or as campaign-reported leads.

    The two definitions disagree whenever campaigns report leads that were
    never imported as contacts; ``source`` picks which one the dashboard shows.
    """
    if source == "campaigns":
        return sum(campaign.metrics.leads for campaign in campaigns)
    return len(contacts)


def compute_dashboard_metrics(
    campaigns: Sequence[CampaignRecord],
    contacts: Sequence[ContactRecord],
    tasks: Sequence[TaskRecord],
    *,
    warm_threshold: int = DEFAULT_WARM_LEAD_THRESHOLD,
    total_leads_source: str = "contacts",
) -> DashboardMetrics:
    active_campaigns = len(
        [campaign for campaign in campaigns if campaign.status == CampaignStatus.active]
    )
    open_tasks = len([task for task in tasks if task.status != TaskStatus.completed])
    return DashboardMetrics(
        active_campaigns=active_campaigns,
        total_leads=total_leads(campaigns, contacts, total_leads_source),
        conversion_rate=conversion_rate(campaigns),
        roi=average_roi(campaigns),
        lead_scores=bucket_lead_scores(contacts, warm_threshold),
        growth=GROWTH_PLACEHOLDERS.model_copy(),
        open_tasks=open_tasks,
    )
