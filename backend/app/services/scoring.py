from __future__ import annotations

from collections.abc import Iterable

from backend.app.models import ContactRecord, LeadScoreBuckets, LeadTemperature

HOT_LEAD_THRESHOLD = 80
# Two floors exist in the field: 60 (dashboard default) and 50 (older reports).
DEFAULT_WARM_LEAD_THRESHOLD = 60
LEGACY_WARM_LEAD_THRESHOLD = 50


def lead_temperature(
    lead_score: int, warm_threshold: int = DEFAULT_WARM_LEAD_THRESHOLD
) -> LeadTemperature:
    if lead_score >= HOT_LEAD_THRESHOLD:
        return LeadTemperature.hot
    if lead_score >= warm_threshold:
        return LeadTemperature.warm
    return LeadTemperature.cold


def bucket_lead_scores(
    contacts: Iterable[ContactRecord],
    warm_threshold: int = DEFAULT_WARM_LEAD_THRESHOLD,
) -> LeadScoreBuckets:
    counts = {temperature: 0 for temperature in LeadTemperature}
    for contact in contacts:
        counts[lead_temperature(contact.lead_score or 0, warm_threshold)] += 1
    return LeadScoreBuckets(
        hot=counts[LeadTemperature.hot],
        warm=counts[LeadTemperature.warm],
        cold=counts[LeadTemperature.cold],
    )
