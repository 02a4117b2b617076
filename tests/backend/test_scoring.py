from __future__ import annotations

from backend.app.models import LeadTemperature
from backend.app.services.scoring import (
    HOT_LEAD_THRESHOLD,
    LEGACY_WARM_LEAD_THRESHOLD,
    lead_temperature,
)


def test_hot_starts_at_eighty() -> None:
    assert lead_temperature(HOT_LEAD_THRESHOLD) == LeadTemperature.hot
    assert lead_temperature(100) == LeadTemperature.hot
    assert lead_temperature(79) == LeadTemperature.warm


def test_warm_floor_is_configurable() -> None:
    assert lead_temperature(60) == LeadTemperature.warm
    assert lead_temperature(59) == LeadTemperature.cold
    assert lead_temperature(55, LEGACY_WARM_LEAD_THRESHOLD) == LeadTemperature.warm
    assert lead_temperature(49, LEGACY_WARM_LEAD_THRESHOLD) == LeadTemperature.cold


def test_zero_is_cold() -> None:
    assert lead_temperature(0) == LeadTemperature.cold
