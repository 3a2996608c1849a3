import pytest
from pydantic import ValidationError

from core.config import Settings
from services.pattern_insights import InsightThresholds

SECRET = "x" * 40


def test_defaults_match_engine_defaults():
    assert InsightThresholds.from_settings(Settings(SECRET_KEY=SECRET)) == InsightThresholds()


def test_thresholds_follow_environment(monkeypatch):
    monkeypatch.setenv("INSIGHT_MIN_TRIGGERS", "8")
    monkeypatch.setenv("INSIGHT_CACHE_TTL_S", "600")
    monkeypatch.setenv("COMMUNITY_MIN_USERS", "25")

    thresholds = InsightThresholds.from_settings(Settings(SECRET_KEY=SECRET))

    assert thresholds.min_triggers == 8
    assert thresholds.cache_ttl_s == 600
    assert thresholds.community_min_users == 25


def test_probability_threshold_is_bounded():
    with pytest.raises(ValidationError):
        Settings(SECRET_KEY=SECRET, INSIGHT_PREDICTION_MIN_PROBABILITY=1.5)


def test_no_unused_server_settings():
    for name in ("API_HOST", "API_PORT", "API_RELOAD"):
        assert name not in Settings.model_fields
