"""
Pytest configuration and fixtures

Unit tests run against in-memory fakes (fixtures/pattern_fixtures.py);
no database or Redis is needed.
"""
import os
import sys
from uuid import uuid4

import pytest

# Settings require a signing key at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pattern-insights-0123456789")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fixtures.pattern_fixtures import FakeInsightCache, FakePatternRepository, FixedClock  # noqa: E402
from services.pattern_insights import InsightThresholds, PatternInsightsEngine  # noqa: E402


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def repository():
    return FakePatternRepository()


@pytest.fixture
def insight_cache():
    return FakeInsightCache()


@pytest.fixture
def engine(repository, insight_cache, clock):
    """Engine wired to fakes, with default thresholds."""
    return PatternInsightsEngine(
        repository=repository,
        cache=insight_cache,
        thresholds=InsightThresholds(),
        clock=clock,
    )
