"""
Global pytest configuration and fixtures.
"""

from datetime import date

import pytest

from predictive_insights.config import Settings
from predictive_insights.models.financial import CategoryInfo
from tests.factories.financial_factory import REFERENCE_DATE


@pytest.fixture
def today() -> date:
    """Reference date for every analysis (June: seasonal factor 1.0)."""
    return REFERENCE_DATE


@pytest.fixture
def test_settings() -> Settings:
    """Test settings configuration."""
    return Settings(
        app_name="predictive-insights-test",
        version="1.0.0-test",
        environment="testing",
        log_level="DEBUG",
        log_json=False,
    )


@pytest.fixture
def categories() -> list:
    """A small category directory."""
    return [
        CategoryInfo(id="food", name="Food", color="#FF5733"),
        CategoryInfo(id="rent", name="Rent", color="#3366FF"),
        CategoryInfo(id="travel", name="Travel", color="#33CC99"),
        CategoryInfo(id="salary", name="Salary", color="#22AA22"),
    ]
