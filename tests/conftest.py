"""Root conftest.py for the Ratekeeper test suite."""

from datetime import date

import pytest

from src.domain.tax_rates import Granularity, TaxRateRecord


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )


@pytest.fixture
def copenhagen_records() -> list[TaxRateRecord]:
    """The Copenhagen 2024 schedule: a yearly default, May, and two days."""
    return [
        TaxRateRecord(
            "Copenhagen", Granularity.YEARLY, date(2024, 1, 1), date(2024, 12, 31), 0.2
        ),
        TaxRateRecord(
            "Copenhagen", Granularity.MONTHLY, date(2024, 5, 1), date(2024, 5, 31), 0.4
        ),
        TaxRateRecord(
            "Copenhagen", Granularity.DAILY, date(2024, 1, 1), date(2024, 1, 1), 0.1
        ),
        TaxRateRecord(
            "Copenhagen", Granularity.DAILY, date(2024, 12, 25), date(2024, 12, 25), 0.1
        ),
    ]
