from datetime import date, timedelta

import pytest

from catalog.core.config import CatalogSettings
from catalog.services.library import Library



class FakeClock:
    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def clock():
    return FakeClock(date(2025, 3, 1))


@pytest.fixture
def settings(tmp_path):
    return CatalogSettings(data_dir=str(tmp_path / "data"))


@pytest.fixture
def library(settings, clock):
    return Library(settings=settings, clock=clock)


@pytest.fixture
def member(library):
    return library.register_member("Test Member", "test@example.com")
