from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from homeauto.core.scheduling import VirtualScheduler
from homeauto.domain.entities import StateStore

from helpers import FakeLight

UTC = ZoneInfo("UTC")


@pytest.fixture
def tz() -> ZoneInfo:
    return UTC


@pytest.fixture
def store() -> StateStore:
    return StateStore()


@pytest.fixture
def vsched() -> VirtualScheduler:
    return VirtualScheduler(datetime(2024, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def light() -> FakeLight:
    return FakeLight()
