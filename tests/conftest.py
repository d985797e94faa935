from datetime import datetime, timedelta, timezone
import pytest


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 6, 15, 8, 0, tzinfo=timezone.utc))
