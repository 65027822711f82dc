"""
Shared pytest fixtures for the complaint engine test suite.

Provides a controllable clock, settings with real sensitive-location coordinates,
in-memory collaborators and a wired ComplaintLifecycle.
"""

from datetime import datetime, timedelta, timezone

import pytest

from civic_core_lib.config import EngineSettings
from civic_core_lib.core import ComplaintLifecycle, EscalationSweep
from civic_core_lib.models import (
    Category,
    Complaint,
    ComplaintStatus,
    GeoPoint,
    Officer,
    SensitiveLocation,
    TimelineEntry,
)
from civic_core_lib.repositories import (
    InMemoryComplaintRepository,
    InMemoryMediaStore,
    InMemoryNotificationSink,
    InMemoryOfficerRepository,
)

METERS_PER_DEGREE_LAT = 111_195.0

HOSPITAL = GeoPoint(lat=12.9716, lng=77.5946)
SCHOOL = GeoPoint(lat=12.9352, lng=77.6245)
FAR_AWAY = GeoPoint(lat=12.8000, lng=77.4000)


def north_of(point: GeoPoint, meters: float) -> GeoPoint:
    """Point displaced due north by roughly `meters`."""
    return GeoPoint(lat=point.lat + meters / METERS_PER_DEGREE_LAT, lng=point.lng)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def sequential_complaint_ids(monkeypatch):
    """Deterministic ids; the random suffix can collide when the clock is frozen."""
    counter = {"n": 0}

    def _next_id(now=None):
        counter["n"] += 1
        return f"CMP{int(now.timestamp() * 1000)}{counter['n']:03d}"

    monkeypatch.setattr("civic_core_lib.core.lifecycle.generate_complaint_id", _next_id)


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return EngineSettings(
        sensitive_locations=[
            SensitiveLocation(name="City Hospital", point=HOSPITAL),
            SensitiveLocation(name="Central School", point=SCHOOL),
        ],
        dependency_timeout_s=1.0,
        dependency_retry_attempts=1,
    )


@pytest.fixture
def officers():
    return InMemoryOfficerRepository([
        Officer(officer_id="road-b", name="Bala", department_id="roads", assigned_count=2),
        Officer(officer_id="road-c", name="Chitra", department_id="roads", assigned_count=0),
        Officer(officer_id="road-a", name="Arun", department_id="roads", assigned_count=0, is_active=False),
        Officer(officer_id="water-a", name="Divya", department_id="water", assigned_count=1),
        Officer(officer_id="san-a", name="Esha", department_id="sanitation", assigned_count=0),
    ])


@pytest.fixture
def complaints():
    return InMemoryComplaintRepository()


@pytest.fixture
def media():
    return InMemoryMediaStore()


@pytest.fixture
def sink():
    return InMemoryNotificationSink()


@pytest.fixture
def lifecycle(settings, complaints, officers, media, sink, clock):
    return ComplaintLifecycle(
        settings=settings,
        complaints=complaints,
        officers=officers,
        media=media,
        notifications=sink,
        clock=clock,
    )


@pytest.fixture
def sweep(settings, complaints, sink, clock):
    return EscalationSweep(settings, complaints, notifications=sink, clock=clock)


@pytest.fixture
def make_complaint(clock):
    """Factory for stored-shape complaints created `age_hours` before the clock."""
    counter = {"n": 0}

    def _make(
        category=Category.ROAD,
        location=FAR_AWAY,
        status=ComplaintStatus.SUBMITTED,
        age_hours=0.0,
        assigned_officer=None,
        user_id="citizen-1",
    ):
        counter["n"] += 1
        created = clock.now - timedelta(hours=age_hours)
        timeline = [TimelineEntry(status=ComplaintStatus.SUBMITTED, timestamp=created, note="Complaint submitted")]
        if status != ComplaintStatus.SUBMITTED:
            timeline.append(TimelineEntry(status=status, timestamp=created, note=f"moved to {status.value}"))
        return Complaint(
            complaint_id=f"CMP-TEST-{counter['n']}",
            user_id=user_id,
            category=category,
            description="Test complaint",
            location=location,
            status=status,
            timeline=timeline,
            assigned_officer=assigned_officer,
            created_at=created,
            updated_at=created,
            resolved_at=created if status == ComplaintStatus.RESOLVED else None,
        )

    return _make
