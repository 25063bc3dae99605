"""Shared fixtures for control plane tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from health_share import (
    ControlPlane,
    ControlPlaneSettings,
    Identity,
    RecordStore,
    ShareLedger,
    build_control_plane,
)


class ManualClock:
    """Clock that only moves when a test advances it."""
    
    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    
    def now(self) -> datetime:
        return self.current
    
    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def patient():
    return Identity("patient-alice")


@pytest.fixture
def provider():
    return Identity("provider-dr-vega")


@pytest.fixture
def stranger():
    return Identity("someone-else")


@pytest.fixture
def store(clock):
    return RecordStore(clock=clock)


@pytest.fixture
def ledger(store, clock):
    return ShareLedger(store, clock=clock, ttl=timedelta(days=7))


@pytest.fixture
def settings():
    return ControlPlaneSettings(share_request_ttl_days=7)


@pytest.fixture
def plane(settings, clock) -> ControlPlane:
    return build_control_plane(settings=settings, clock=clock)
