from datetime import date, datetime, timedelta, timezone

import pytest

from core.models.client import ClientForm
from core.services.client_store import STORAGE_KEY, ClientStore
from core.services.client_validator import ClientValidator
from core.storage.slot import MemorySlot

TODAY = date(2026, 6, 1)


class TickingClock:
    """Horloge déterministe : avance d'une seconde à chaque appel."""

    def __init__(self, start: datetime = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def backend():
    return {}


@pytest.fixture
def store(backend, clock):
    return ClientStore(MemorySlot(STORAGE_KEY, backend), clock=clock)


@pytest.fixture
def validator():
    return ClientValidator(today=lambda: TODAY)


@pytest.fixture
def study_form():
    return ClientForm(
        legal_name="Jane Doe",
        date_of_birth=date(1999, 4, 12),
        phone="(555) 123-4567",
        email="jane@example.com",
        current_address="1 Main St, Toronto",
        status="StudyPermit",
        status_expiry_date=date(2027, 8, 31),
    )


@pytest.fixture
def citizen_form():
    return ClientForm(
        legal_name="John Roe",
        phone="5551234567",
        email="john@example.com",
        current_address="22 King St",
        status="Citizen",
    )
