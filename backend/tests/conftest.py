"""
Shared fixtures: sample contacts/advisors, repositories and a wired ContactService
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from salescrm.domain.models.advisor import Advisor
from salescrm.domain.models.contact import Contact
from salescrm.domain.models.quality import AIMode
from salescrm.domain.services.contact_scorer import ContactScorer
from salescrm.domain.services.contact_validator import ContactValidator
from salescrm.domain.services.quality_assessor import QualityAssessor
from salescrm.infrastructure.storage.memory_repository import InMemoryContactRepository
from salescrm.services.contact_service import ContactService

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_contact():
    """Factory for unassigned Contact models"""
    def _make(contact_id: int, quality_score: int = 50, minutes: int = 0, **kwargs) -> Contact:
        values = {
            "id": contact_id,
            "name": f"Contact Number{contact_id}",
            "phone": f"+1650253{contact_id:04d}",
            "quality_score": quality_score,
            "created_at": BASE_TIME + timedelta(minutes=minutes),
        }
        values.update(kwargs)
        return Contact(**values)
    return _make


@pytest.fixture
def make_advisor():
    """Factory for Advisor models"""
    def _make(advisor_id: int, **kwargs) -> Advisor:
        values = {
            "id": advisor_id,
            "name": f"Advisor {advisor_id}",
            "email": f"advisor{advisor_id}@example.com",
            "performance_score": 50.0,
            "max_contacts": 10,
        }
        values.update(kwargs)
        return Advisor(**values)
    return _make


@pytest.fixture
def offline_assessor():
    return QualityAssessor(AIMode.OFFLINE)


@pytest.fixture
def scorer(offline_assessor):
    return ContactScorer(ContactValidator(default_region="US"), offline_assessor)


@pytest.fixture
def memory_repository():
    return InMemoryContactRepository()


@pytest.fixture
def contact_service(memory_repository, scorer):
    return ContactService(memory_repository, scorer, phone_region="US", default_max_contacts=50)


@pytest.fixture
def live_provider():
    """LLM provider mock; set generate.return_value / side_effect per test"""
    provider = AsyncMock()
    provider.name = "mock"
    return provider


@pytest_asyncio.fixture
async def seeded_repository(memory_repository):
    """Three unassigned contacts and two advisors with room for two each"""
    for i, (name, score) in enumerate([("Ana Ruiz", 90), ("Luis Gomez", 70), ("Maria Lopez", 40)], start=1):
        await memory_repository.create_contact({
            "name": name,
            "phone": f"+1650253000{i}",
            "quality_score": score,
        })
    await memory_repository.create_advisor({
        "name": "Carla Diaz", "email": "carla@example.com", "performance_score": 90.0, "max_contacts": 2
    })
    await memory_repository.create_advisor({
        "name": "Pedro Soto", "email": "pedro@example.com", "performance_score": 60.0, "max_contacts": 2
    })
    return memory_repository
