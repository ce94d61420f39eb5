"""
Shared fixtures and in-memory fakes for the test suite
"""
from datetime import date
from typing import Dict, List, Optional

import pytest

from cheongyak.config import settings
from cheongyak.models.document import AnalysisOutcome, Document, ProcessingStatus
from cheongyak.models.offer import Offer, get_current_utc_time
from cheongyak.models.profile import UserProfile
from cheongyak.services.resilience import breaker_registry


class FakeStore:
    """In-memory stand-in for MongoService"""

    def __init__(self):
        self.documents: Dict[str, Document] = {}
        self.outcomes: Dict[str, AnalysisOutcome] = {}
        self.offers: Dict[str, Offer] = {}
        self.profiles: Dict[str, UserProfile] = {}
        self.status_history: Dict[str, List[ProcessingStatus]] = {}

    # Documents
    async def create_document(self, document: Document) -> Document:
        self.documents[document.id] = document
        return document

    async def get_document(self, document_id: str) -> Optional[Document]:
        return self.documents.get(document_id)

    async def update_document_status(self, document_id, status, error_message=None,
                                     expected_status=None) -> bool:
        document = self.documents.get(document_id)
        if document is None:
            return False
        if expected_status is not None and document.status != expected_status:
            return False
        changes = {"status": status, "updated_at": get_current_utc_time()}
        if error_message is not None:
            changes["error_message"] = error_message
        self.documents[document_id] = document.model_copy(update=changes)
        self.status_history.setdefault(document_id, []).append(status)
        return True

    # Outcomes
    async def save_analysis_outcome(self, outcome: AnalysisOutcome) -> AnalysisOutcome:
        self.outcomes[outcome.document_id] = outcome
        return outcome

    async def get_analysis_outcome(self, document_id: str) -> Optional[AnalysisOutcome]:
        return self.outcomes.get(document_id)

    # Offers
    async def create_offer(self, offer: Offer) -> Offer:
        self.offers[offer.id] = offer
        return offer

    async def update_offer(self, offer: Offer) -> Offer:
        self.offers[offer.id] = offer
        return offer

    async def get_offer(self, offer_id: str) -> Optional[Offer]:
        return self.offers.get(offer_id)

    async def find_offer_by_external_id(self, external_id: str) -> Optional[Offer]:
        for offer in self.offers.values():
            if offer.external_id == external_id:
                return offer
        return None

    async def find_active_offers_by_region(self, region: str) -> List[Offer]:
        return [o for o in self.offers.values() if o.region == region and o.is_active]

    async def find_active_offers(self, data_source=None) -> List[Offer]:
        offers = [o for o in self.offers.values() if o.is_active]
        if data_source is not None:
            offers = [o for o in offers if o.data_source == data_source]
        return sorted(offers, key=lambda o: o.created_at, reverse=True)

    async def deactivate_expired_offers(self, today: date) -> int:
        count = 0
        for offer in self.offers.values():
            if offer.is_active and offer.is_expired(today):
                offer.deactivate()
                count += 1
        return count

    # Profiles
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        self.profiles[profile.user_id] = profile
        return profile


class FakeOcrClient:
    """OCR capability with scripted answers"""

    def __init__(self, has_text: bool = False, text: str = "", detect_error: Exception = None,
                 ocr_error: Exception = None):
        self.has_text = has_text
        self.text = text
        self.detect_error = detect_error
        self.ocr_error = ocr_error
        self.ocr_calls = 0

    async def has_text_layer(self, document: Document) -> bool:
        if self.detect_error:
            raise self.detect_error
        return self.has_text

    async def perform_ocr(self, document: Document) -> str:
        self.ocr_calls += 1
        if self.ocr_error:
            raise self.ocr_error
        return self.text


class FakePdfService:
    def __init__(self, text: str = ""):
        self.text = text

    def extract_text_from_file(self, file_path: str) -> str:
        return self.text


class FakeGenerator:
    """AI capability returning a fixed response or raising"""

    def __init__(self, response: str = "", error: Exception = None):
        self.response = response
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.response


@pytest.fixture(autouse=True)
def fresh_resilience(monkeypatch):
    """Independent breakers and no backoff sleeps for every test"""
    monkeypatch.setattr(settings, "retry_backoff_base", 0.0)
    monkeypatch.setattr(breaker_registry, "config", breaker_registry.config)
    breaker_registry.reset()
    yield
    breaker_registry.reset()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def profile():
    return UserProfile(
        user_id="user-1",
        age=30,
        annual_income=50_000_000,
        household_members=2,
        housing_owned=0,
        location_preferences="서울"
    )


@pytest.fixture
def seoul_offer():
    return Offer(
        name="강남 아파트",
        region="서울",
        min_age=19,
        max_age=65,
        min_income=30_000_000,
        max_income=100_000_000,
        min_household_members=1,
        max_household_members=5,
        max_housing_owned=0
    )


def make_document(**overrides) -> Document:
    data = {
        "user_id": "user-1",
        "file_name": "notice.pdf",
        "file_path": "/tmp/notice.pdf",
        "file_size": 1024,
        "content_type": "application/pdf",
        "fingerprint": "a" * 64,
    }
    data.update(overrides)
    return Document(**data)


__all__ = [
    "FakeStore",
    "FakeOcrClient",
    "FakePdfService",
    "FakeGenerator",
    "make_document"
]
