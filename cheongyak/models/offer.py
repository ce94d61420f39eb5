"""
Pydantic models for housing subscription offers and extracted criteria
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from bson import ObjectId
from pydantic import BaseModel, Field, ConfigDict


def get_current_utc_time():
    """Get current UTC time for default values"""
    return datetime.now(timezone.utc)


def new_object_id() -> str:
    """Generate a new MongoDB-compatible identifier"""
    return str(ObjectId())


class HousingType(str, Enum):
    APARTMENT = "APARTMENT"
    OFFICETEL = "OFFICETEL"
    VILLA = "VILLA"
    TOWNHOUSE = "TOWNHOUSE"
    ETC = "ETC"


class Provenance(str, Enum):
    """Where an offer record came from"""
    REGISTRY = "REGISTRY"
    DOCUMENT = "DOCUMENT"
    MERGED = "MERGED"


class OfferCriteria(BaseModel):
    """Offer attributes extracted from an announcement document"""
    name: Optional[str] = None
    region: Optional[str] = None
    address: Optional[str] = None
    housing_type: Optional[str] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_income: Optional[int] = None
    max_income: Optional[int] = None
    min_household_members: Optional[int] = None
    max_household_members: Optional[int] = None
    max_housing_owned: Optional[int] = None
    special_qualifications: Optional[str] = None
    preference_categories: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    application_period: Optional[str] = None


class Offer(BaseModel):
    """Housing subscription offer with eligibility bounds"""
    id: str = Field(default_factory=new_object_id, description="Offer identifier")
    name: Optional[str] = Field(None, description="Offer name")
    region: Optional[str] = Field(None, description="Region label, e.g. 서울")
    address: Optional[str] = None
    housing_type: HousingType = Field(default=HousingType.ETC)
    min_price: Optional[int] = None
    max_price: Optional[int] = None

    # Eligibility bounds, inclusive; None means unrestricted on that side
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_income: Optional[int] = None
    max_income: Optional[int] = None
    min_household_members: Optional[int] = None
    max_household_members: Optional[int] = None
    max_housing_owned: Optional[int] = None

    special_qualifications: Optional[str] = None
    preference_categories: Optional[str] = None
    application_start_date: Optional[date] = None
    application_end_date: Optional[date] = None

    data_source: Provenance = Field(default=Provenance.REGISTRY)
    is_merged: bool = Field(default=False)
    external_id: Optional[str] = Field(None, description="Registry identifier, unique when present")
    document_id: Optional[str] = Field(None, description="Linked announcement document")
    detail_url: Optional[str] = None
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=get_current_utc_time)
    updated_at: datetime = Field(default_factory=get_current_utc_time)

    def mark_as_merged(self, document_id: str) -> None:
        """Link an announcement document to this offer.

        Registry offers become MERGED; provenance is never moved back.
        """
        if self.data_source == Provenance.REGISTRY:
            self.data_source = Provenance.MERGED
        if self.data_source == Provenance.MERGED:
            self.is_merged = True
        self.document_id = document_id
        self.updated_at = get_current_utc_time()

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = get_current_utc_time()

    def is_expired(self, today: Optional[date] = None) -> bool:
        """Whether the application window has closed"""
        if self.application_end_date is None:
            return False
        today = today or date.today()
        return today > self.application_end_date

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "name": "힐스테이트 광교",
                "region": "경기",
                "housing_type": "APARTMENT",
                "min_age": 19,
                "max_income": 70000000,
                "max_housing_owned": 0,
                "application_end_date": "2025-03-31",
                "data_source": "REGISTRY"
            }
        }
    )
