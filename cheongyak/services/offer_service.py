"""
Offer lifecycle: building offers from extracted criteria, registry ingestion
and deactivation of expired offers
"""
import calendar
import logging
import re
from datetime import date
from typing import List, Optional, Protocol

from pydantic import BaseModel, Field

from ..config import settings
from ..models.offer import HousingType, Offer, OfferCriteria, Provenance
from .mongo_service import mongo_service
from .resilience import resilient

logger = logging.getLogger(__name__)

KNOWN_REGIONS = ("서울", "경기", "인천", "부산", "대구", "대전", "광주", "울산", "세종")
UNKNOWN_REGION = "기타"
DATE_PATTERN = re.compile(r'(\d{4})[-./](\d{1,2})[-./](\d{1,2})')


def parse_housing_type(text: Optional[str]) -> HousingType:
    """Map a Korean housing type label onto HousingType"""
    if not text:
        return HousingType.ETC
    normalized = text.strip().upper()
    if "아파트" in normalized or "APT" in normalized:
        return HousingType.APARTMENT
    if "오피스텔" in normalized:
        return HousingType.OFFICETEL
    if "빌라" in normalized:
        return HousingType.VILLA
    if "타운하우스" in normalized:
        return HousingType.TOWNHOUSE
    return HousingType.ETC


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def parse_application_end_date(period: Optional[str], today: Optional[date] = None) -> date:
    """
    Closing date of an application period such as "2025-03-01 ~ 2025-03-15"

    The last well-formed date in the text wins; without one the window is
    assumed to close one month from today.
    """
    today = today or date.today()
    if period:
        for year, month, day in reversed(DATE_PATTERN.findall(period)):
            try:
                return date(int(year), int(month), int(day))
            except ValueError:
                continue
    return add_months(today, 1)


def extract_region(address: Optional[str]) -> str:
    """Region label for an address, e.g. 서울 for 서울특별시 강남구"""
    if not address:
        return UNKNOWN_REGION
    for region in KNOWN_REGIONS:
        if region in address:
            return region
    parts = address.split()
    return parts[0] if parts else UNKNOWN_REGION


def build_offer_from_criteria(
    criteria: OfferCriteria,
    document_id: Optional[str] = None,
    today: Optional[date] = None
) -> Offer:
    """Document-sourced offer carrying the extracted bounds"""
    today = today or date.today()
    return Offer(
        name=criteria.name,
        region=criteria.region,
        address=criteria.address,
        housing_type=parse_housing_type(criteria.housing_type),
        min_price=criteria.min_price,
        max_price=criteria.max_price,
        min_age=criteria.min_age,
        max_age=criteria.max_age,
        min_income=criteria.min_income,
        max_income=criteria.max_income,
        min_household_members=criteria.min_household_members,
        max_household_members=criteria.max_household_members,
        max_housing_owned=criteria.max_housing_owned,
        special_qualifications=criteria.special_qualifications,
        preference_categories=criteria.preference_categories,
        application_start_date=today,
        application_end_date=parse_application_end_date(criteria.application_period, today),
        data_source=Provenance.DOCUMENT,
        document_id=document_id
    )


class RegistryRecord(BaseModel):
    """One offer as published by the public registry"""
    external_id: str
    name: str
    address: Optional[str] = None
    housing_type: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    application_start_date: Optional[date] = None
    application_end_date: Optional[date] = None
    detail_url: Optional[str] = None


class IngestReport(BaseModel):
    created: int = 0
    existing: int = 0
    failed: int = 0
    created_ids: List[str] = Field(default_factory=list)


class RegistryFeed(Protocol):
    """Source of registry records; the transport lives outside this service"""

    async def fetch_offers(self, since: date) -> List[RegistryRecord]:
        ...


class OfferStore(Protocol):
    async def find_offer_by_external_id(self, external_id: str) -> Optional[Offer]:
        ...

    async def create_offer(self, offer: Offer) -> Offer:
        ...

    async def deactivate_expired_offers(self, today: date) -> int:
        ...


@resilient("registry-feed", timeout=settings.registry_timeout)
async def fetch_registry_records(feed: RegistryFeed, since: date) -> List[RegistryRecord]:
    return await feed.fetch_offers(since)


class OfferService:
    """Creates registry offers and retires expired ones"""

    def __init__(self, store: Optional[OfferStore] = None):
        self.store = store or mongo_service

    def offer_from_registry(self, record: RegistryRecord) -> Offer:
        # The registry publishes no eligibility bounds, so common defaults apply
        return Offer(
            name=record.name,
            region=extract_region(record.address),
            address=record.address,
            housing_type=parse_housing_type(record.housing_type),
            min_price=record.min_price,
            max_price=record.max_price,
            application_start_date=record.application_start_date,
            application_end_date=record.application_end_date,
            detail_url=record.detail_url,
            data_source=Provenance.REGISTRY,
            external_id=record.external_id,
            min_age=settings.registry_default_min_age,
            min_household_members=settings.registry_default_min_household,
            max_housing_owned=settings.registry_default_max_housing_owned
        )

    async def ingest(self, records: List[RegistryRecord]) -> IngestReport:
        """Create offers for registry records not seen before"""
        report = IngestReport()
        for record in records:
            try:
                if await self.store.find_offer_by_external_id(record.external_id):
                    logger.debug(f"Registry offer already known: {record.external_id}")
                    report.existing += 1
                    continue
                offer = await self.store.create_offer(self.offer_from_registry(record))
                report.created += 1
                report.created_ids.append(offer.id)
            except Exception as e:
                logger.error(f"Failed to ingest registry record {record.external_id}: {e}")
                report.failed += 1

        logger.info(
            f"Registry ingest finished - created: {report.created}, "
            f"existing: {report.existing}, failed: {report.failed}"
        )
        return report

    async def collect(self, feed: RegistryFeed, today: Optional[date] = None) -> IngestReport:
        """Fetch the last three months of registry offers and ingest them"""
        since = add_months(today or date.today(), -3)
        records = await fetch_registry_records(feed, since)
        logger.info(f"Fetched {len(records)} registry records since {since}")
        return await self.ingest(records)

    async def deactivate_expired(self, today: Optional[date] = None) -> int:
        """Mark offers whose application window has closed as inactive"""
        today = today or date.today()
        count = await self.store.deactivate_expired_offers(today)
        logger.info(f"Deactivated {count} expired offers")
        return count


# Global offer service instance
offer_service = OfferService()
