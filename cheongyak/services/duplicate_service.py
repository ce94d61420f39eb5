"""
Reconciles offers extracted from documents with existing offer records
"""
import logging
from typing import List, Optional, Protocol

from ..models.offer import Offer, OfferCriteria
from .mongo_service import mongo_service
from .offer_service import build_offer_from_criteria

logger = logging.getLogger(__name__)


class OfferMatcher(Protocol):
    """Decides whether an existing offer describes the same subscription"""

    def matches(self, candidate: Offer, criteria: OfferCriteria) -> bool:
        ...


class NameRegionMatcher:
    """Same region and the candidate's name contains the extracted name"""

    def matches(self, candidate: Offer, criteria: OfferCriteria) -> bool:
        if candidate.name is None or candidate.region is None:
            return False
        return criteria.name in candidate.name and candidate.region == criteria.region


class ReconcileStore(Protocol):
    async def find_active_offers_by_region(self, region: str) -> List[Offer]:
        ...

    async def create_offer(self, offer: Offer) -> Offer:
        ...

    async def update_offer(self, offer: Offer) -> Offer:
        ...


class DuplicateReconciler:
    """Merges document offers into matching records or creates new ones"""

    def __init__(self, store: Optional[ReconcileStore] = None, matcher: Optional[OfferMatcher] = None):
        self.store = store or mongo_service
        self.matcher = matcher or NameRegionMatcher()

    async def find_duplicate(self, criteria: OfferCriteria) -> Optional[Offer]:
        """First active offer matching the extracted name and region, if any"""
        if criteria.name is None or criteria.region is None:
            return None

        candidates = await self.store.find_active_offers_by_region(criteria.region)
        for candidate in candidates:
            if candidate.is_active and self.matcher.matches(candidate, criteria):
                logger.info(f"Duplicate offer found: {candidate.id} ({candidate.name})")
                return candidate
        return None

    async def merge_with_document(self, offer: Offer, document_id: str) -> Offer:
        """Link the document to an existing offer, keeping its attributes"""
        offer.mark_as_merged(document_id)
        await self.store.update_offer(offer)
        logger.info(f"Merged document {document_id} into offer {offer.id}")
        return offer

    async def reconcile(self, criteria: OfferCriteria, document_id: str, offer: Optional[Offer] = None) -> Offer:
        """
        Merge into a duplicate or create a document-sourced offer

        Args:
            criteria: Extracted criteria
            document_id: Source document
            offer: Offer already built from the criteria, reused on creation

        Returns:
            The merged or newly created offer
        """
        duplicate = await self.find_duplicate(criteria)
        if duplicate is not None:
            return await self.merge_with_document(duplicate, document_id)

        new_offer = offer or build_offer_from_criteria(criteria)
        new_offer.document_id = document_id
        created = await self.store.create_offer(new_offer)
        logger.info(f"Created offer {created.id} from document {document_id}")
        return created


# Global duplicate reconciler instance
duplicate_reconciler = DuplicateReconciler()
