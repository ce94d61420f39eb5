"""
API routes for eligibility checking and offer matching
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..models.eligibility import (
    CompareOffersRequest,
    EligibilityCheckRequest,
    EligibilityCheckResponse,
    MatchScoreBreakdown,
    OfferComparison
)
from ..models.profile import UserProfile
from ..services.eligibility_service import eligibility_service
from ..services.mongo_service import mongo_service
from ..services.score_breakdown import detailed_scorer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


class MatchRequest(BaseModel):
    """Find active offers in a region that suit a profile"""
    profile: UserProfile
    region: str = Field(..., description="Region label, e.g. 서울")
    limit: Optional[int] = Field(20, ge=1, le=100)


class OfferMatch(BaseModel):
    offer_id: str
    offer_name: Optional[str] = None
    region: Optional[str] = None
    match_score: int
    breakdown: MatchScoreBreakdown


@router.post("/check", response_model=EligibilityCheckResponse)
async def check_eligibility(request: EligibilityCheckRequest):
    """
    Check a profile against one offer
    """
    try:
        offer = await mongo_service.get_offer(request.offer_id)
        if not offer:
            raise HTTPException(status_code=404, detail=f"Offer not found: {request.offer_id}")

        return EligibilityCheckResponse(
            offer_id=offer.id,
            details=eligibility_service.get_eligibility_details(request.profile, offer),
            breakdown=detailed_scorer.score(request.profile, offer)
        )

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to check eligibility: {str(e)}"
        )


@router.post("/matches", response_model=List[OfferMatch])
async def match_offers(request: MatchRequest):
    """
    Rank the active offers of a region by match score
    """
    try:
        offers = await mongo_service.find_active_offers_by_region(request.region)
        ranked = eligibility_service.rank_offers(request.profile, offers)

        return [
            OfferMatch(
                offer_id=offer.id,
                offer_name=offer.name,
                region=offer.region,
                match_score=score,
                breakdown=detailed_scorer.score(request.profile, offer)
            )
            for offer, score in ranked[:request.limit]
        ]

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to match offers: {str(e)}"
        )


@router.post("/compare", response_model=OfferComparison)
async def compare_offers(request: CompareOffersRequest):
    """
    Compare 2 to 5 offers side by side for one profile

    Unknown offer ids are skipped; at least two offers must remain.
    """
    try:
        offers = []
        for offer_id in request.offer_ids:
            offer = await mongo_service.get_offer(offer_id)
            if offer is None:
                logger.warning(f"Offer {offer_id} not found, left out of comparison")
                continue
            offers.append(offer)

        if len(offers) < 2:
            raise HTTPException(
                status_code=400,
                detail="At least two existing offers are needed for a comparison"
            )

        comparison = eligibility_service.compare_offers(request.profile, offers)
        logger.info(
            f"Compared {comparison.total_count} offers for user {request.profile.user_id}, "
            f"best match: {comparison.summary.best_match}"
        )
        return comparison

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compare offers: {str(e)}"
        )
